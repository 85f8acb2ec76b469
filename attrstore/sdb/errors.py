from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SdbError(Exception):
    """Base error for SimpleDB operations.

    `retryable` is the only thing the retry layer looks at: transient errors
    set it, permanent ones leave it False.
    """

    message: str
    operation: str | None = None
    domain: str | None = None
    item: str | None = None
    request_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class SdbUnavailable(SdbError):
    """Service temporarily unavailable / throttled."""

    retryable: bool = True


@dataclass(slots=True)
class SdbNotFound(SdbError):
    pass


@dataclass(slots=True)
class SdbConflict(SdbError):
    """A put/delete precondition was not met."""


@dataclass(slots=True)
class SdbValidation(SdbError):
    pass


@dataclass(slots=True)
class SdbBatchTooLarge(SdbValidation):
    size: int = 0
    limit: int = 0


@dataclass(slots=True)
class SdbAccessDenied(SdbError):
    pass


@dataclass(slots=True)
class SdbInternal(SdbError):
    pass
