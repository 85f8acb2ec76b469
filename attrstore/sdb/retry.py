from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from ..observability.logging import get_logger
from .errors import (
    SdbAccessDenied,
    SdbConflict,
    SdbError,
    SdbInternal,
    SdbNotFound,
    SdbUnavailable,
    SdbValidation,
)

if TYPE_CHECKING:
    from .remote import Remote
    from .requests import SdbRequest

T = TypeVar("T")

log = get_logger("attrstore.sdb.retry")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 6
    base_delay_s: float = 0.05
    max_delay_s: float = 1.5
    jitter: bool = False

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        from ..settings import get_settings

        s = get_settings()
        return cls(
            max_attempts=s.sdb_max_attempts,
            base_delay_s=s.sdb_base_delay_s,
            max_delay_s=s.sdb_max_delay_s,
            jitter=s.sdb_backoff_jitter,
        )

    def delay_for(self, attempt: int) -> float:
        # attempt is 1-based: the delay after the first failure is base_delay_s.
        return min(self.max_delay_s, self.base_delay_s * (2 ** max(0, attempt - 1)))


_RETRYABLE_CODES = {
    "ServiceUnavailable",
    "RequestTimeout",
    "InternalError",
    "Throttling",
}

_NOT_FOUND_CODES = {
    "NoSuchDomain",
}

_CONFLICT_CODES = {
    "ConditionalCheckFailed",
    "AttributeDoesNotExist",
}

_ACCESS_CODES = {
    "AuthFailure",
    "AccessFailure",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "OptInRequired",
    "UnrecognizedClientException",
}

_VALIDATION_CODES = {
    "InvalidParameterValue",
    "InvalidParameterCombination",
    "MissingParameter",
    "InvalidQueryExpression",
    "InvalidNextToken",
    "InvalidNumberPredicates",
    "InvalidNumberValueTests",
    "InvalidSortExpression",
    "DuplicateItemName",
    "NumberSubmittedItemsExceeded",
    "NumberSubmittedAttributesExceeded",
    "NumberItemAttributesExceeded",
    "NumberDomainAttributesExceeded",
    "NumberDomainBytesExceeded",
    "NumberDomainsExceeded",
    "TooManyRequestedAttributes",
}


def _sleep_backoff(policy: RetryPolicy, attempt: int) -> float:
    delay = policy.delay_for(attempt)
    if policy.jitter:
        # Full jitter.
        delay = random.random() * delay
    time.sleep(delay)
    return delay


def _request_id_from_client_error(e: ClientError) -> str | None:
    try:
        return (e.response or {}).get("ResponseMetadata", {}).get("RequestId")
    except Exception:
        return None


def _err_code_from_client_error(e: ClientError) -> str | None:
    try:
        return (e.response or {}).get("Error", {}).get("Code")
    except Exception:
        return None


def _map_botocore_error(
    *,
    operation: str,
    domain: str | None,
    item: str | None,
    exc: Exception,
) -> SdbError:
    if isinstance(exc, SdbError):
        return exc

    if isinstance(exc, ClientError):
        code = _err_code_from_client_error(exc) or ""
        ctx: dict[str, Any] = {
            "operation": operation,
            "domain": domain,
            "item": item,
            "request_id": _request_id_from_client_error(exc),
            "cause": exc,
        }

        if code in _RETRYABLE_CODES:
            return SdbUnavailable(message=f"SimpleDB temporarily unavailable ({code})", **ctx)

        if code in _NOT_FOUND_CODES:
            return SdbNotFound(message=f"SimpleDB domain not found: {domain}", **ctx)

        if code in _CONFLICT_CODES:
            return SdbConflict(message="SimpleDB conditional check failed", **ctx)

        if code in _ACCESS_CODES:
            return SdbAccessDenied(message="SimpleDB access denied", **ctx)

        if code in _VALIDATION_CODES:
            return SdbValidation(message=f"SimpleDB request validation failed ({code})", **ctx)

        return SdbInternal(message=f"SimpleDB request failed ({code or 'ClientError'})", **ctx)

    if isinstance(exc, ParamValidationError):
        return SdbValidation(
            message="SimpleDB request validation failed",
            operation=operation,
            domain=domain,
            item=item,
            cause=exc,
        )

    if isinstance(exc, BotoCoreError):
        # Connection-level failures: endpoint unreachable, read timeout, ...
        return SdbUnavailable(
            message="SimpleDB client error",
            operation=operation,
            domain=domain,
            item=item,
            cause=exc,
        )

    return SdbInternal(
        message="Unexpected SimpleDB error",
        operation=operation,
        domain=domain,
        item=item,
        retryable=False,
        cause=exc,
    )


def sdb_call(
    operation: str,
    fn: Callable[[], T],
    *,
    domain: str | None = None,
    item: str | None = None,
    retry_policy: RetryPolicy | None = None,
) -> T:
    policy = retry_policy or RetryPolicy()
    max_attempts = max(1, int(policy.max_attempts))

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as e:  # noqa: BLE001
            mapped = _map_botocore_error(operation=operation, domain=domain, item=item, exc=e)

            # Never retry validation/conflict/not-found errors.
            if not mapped.retryable:
                raise mapped

            if attempt >= max_attempts:
                log.warning(
                    "sdb_call_failed",
                    operation=operation,
                    domain=domain,
                    attempts=attempt,
                    error=str(mapped),
                )
                raise mapped

            delay = _sleep_backoff(policy, attempt)
            log.info(
                "sdb_retry",
                operation=operation,
                domain=domain,
                attempt=attempt,
                delay_s=round(delay, 4),
                error=str(mapped),
            )

    raise SdbInternal(message="SimpleDB request failed", operation=operation, domain=domain, item=item)


class Fetcher:
    """Executes one logical request against a `Remote`, retrying transient failures."""

    def __init__(self, remote: Remote, *, retry_policy: RetryPolicy | None = None):
        self.remote = remote
        self.retry_policy = retry_policy or RetryPolicy()

    def execute(self, request: SdbRequest) -> Any:
        return sdb_call(
            request.operation,
            lambda: self.remote.issue(request),
            domain=getattr(request, "domain", None),
            item=getattr(request, "item", None),
            retry_policy=self.retry_policy,
        )
