"""Lazy, token-driven pagination.

Nothing here runs ahead of the consumer: a page is fetched only when the
caller asks for the next element and the current page is used up.
"""

from __future__ import annotations

from itertools import chain
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterable, Iterator, TypeVar

from .model import Page

if TYPE_CHECKING:
    from .retry import Fetcher

T = TypeVar("T")
K = TypeVar("K")


class PageCursor(Iterator[Page]):
    """One traversal over the pages of a paginated request.

    Holds only the request that will produce the next page; `None` once a page
    came back without a continuation token.
    """

    def __init__(self, fetcher: Fetcher, request: Any):
        self._fetcher = fetcher
        self._next_request: Any | None = request
        self.pages_fetched = 0

    def __iter__(self) -> "PageCursor":
        return self

    def __next__(self) -> Page:
        request = self._next_request
        if request is None:
            raise StopIteration

        # Clear first so a failed fetch ends the traversal instead of retrying it.
        self._next_request = None
        page: Page = self._fetcher.execute(request)
        self.pages_fetched += 1

        if page.next_token:
            self._next_request = request.next(page.next_token)
        return page


class Paginator(Iterable[Page]):
    """Re-iterable view over every page of `request`.

    Each `iter()` starts again from the initial request.
    """

    def __init__(self, fetcher: Fetcher, request: Any):
        self.fetcher = fetcher
        self.request = request

    def __iter__(self) -> PageCursor:
        return PageCursor(self.fetcher, self.request)

    def items(self, convert: Callable[[K], T]) -> Iterator[T]:
        """Flat, lazily converted stream of the items of every page."""
        return flatten((convert(i) for i in page.items) for page in self)


def paginate(fetcher: Fetcher, request: Any) -> Paginator:
    return Paginator(fetcher, request)


def flatten(outer: Iterable[Iterable[T]]) -> Iterator[T]:
    """Concatenate inner iterables in order.

    The next outer element is pulled only once the current inner iterable is
    exhausted.
    """
    return chain.from_iterable(outer)


class Stream(Generic[T]):
    """Re-iterable lazy sequence built from an iterator factory.

    Every iteration calls `source()` again, so traversing twice issues the
    underlying requests twice.
    """

    def __init__(self, source: Callable[[], Iterator[T]]):
        self._source = source

    def __iter__(self) -> Iterator[T]:
        return iter(self._source())

    def first(self) -> T | None:
        return next(iter(self), None)

    def to_list(self) -> list[T]:
        return list(self)
