from __future__ import annotations

from typing import Iterable

from .domain import Domain, Partitions
from .model import ItemNameSnapshot, SelectItem
from .pagination import Paginator, Stream
from .remote import Boto3Remote, Remote
from .requests import ListDomainsRequest, SelectRequest
from .retry import Fetcher, RetryPolicy
from .routing import Router


class Account:
    """Entry point to a SimpleDB account.

    Hands out domain and partition references bound to one `Fetcher`.
    Constructing references makes no request.
    """

    def __init__(
        self,
        remote: Remote | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        consistent_read: bool | None = None,
        max_batch_items: int | None = None,
    ):
        from ..settings import get_settings

        s = get_settings()
        self.fetcher = Fetcher(
            remote if remote is not None else Boto3Remote(),
            retry_policy=retry_policy or RetryPolicy.from_settings(),
        )
        self.consistent_read = s.sdb_consistent_read if consistent_read is None else consistent_read
        self.max_batch_items = s.sdb_max_batch_items if max_batch_items is None else max_batch_items

    def domain(self, name: str) -> Domain:
        return Domain(
            name,
            self.fetcher,
            consistent_read=self.consistent_read,
            max_batch_items=self.max_batch_items,
        )

    def partitions(self, *names: str | Iterable[str], router: Router | None = None) -> Partitions:
        flat: list[str] = []
        for n in names:
            if isinstance(n, str):
                flat.append(n)
            else:
                flat.extend(n)
        return Partitions(
            flat,
            self.fetcher,
            router=router,
            consistent_read=self.consistent_read,
            max_batch_items=self.max_batch_items,
        )

    def domains(self, *, page_size: int | None = None) -> Stream[Domain]:
        """Every domain in the account (ListDomains), fetched lazily."""
        pages = Paginator(self.fetcher, ListDomainsRequest(max_domains=page_size))
        return Stream(lambda: pages.items(self.domain))

    def select(self, expression: str) -> Stream[ItemNameSnapshot]:
        """Run a raw select; `expression` may omit the leading ``select``."""
        expr = expression.strip()
        if not (expr[:6].lower() == "select" and expr[6:7].isspace()):
            expr = "select " + expr
        pages = Paginator(self.fetcher, SelectRequest.start(expr, consistent_read=self.consistent_read))

        def snapshot(i: SelectItem) -> ItemNameSnapshot:
            return ItemNameSnapshot(i.name, i.attributes)

        return Stream(lambda: pages.items(snapshot))
