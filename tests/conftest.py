from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure the repo root is on sys.path so `import attrstore.*` works without installing.
ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))


_SELECT_RE = re.compile(
    r"^select\s+(?P<output>.+?) from `(?P<domain>(?:[^`]|``)+)`(?: where (?P<where>.+))?$",
    re.IGNORECASE,
)
_WHERE_EQ_RE = re.compile(r"^`?(?P<name>[^`=\s]+)`?\s*=\s*'(?P<value>[^']*)'$")


class FakeSimpleDB:
    """
    Minimal in-memory stand-in for the remote service, speaking the `Remote` protocol.

    Select supports `*`, `itemName()` or a backticked attribute list, and a
    single `name = 'value'` where clause. Results are paged `page_size` at a
    time in insertion order.
    """

    def __init__(self, *, page_size: int = 2):
        self.page_size = page_size
        # domain -> item -> attribute -> values
        self.data: dict[str, dict[str, dict[str, set[str]]]] = {}
        self.calls: list[Any] = []
        # Exceptions raised (in order) by the next calls, before any work is done.
        self.failures: list[Exception] = []

    # --- helpers for tests ---

    def seed(self, domain: str, item: str, **attributes: Any) -> None:
        items = self.data.setdefault(domain, {})
        attrs = items.setdefault(item, {})
        for k, v in attributes.items():
            values = {v} if isinstance(v, str) else set(v)
            attrs.setdefault(k, set()).update(values)

    def calls_of(self, cls: type) -> list[Any]:
        return [c for c in self.calls if isinstance(c, cls)]

    # --- Remote protocol ---

    def issue(self, request: Any) -> Any:
        self.calls.append(request)
        if self.failures:
            raise self.failures.pop(0)
        return getattr(self, "_" + type(request).__name__)(request)

    def _domain(self, name: str) -> dict[str, dict[str, set[str]]]:
        from attrstore.sdb.errors import SdbNotFound

        if name not in self.data:
            raise SdbNotFound(message=f"no such domain {name}", domain=name)
        return self.data[name]

    def _page(self, rows: list[Any], token: str | None, size: int | None = None):
        from attrstore.sdb.model import Page

        size = size or self.page_size
        start = int(token or 0)
        end = start + size
        return Page(items=rows[start:end], next_token=str(end) if end < len(rows) else None)

    def _SelectRequest(self, req):
        from attrstore.sdb.model import SelectItem

        m = _SELECT_RE.match(req.expression.strip())
        assert m, req.expression
        items = self._domain(m.group("domain").replace("``", "`"))
        output = m.group("output").strip()
        where = m.group("where")
        cond = _WHERE_EQ_RE.match(where.strip()) if where else None

        rows = []
        for name, attrs in items.items():
            if cond and cond.group("value") not in attrs.get(cond.group("name"), set()):
                continue
            if output == "itemName()":
                picked: dict[str, set[str]] = {}
            elif output == "*":
                picked = attrs
            else:
                wanted = [n.strip().strip("`") for n in output.split(",")]
                picked = {k: v for k, v in attrs.items() if k in wanted}
            rows.append(SelectItem(name=name, attributes={k: frozenset(v) for k, v in picked.items()}))
        return self._page(rows, req.next_token)

    def _ListDomainsRequest(self, req):
        return self._page(sorted(self.data), req.next_token, req.max_domains)

    def _check(self, attrs: dict[str, set[str]], condition: Any, req: Any) -> None:
        from attrstore.sdb.errors import SdbConflict
        from attrstore.sdb.model import DoesNotExist, Equals

        if isinstance(condition, Equals) and attrs.get(condition.name) != {condition.value}:
            raise SdbConflict(message="conditional check failed", domain=req.domain, item=req.item)
        if isinstance(condition, DoesNotExist) and condition.name in attrs:
            raise SdbConflict(message="conditional check failed", domain=req.domain, item=req.item)

    def _BatchPutRequest(self, req):
        from attrstore.sdb.model import ResponseMetadata

        items = self._domain(req.domain)
        replaced: set[tuple[str, str]] = set()
        for op in req.operations:
            attrs = items.setdefault(op.item_name, {})
            key = (op.item_name, op.attribute)
            if op.replace and key not in replaced:
                attrs[op.attribute] = set()
                replaced.add(key)
            attrs.setdefault(op.attribute, set()).add(op.value)
        return ResponseMetadata(request_id=f"batch-{len(self.calls)}")

    def _PutAttributesRequest(self, req):
        from attrstore.sdb.model import ResponseMetadata

        items = self._domain(req.domain)
        attrs = items.get(req.item, {})
        self._check(attrs, req.condition, req)
        attrs = items.setdefault(req.item, {})
        for name, (values, replace) in req.attributes.items():
            if replace:
                attrs[name] = set(values)
            else:
                attrs.setdefault(name, set()).update(values)
        return ResponseMetadata(request_id=f"put-{len(self.calls)}")

    def _GetAttributesRequest(self, req):
        attrs = self._domain(req.domain).get(req.item, {})
        return {
            k: frozenset(v)
            for k, v in attrs.items()
            if not req.attribute_names or k in req.attribute_names
        }

    def _DeleteAttributesRequest(self, req):
        from attrstore.sdb.model import ResponseMetadata

        items = self._domain(req.domain)
        attrs = items.get(req.item, {})
        self._check(attrs, req.condition, req)
        if not req.attributes:
            items.pop(req.item, None)
        else:
            for name, values in req.attributes.items():
                if not values:
                    attrs.pop(name, None)
                else:
                    attrs.get(name, set()).difference_update(values)
                    if not attrs.get(name):
                        attrs.pop(name, None)
            if req.item in items and not items[req.item]:
                items.pop(req.item)
        return ResponseMetadata(request_id=f"delete-{len(self.calls)}")

    def _DomainMetadataRequest(self, req):
        from attrstore.sdb.model import DomainMetadata

        items = self._domain(req.domain)
        names = {n for attrs in items.values() for n in attrs}
        return DomainMetadata(
            item_count=len(items),
            attribute_name_count=len(names),
            attribute_value_count=sum(len(v) for attrs in items.values() for v in attrs.values()),
        )

    def _CreateDomainRequest(self, req):
        from attrstore.sdb.model import ResponseMetadata

        self.data.setdefault(req.domain, {})
        return ResponseMetadata(request_id="create")

    def _DeleteDomainRequest(self, req):
        from attrstore.sdb.model import ResponseMetadata

        self.data.pop(req.domain, None)
        return ResponseMetadata(request_id="delete-domain")


@pytest.fixture()
def fake_sdb():
    return FakeSimpleDB()


@pytest.fixture()
def no_sleep(monkeypatch):
    """Record backoff delays instead of sleeping."""
    import attrstore.sdb.retry as retry

    slept: list[float] = []
    monkeypatch.setattr(retry.time, "sleep", lambda s: slept.append(s))
    return slept


@pytest.fixture()
def account(fake_sdb, no_sleep):
    from attrstore.sdb.account import Account
    from attrstore.sdb.retry import RetryPolicy

    return Account(fake_sdb, retry_policy=RetryPolicy(max_attempts=3, base_delay_s=0.01, max_delay_s=0.04))
