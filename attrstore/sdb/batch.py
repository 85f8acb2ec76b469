from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Mapping, Sequence

from ..observability.logging import get_logger
from .errors import SdbBatchTooLarge, SdbError
from .model import AddValue, AttributeOperation, ReplaceValue, ShardWriteResult
from .requests import BatchPutRequest
from .routing import Router, default_route

if TYPE_CHECKING:
    from .domain import Domain
    from .retry import Fetcher

log = get_logger("attrstore.sdb.batch")

# BatchPutAttributes accepts at most this many items per call.
MAX_BATCH_ITEMS = 25


def combine_pairs(
    replace: bool, pairs: Iterable[tuple[str, str | None]]
) -> dict[str, tuple[frozenset[str], bool]]:
    """Fold (name, value) pairs into a PutAttributes mapping.

    Values for the same name accumulate; `None` values are skipped.
    """
    values: dict[str, set[str]] = {}
    for name, value in pairs:
        if value is None:
            continue
        values.setdefault(name, set()).add(value)
    return {name: (frozenset(vs), replace) for name, vs in values.items()}


class Batch:
    """Builds batch operations for one item."""

    def __init__(self, item_name: str):
        self.item_name = item_name

    def add(self, *pairs: tuple[str, str | None]) -> list[AttributeOperation]:
        """Add values to one or more attributes."""
        return [AddValue(self.item_name, name, value) for name, value in pairs if value is not None]

    def set(self, *pairs: tuple[str, str | None]) -> list[AttributeOperation]:
        """Replace the values of one or more attributes."""
        return [ReplaceValue(self.item_name, name, value) for name, value in pairs if value is not None]

    def __repr__(self) -> str:
        return f"Batch({self.item_name!r})"


def concat(batches: Iterable[Iterable[AttributeOperation]]) -> list[AttributeOperation]:
    out: list[AttributeOperation] = []
    for b in batches:
        out.extend(b)
    return out


class BatchCoordinator:
    """Routes attribute operations to shards and issues one batched write per shard."""

    def __init__(
        self,
        fetcher: Fetcher,
        domains: Sequence[Domain],
        *,
        router: Router | None = None,
        max_batch_items: int = MAX_BATCH_ITEMS,
    ):
        if not domains:
            raise ValueError("at least one domain is required")
        self.fetcher = fetcher
        # Routing and write order both depend on sorted names.
        self.domains = tuple(sorted(domains, key=lambda d: d.name))
        self.router = router or default_route
        self.max_batch_items = max_batch_items

    def group(self, operations: Iterable[AttributeOperation]) -> dict[str, list[AttributeOperation]]:
        """Group operations by target domain name, in domain order."""
        groups: dict[str, list[AttributeOperation]] = {d.name: [] for d in self.domains}
        if len(self.domains) == 1:
            groups[self.domains[0].name].extend(operations)
        else:
            for op in operations:
                target = self.router(op.item_name, self.domains).name
                if target not in groups:
                    raise ValueError(f"router returned unknown domain: {target}")
                groups[target].append(op)
        return {name: ops for name, ops in groups.items() if ops}

    def apply(self, *batches: Iterable[AttributeOperation]) -> list[ShardWriteResult]:
        results: list[ShardWriteResult] = []
        for domain, ops in self.group(concat(batches)).items():
            results.append(self._write(domain, tuple(ops)))
        return results

    def _write(self, domain: str, operations: tuple[AttributeOperation, ...]) -> ShardWriteResult:
        request = BatchPutRequest(domain=domain, operations=operations)
        size = len(request.item_names())
        if size > self.max_batch_items:
            err = SdbBatchTooLarge(
                message=f"Batch for domain {domain} names {size} items (limit {self.max_batch_items})",
                operation=request.operation,
                domain=domain,
                size=size,
                limit=self.max_batch_items,
            )
            log.warning("shard_batch_too_large", domain=domain, size=size, limit=self.max_batch_items)
            return ShardWriteResult(domain=domain, operations=operations, error=err)

        try:
            metadata = self.fetcher.execute(request)
        except SdbError as e:
            log.warning("shard_write_failed", domain=domain, operations=len(operations), error=str(e))
            return ShardWriteResult(domain=domain, operations=operations, error=e)
        return ShardWriteResult(domain=domain, operations=operations, metadata=metadata)


def raise_for_errors(results: Iterable[ShardWriteResult]) -> list[ShardWriteResult]:
    """Raise the first shard error, if any; otherwise return the results."""
    results = list(results)
    for r in results:
        r.raise_for_error()
    return results


def as_put_attributes(
    values: Mapping[str, tuple[Iterable[str], bool]],
) -> dict[str, tuple[frozenset[str], bool]]:
    return {name: (frozenset(v for v in vs if v is not None), bool(rep)) for name, (vs, rep) in values.items()}
