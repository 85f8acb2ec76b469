"""Domain, partition and item references.

None of these objects hold data beyond names: every read or write results in
a request through the `Fetcher` they were constructed with.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

from .batch import MAX_BATCH_ITEMS, Batch, BatchCoordinator, as_put_attributes, combine_pairs
from .model import (
    AttributeOperation,
    DomainMetadata,
    ItemNameSnapshot,
    ItemSnapshot,
    NoCondition,
    PutCondition,
    ResponseMetadata,
    SelectItem,
    ShardWriteResult,
)
from .pagination import Paginator, Stream, flatten
from .requests import (
    CreateDomainRequest,
    DeleteAttributesRequest,
    DeleteDomainRequest,
    DomainMetadataRequest,
    GetAttributesRequest,
    PutAttributesRequest,
    SelectRequest,
)
from .retry import Fetcher
from .routing import Router, default_route


def quote_name(name: str) -> str:
    """Quote a domain or attribute name for a select expression."""
    return "`" + name.replace("`", "``") + "`"


def attribute_names(attributes: str | Iterable[str]) -> tuple[str, ...]:
    """A single name or an iterable of names, as a tuple."""
    if isinstance(attributes, str):
        return (attributes,)
    return tuple(attributes)


def select_expression(
    domain: str,
    *,
    where: str | None = None,
    attributes: str | Iterable[str] = (),
) -> str:
    names = sorted(set(attribute_names(attributes)))
    output = ", ".join(quote_name(n) for n in names) if names else "*"
    expr = f"select {output} from {quote_name(domain)}"
    if where:
        expr += f" where {where}"
    return expr


class DomainLike(ABC):
    """Operations shared by a single domain and a set of partitions."""

    @abstractmethod
    def create(self) -> Any:
        """Create the domain(s) if they don't exist already (CreateDomain)."""

    @abstractmethod
    def delete(self) -> Any:
        """Delete the domain(s) (DeleteDomain)."""

    @abstractmethod
    def metadata(self) -> Any:
        ...

    @abstractmethod
    def item(self, name: str | ItemNameSnapshot) -> Item:
        """Reference to an item; no request is made."""

    @abstractmethod
    def unique(self) -> Item:
        """Reference to an item named by a fresh UUID."""

    @abstractmethod
    def items(self) -> Stream[Item]:
        """Every item name in the domain, without attributes."""

    def items_with_attributes(self) -> Stream[ItemSnapshot]:
        return self.with_attributes()

    @abstractmethod
    def with_attributes(
        self, expression: str | None = None, attributes: str | Iterable[str] = ()
    ) -> Stream[ItemSnapshot]:
        """Items matching an optional where-expression, with all or selected attributes.

        Pages are requested lazily as the stream is read.
        """

    def query(self, expression: str, attributes: str | Iterable[str] = ()) -> Stream[ItemSnapshot]:
        return self.with_attributes(expression, attributes)

    def first(self, expression: str | None = None, attributes: str | Iterable[str] = ()) -> ItemSnapshot | None:
        return self.with_attributes(expression, attributes).first()

    @abstractmethod
    def apply(self, *batches: Iterable[AttributeOperation]) -> list[ShardWriteResult]:
        """Apply batches of attribute operations, one BatchPutAttributes per shard."""


class Domain(DomainLike):
    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        *,
        consistent_read: bool = False,
        max_batch_items: int = MAX_BATCH_ITEMS,
    ):
        self.name = str(name)
        self.fetcher = fetcher
        self.consistent_read = consistent_read
        self.max_batch_items = max_batch_items

    def metadata(self) -> DomainMetadata:
        return self.fetcher.execute(DomainMetadataRequest(self.name))

    def create(self) -> ResponseMetadata:
        return self.fetcher.execute(CreateDomainRequest(self.name))

    def delete(self) -> ResponseMetadata:
        return self.fetcher.execute(DeleteDomainRequest(self.name))

    def item(self, name: str | ItemNameSnapshot) -> Item:
        if isinstance(name, ItemNameSnapshot):
            name = name.name
        return Item(self, name)

    def unique(self) -> Item:
        return Item(self, str(uuid.uuid4()))

    def _select(self, expression: str) -> Paginator:
        return Paginator(self.fetcher, SelectRequest.start(expression, consistent_read=self.consistent_read))

    def items(self) -> Stream[Item]:
        pages = self._select(f"select itemName() from {quote_name(self.name)}")
        return Stream(lambda: pages.items(lambda i: self.item(i.name)))

    def with_attributes(
        self, expression: str | None = None, attributes: str | Iterable[str] = ()
    ) -> Stream[ItemSnapshot]:
        attributes = attribute_names(attributes)
        pages = self._select(select_expression(self.name, where=expression, attributes=attributes))

        def snapshot(i: SelectItem) -> ItemSnapshot:
            return ItemSnapshot(self.item(i.name), i.attributes)

        return Stream(lambda: pages.items(snapshot))

    def apply(self, *batches: Iterable[AttributeOperation]) -> list[ShardWriteResult]:
        coordinator = BatchCoordinator(self.fetcher, [self], max_batch_items=self.max_batch_items)
        return coordinator.apply(*batches)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Domain) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("Domain", self.name))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Domain({self.name!r})"


class Partitions(DomainLike):
    """Several domains presented as one, with items routed by name.

    Reads traverse the domains one after another in sorted name order.
    """

    def __init__(
        self,
        names: Iterable[str],
        fetcher: Fetcher,
        *,
        router: Router | None = None,
        consistent_read: bool = False,
        max_batch_items: int = MAX_BATCH_ITEMS,
    ):
        ordered = sorted(set(str(n) for n in names))
        if not ordered:
            raise ValueError("at least one partition is required")
        self.fetcher = fetcher
        self.router = router or default_route
        self.domains: tuple[Domain, ...] = tuple(
            Domain(n, fetcher, consistent_read=consistent_read, max_batch_items=max_batch_items)
            for n in ordered
        )
        self._coordinator = BatchCoordinator(
            fetcher, self.domains, router=self.router, max_batch_items=max_batch_items
        )

    @property
    def names(self) -> list[str]:
        return [d.name for d in self.domains]

    def partition(self, key: str) -> Domain:
        return self.router(key, self.domains)

    def metadata(self) -> list[DomainMetadata]:
        return [d.metadata() for d in self.domains]

    def create(self) -> list[ResponseMetadata]:
        return [d.create() for d in self.domains]

    def delete(self) -> list[ResponseMetadata]:
        return [d.delete() for d in self.domains]

    def item(self, name: str | ItemNameSnapshot) -> Item:
        if isinstance(name, ItemNameSnapshot):
            name = name.name
        return self.partition(name).item(name)

    def unique(self) -> Item:
        name = str(uuid.uuid4())
        return Item(self.partition(name), name)

    def items(self) -> Stream[Item]:
        return Stream(lambda: flatten(d.items() for d in self.domains))

    def with_attributes(
        self, expression: str | None = None, attributes: str | Iterable[str] = ()
    ) -> Stream[ItemSnapshot]:
        attributes = attribute_names(attributes)
        return Stream(lambda: flatten(d.with_attributes(expression, attributes) for d in self.domains))

    def apply(self, *batches: Iterable[AttributeOperation]) -> list[ShardWriteResult]:
        return self._coordinator.apply(*batches)

    def __str__(self) -> str:
        return "[" + ",".join(self.names) + "]"

    def __repr__(self) -> str:
        return f"Partitions({self.names!r})"


class Item:
    """Reference to a named item within a domain."""

    def __init__(self, domain: Domain, name: str):
        self.domain = domain
        self.name = str(name)

    @property
    def fetcher(self) -> Fetcher:
        return self.domain.fetcher

    @property
    def path(self) -> str:
        return f"{self.domain.name}.{self.name}"

    @property
    def batch(self) -> Batch:
        return Batch(self.name)

    # --- reads ---

    def _get(self, names: str | Iterable[str]) -> Mapping[str, frozenset[str]]:
        return self.fetcher.execute(
            GetAttributesRequest(
                self.domain.name,
                self.name,
                frozenset(attribute_names(names)),
                consistent_read=self.domain.consistent_read,
            )
        )

    def attributes(self, names: str | Iterable[str] = ()) -> ItemSnapshot:
        """All attributes, or only `names` when given."""
        return ItemSnapshot(self, self._get(names))

    def attributes_or_none(self) -> ItemSnapshot | None:
        snap = self.attributes()
        return snap if len(snap) else None

    def attribute(self, name: str) -> frozenset[str]:
        return frozenset(self._get([name]).get(name) or ())

    # --- writes ---

    def update(
        self,
        values: Mapping[str, tuple[Iterable[str], bool]],
        condition: PutCondition | None = None,
    ) -> ResponseMetadata:
        """PutAttributes: per attribute, replace (True) or add to (False) the existing values.

        Attributes left without values (every value None, or none given) are
        dropped. When nothing remains no request is made and an empty
        `ResponseMetadata()` is returned.
        """
        attributes = {name: v for name, v in as_put_attributes(values).items() if v[0]}
        if not attributes:
            return ResponseMetadata()
        return self.fetcher.execute(
            PutAttributesRequest(
                self.domain.name,
                self.name,
                attributes,
                condition or NoCondition(),
            )
        )

    def add(self, *pairs: tuple[str, str | None]) -> ResponseMetadata:
        return self.update(combine_pairs(False, pairs))

    def add_if(self, condition: PutCondition, *pairs: tuple[str, str | None]) -> ResponseMetadata:
        return self.update(combine_pairs(False, pairs), condition)

    def add_values(self, name: str, values: Iterable[str]) -> ResponseMetadata:
        return self.update({name: (values, False)})

    def set(self, *pairs: tuple[str, str | None]) -> ResponseMetadata:
        return self.update(combine_pairs(True, pairs))

    def set_if(self, condition: PutCondition, *pairs: tuple[str, str | None]) -> ResponseMetadata:
        return self.update(combine_pairs(True, pairs), condition)

    def set_values(self, name: str, values: Iterable[str]) -> ResponseMetadata:
        return self.update({name: (values, True)})

    def remove(self, name: str, value: str | None = None) -> ResponseMetadata:
        """Delete one value of an attribute, or the whole attribute when `value` is None."""
        values = frozenset() if value is None else frozenset([value])
        return self.fetcher.execute(DeleteAttributesRequest(self.domain.name, self.name, {name: values}))

    def clear(self) -> ResponseMetadata:
        return self.fetcher.execute(DeleteAttributesRequest(self.domain.name, self.name))

    delete = clear

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Item) and other.path == self.path

    def __hash__(self) -> int:
        return hash(("Item", self.path))

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Item({self.path!r})"
