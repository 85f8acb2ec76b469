from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Union

if TYPE_CHECKING:
    from .domain import Item
    from .errors import SdbError


# --- write operations ---


@dataclass(frozen=True, slots=True)
class AddValue:
    item_name: str
    attribute: str
    value: str

    replace = False


@dataclass(frozen=True, slots=True)
class ReplaceValue:
    item_name: str
    attribute: str
    value: str

    replace = True


AttributeOperation = Union[AddValue, ReplaceValue]


# --- put conditions ---


@dataclass(frozen=True, slots=True)
class NoCondition:
    pass


@dataclass(frozen=True, slots=True)
class Equals:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class DoesNotExist:
    name: str


PutCondition = Union[NoCondition, Equals, DoesNotExist]


# --- responses ---


@dataclass(frozen=True, slots=True)
class SelectItem:
    name: str
    attributes: Mapping[str, frozenset[str]]


@dataclass(slots=True)
class Page:
    items: list[Any]
    next_token: str | None = None


@dataclass(frozen=True, slots=True)
class ResponseMetadata:
    request_id: str | None = None
    box_usage: float | None = None


@dataclass(frozen=True, slots=True)
class DomainMetadata:
    item_count: int = 0
    item_names_size_bytes: int = 0
    attribute_name_count: int = 0
    attribute_names_size_bytes: int = 0
    attribute_value_count: int = 0
    attribute_values_size_bytes: int = 0
    timestamp: datetime | None = None


@dataclass(slots=True)
class ShardWriteResult:
    """Outcome of one batched write against one shard."""

    domain: str
    operations: tuple[AttributeOperation, ...]
    metadata: ResponseMetadata | None = None
    error: SdbError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


# --- snapshots ---


def freeze_attributes(attributes: Mapping[str, Any] | None) -> Mapping[str, frozenset[str]]:
    out: dict[str, frozenset[str]] = {}
    for name, values in (attributes or {}).items():
        if isinstance(values, str):
            values = (values,)
        out[str(name)] = frozenset(str(v) for v in values)
    return MappingProxyType(out)


class _Snapshot:
    __slots__ = ("_attributes",)

    def __init__(self, attributes: Mapping[str, Any] | None):
        self._attributes = freeze_attributes(attributes)

    def get(self, name: str, default: frozenset[str] | None = None) -> frozenset[str] | None:
        return self._attributes.get(name, default)

    def values_of(self, name: str) -> frozenset[str]:
        """Values for `name`; empty when the attribute is absent."""
        return self._attributes.get(name, frozenset())

    def __getitem__(self, name: str) -> frozenset[str]:
        return self._attributes[name]

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def keys(self):
        return self._attributes.keys()

    def items(self):
        return self._attributes.items()

    def as_dict(self) -> dict[str, frozenset[str]]:
        return dict(self._attributes)


class ItemSnapshot(_Snapshot):
    """Attributes of an item as read at one point in time.

    The `item` field is a live reference that can be used for updates or
    further reads.
    """

    __slots__ = ("item",)

    def __init__(self, item: Item, attributes: Mapping[str, Any] | None):
        super().__init__(attributes)
        self.item = item

    @property
    def batch(self):
        return self.item.batch

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ItemSnapshot):
            return NotImplemented
        return self.item == other.item and dict(self._attributes) == dict(other._attributes)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ItemSnapshot({self.item!r}, {dict(self._attributes)!r})"


class ItemNameSnapshot(_Snapshot):
    """Like `ItemSnapshot`, but only the item name is known (no domain)."""

    __slots__ = ("name",)

    def __init__(self, name: str, attributes: Mapping[str, Any] | None):
        super().__init__(attributes)
        self.name = name

    @property
    def batch(self):
        from .batch import Batch

        return Batch(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ItemNameSnapshot):
            return NotImplemented
        return self.name == other.name and dict(self._attributes) == dict(other._attributes)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ItemNameSnapshot({self.name!r}, {dict(self._attributes)!r})"
