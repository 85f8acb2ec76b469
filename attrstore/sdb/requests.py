"""Request descriptors understood by a `Remote`.

Descriptors are immutable and carry no transport detail. Paginated
descriptors know how to derive their successor from a continuation token.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Union

from .model import AttributeOperation, NoCondition, PutCondition


@dataclass(frozen=True, slots=True)
class SelectRequest:
    expression: str
    consistent_read: bool = False
    next_token: str | None = None

    operation = "Select"

    @classmethod
    def start(cls, expression: str, *, consistent_read: bool = False) -> "SelectRequest":
        return cls(expression=expression, consistent_read=consistent_read)

    def next(self, next_token: str) -> "SelectRequest":
        return replace(self, next_token=next_token)


@dataclass(frozen=True, slots=True)
class ListDomainsRequest:
    max_domains: int | None = None
    next_token: str | None = None

    operation = "ListDomains"

    def next(self, next_token: str) -> "ListDomainsRequest":
        return replace(self, next_token=next_token)


@dataclass(frozen=True, slots=True)
class BatchPutRequest:
    domain: str
    operations: tuple[AttributeOperation, ...]
    condition: PutCondition = field(default_factory=NoCondition)

    operation = "BatchPutAttributes"

    def item_names(self) -> list[str]:
        # First-appearance order.
        return list(dict.fromkeys(op.item_name for op in self.operations))


@dataclass(frozen=True, slots=True)
class PutAttributesRequest:
    domain: str
    item: str
    # attribute name -> (values, replace)
    attributes: Mapping[str, tuple[frozenset[str], bool]]
    condition: PutCondition = field(default_factory=NoCondition)

    operation = "PutAttributes"


@dataclass(frozen=True, slots=True)
class GetAttributesRequest:
    domain: str
    item: str
    attribute_names: frozenset[str] = frozenset()
    consistent_read: bool = False

    operation = "GetAttributes"


@dataclass(frozen=True, slots=True)
class DeleteAttributesRequest:
    domain: str
    item: str
    # attribute name -> values; an empty set deletes every value of the attribute,
    # an empty mapping deletes the whole item.
    attributes: Mapping[str, frozenset[str]] = field(default_factory=dict)
    condition: PutCondition = field(default_factory=NoCondition)

    operation = "DeleteAttributes"


@dataclass(frozen=True, slots=True)
class DomainMetadataRequest:
    domain: str

    operation = "DomainMetadata"


@dataclass(frozen=True, slots=True)
class CreateDomainRequest:
    domain: str

    operation = "CreateDomain"


@dataclass(frozen=True, slots=True)
class DeleteDomainRequest:
    domain: str

    operation = "DeleteDomain"


SdbRequest = Union[
    SelectRequest,
    ListDomainsRequest,
    BatchPutRequest,
    PutAttributesRequest,
    GetAttributesRequest,
    DeleteAttributesRequest,
    DomainMetadataRequest,
    CreateDomainRequest,
    DeleteDomainRequest,
]
