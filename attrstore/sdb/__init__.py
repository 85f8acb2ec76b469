"""SimpleDB access layer.

This package centralizes:
- boto3 client configuration
- retry/backoff for transient service failures
- lazy, token-driven pagination of select and list results
- partition routing and per-shard batched writes
- typed errors separating transient from permanent failures

"""

from .account import Account
from .batch import Batch, BatchCoordinator, combine_pairs, raise_for_errors
from .domain import Domain, DomainLike, Item, Partitions
from .errors import (
    SdbAccessDenied,
    SdbBatchTooLarge,
    SdbConflict,
    SdbError,
    SdbInternal,
    SdbNotFound,
    SdbUnavailable,
    SdbValidation,
)
from .model import (
    AddValue,
    AttributeOperation,
    DoesNotExist,
    DomainMetadata,
    Equals,
    ItemNameSnapshot,
    ItemSnapshot,
    NoCondition,
    Page,
    PutCondition,
    ReplaceValue,
    ResponseMetadata,
    SelectItem,
    ShardWriteResult,
)
from .pagination import Paginator, Stream, flatten, paginate
from .remote import Boto3Remote, Remote
from .retry import Fetcher, RetryPolicy, sdb_call
from .routing import default_route, java_string_hash

__all__ = [
    "Account",
    "AddValue",
    "AttributeOperation",
    "Batch",
    "BatchCoordinator",
    "Boto3Remote",
    "DoesNotExist",
    "Domain",
    "DomainLike",
    "DomainMetadata",
    "Equals",
    "Fetcher",
    "Item",
    "ItemNameSnapshot",
    "ItemSnapshot",
    "NoCondition",
    "Page",
    "Paginator",
    "Partitions",
    "PutCondition",
    "Remote",
    "ReplaceValue",
    "ResponseMetadata",
    "RetryPolicy",
    "SdbAccessDenied",
    "SdbBatchTooLarge",
    "SdbConflict",
    "SdbError",
    "SdbInternal",
    "SdbNotFound",
    "SdbUnavailable",
    "SdbValidation",
    "SelectItem",
    "ShardWriteResult",
    "Stream",
    "combine_pairs",
    "default_route",
    "flatten",
    "java_string_hash",
    "paginate",
    "raise_for_errors",
    "sdb_call",
]
