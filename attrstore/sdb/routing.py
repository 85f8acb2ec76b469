from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Sequence

if TYPE_CHECKING:
    from .domain import Domain

Router = Callable[[str, Sequence["Domain"]], "Domain"]


def java_string_hash(key: str) -> int:
    """32-bit signed polynomial string hash over UTF-16 code units.

    Stable across processes and interpreters, unlike the salted builtin
    `hash()`, and identical to what JVM clients compute for the same key.
    """
    raw = key.encode("utf-16-be")
    h = 0
    for i in range(0, len(raw), 2):
        h = (31 * h + ((raw[i] << 8) | raw[i + 1])) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def _truncated_mod(a: int, n: int) -> int:
    # Remainder takes the sign of the dividend.
    r = abs(a) % n
    return -r if a < 0 else r


def default_route(key: str, domains: Sequence[Domain]) -> Domain:
    if not domains:
        raise ValueError("at least one domain is required")
    index = abs(_truncated_mod(java_string_hash(key), len(domains)))
    if not index > 0:
        index = 0
    return domains[index]
