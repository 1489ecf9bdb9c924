"""Lookup result domain entity."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class MatchKind(str, Enum):
    """How a cache hit was found."""

    EXACT = "exact"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class LookupResult(Generic[T]):
    """Outcome of a cache lookup.

    Attributes:
        hit: Whether a live entry was found
        kind: EXACT or FUZZY for hits, None for misses
        value: The cached payload on a hit (or a freshly fetched one from get_or_fetch)
        matched_key: The stored key that produced the hit
        similarity: Normalized similarity of the match (1.0 for exact hits)
    """

    hit: bool
    kind: MatchKind | None = None
    value: T | None = None
    matched_key: str | None = None
    similarity: float | None = None

    @classmethod
    def miss(cls, value: T | None = None) -> "LookupResult[T]":
        """A miss, optionally carrying a freshly computed value."""
        return cls(hit=False, value=value)
