"""Cache entry domain entity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class CacheEntryEntity:
    """Domain entity for a cached query and its retrieval results.

    This is an internal representation used by the service. The persisted
    form lives in ``query_cache.models``.

    Attributes:
        key: The literal query text the entry was stored under
        value: Opaque result payload, returned unchanged on a hit
        cached_at: When the entry was created
        expires_at: cached_at + ttl; the entry is absent after this instant
        last_accessed: Last hit (or creation) time, drives LRU eviction
        hit_count: Number of exact or fuzzy hits served
    """

    key: str
    value: Any
    cached_at: datetime
    expires_at: datetime
    last_accessed: datetime
    hit_count: int = 0

    def is_expired(self, now: datetime) -> bool:
        """True once now is past expires_at."""
        return now > self.expires_at

    def touch(self, now: datetime) -> None:
        """Record a hit. last_accessed never moves backwards."""
        self.last_accessed = max(self.last_accessed, now)
        self.hit_count += 1
