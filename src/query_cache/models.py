import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field

from query_cache.entities import CacheEntryEntity
from query_cache.exceptions import StorageWriteError


def _has_non_finite(value: Any) -> bool:
    if isinstance(value, float):
        return not math.isfinite(value)
    if isinstance(value, dict):
        return any(_has_non_finite(v) for v in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(_has_non_finite(v) for v in value)
    return False


class StoredEntry(BaseModel):
    """Persisted form of a cache entry."""

    value: Any = None
    cached_at: AwareDatetime
    expires_at: AwareDatetime
    last_accessed: AwareDatetime
    hit_count: int = Field(0, ge=0)

    def to_entity(self, key: str) -> CacheEntryEntity:
        """Convert to the domain entity."""
        return CacheEntryEntity(
            key=key,
            value=self.value,
            cached_at=self.cached_at,
            expires_at=self.expires_at,
            last_accessed=self.last_accessed,
            hit_count=self.hit_count,
        )

    @classmethod
    def from_entity(cls, entry: CacheEntryEntity) -> "StoredEntry":
        """Build from the domain entity."""
        return cls(
            value=entry.value,
            cached_at=entry.cached_at,
            expires_at=entry.expires_at,
            last_accessed=entry.last_accessed,
            hit_count=entry.hit_count,
        )


class CacheMetadata(BaseModel):
    """Document-level bookkeeping."""

    max_size: int = Field(..., ge=1)
    current_size: int = Field(0, ge=0)
    created_at: AwareDatetime
    last_updated: AwareDatetime


class CacheDocument(BaseModel):
    """The whole persisted cache: entries keyed by query plus metadata."""

    entries: dict[str, StoredEntry] = Field(default_factory=dict)
    metadata: CacheMetadata

    model_config = {"extra": "ignore"}

    @classmethod
    def empty(cls, max_size: int, now: datetime) -> "CacheDocument":
        """A fresh document with no entries."""
        return cls(
            entries={},
            metadata=CacheMetadata(
                max_size=max_size,
                current_size=0,
                created_at=now,
                last_updated=now,
            ),
        )

    def to_entities(self) -> dict[str, CacheEntryEntity]:
        """Entries as domain entities, preserving insertion order."""
        return {key: stored.to_entity(key) for key, stored in self.entries.items()}

    def replace_entries(
        self, entries: dict[str, CacheEntryEntity], max_size: int, now: datetime
    ) -> None:
        """Swap in mutated entities and refresh metadata."""
        self.entries = {key: StoredEntry.from_entity(entry) for key, entry in entries.items()}
        self.metadata.max_size = max_size
        self.metadata.current_size = len(self.entries)
        self.metadata.last_updated = now

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-compatible dict with ISO-8601 timestamps.

        Raises:
            StorageWriteError: If a cached value cannot be serialized, or
                holds NaN or infinity (JSON mode would turn them into null)
        """
        for key, stored in self.entries.items():
            if _has_non_finite(stored.value):
                raise StorageWriteError(f"Cached value for {key!r} contains NaN or infinity")
        try:
            return self.model_dump(mode="json")
        except ValueError as e:
            # PydanticSerializationError is a ValueError
            raise StorageWriteError(f"Cached value is not JSON-serializable: {e}") from e


@dataclass
class PerformanceMetrics:
    """Track in-process lookup statistics."""

    exact_hits: int = 0
    fuzzy_hits: int = 0
    misses: int = 0
    total_lookup_time_ms: float = 0.0

    @property
    def total_lookups(self) -> int:
        """Number of lookups recorded."""
        return self.exact_hits + self.fuzzy_hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_lookups == 0:
            return 0.0
        return (self.exact_hits + self.fuzzy_hits) / self.total_lookups

    @property
    def avg_lookup_time_ms(self) -> float:
        """Calculate average lookup time."""
        if self.total_lookups == 0:
            return 0.0
        return self.total_lookup_time_ms / self.total_lookups

    def record_exact_hit(self, lookup_time_ms: float) -> None:
        """Record an exact cache hit."""
        self.exact_hits += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_fuzzy_hit(self, lookup_time_ms: float) -> None:
        """Record a fuzzy cache hit."""
        self.fuzzy_hits += 1
        self.total_lookup_time_ms += lookup_time_ms

    def record_miss(self, lookup_time_ms: float) -> None:
        """Record a cache miss."""
        self.misses += 1
        self.total_lookup_time_ms += lookup_time_ms

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_lookups": self.total_lookups,
            "exact_hits": self.exact_hits,
            "fuzzy_hits": self.fuzzy_hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "avg_lookup_time_ms": self.avg_lookup_time_ms,
        }
