"""Status report domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class EntryStatus:
    """Diagnostics for a single live cache entry."""

    key: str
    hit_count: int
    cached_at: datetime
    last_accessed: datetime
    expires_at: datetime


@dataclass(frozen=True)
class StatusReport:
    """Snapshot of the cache for observability.

    Attributes:
        entry_count: Number of live entries
        max_size: Configured capacity
        ttl_seconds: Configured time-to-live
        fuzzy_threshold: Configured minimum similarity
        created_at: When the persisted document was first created
        last_updated: When the persisted document was last written
        entries: Live entries sorted by hit count, highest first
        performance: In-process hit/miss counters
        backend: Storage backend description
    """

    entry_count: int
    max_size: int
    ttl_seconds: float
    fuzzy_threshold: float
    created_at: datetime | None
    last_updated: datetime | None
    entries: list[EntryStatus] = field(default_factory=list)
    performance: dict[str, float | int] = field(default_factory=dict)
    backend: dict[str, Any] = field(default_factory=dict)
