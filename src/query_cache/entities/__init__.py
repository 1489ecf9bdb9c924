"""Domain entities for internal representation.

These are plain dataclasses used internally by the service. They are NOT
used for API contracts (see the dto package) nor for the persisted
document (see ``query_cache.models``).
"""

from .cache_entry import CacheEntryEntity
from .lookup_result import LookupResult, MatchKind
from .status_report import EntryStatus, StatusReport

__all__ = [
    "CacheEntryEntity",
    "EntryStatus",
    "LookupResult",
    "MatchKind",
    "StatusReport",
]
