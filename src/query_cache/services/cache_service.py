"""Cache service for core business logic.

This service implements the query result cache that sits in front of the
vector-retrieval call: exact lookup, fuzzy fallback, TTL expiry, LRU
eviction and status reporting. Every operation loads the whole document
from the store, mutates it and writes it back under the store's lock.
"""

import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, Generic, TypeVar

import structlog
from pydantic import ValidationError

from query_cache.config import Settings, settings
from query_cache.entities import (
    CacheEntryEntity,
    EntryStatus,
    LookupResult,
    MatchKind,
    StatusReport,
)
from query_cache.exceptions import (
    InvalidQueryError,
    StorageCorruptError,
    StorageError,
    StorageWriteError,
)
from query_cache.matching import QueryMatcher
from query_cache.models import CacheDocument, PerformanceMetrics
from query_cache.protocols import CacheDocumentStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryCacheService(Generic[T]):
    """Query result cache with fuzzy-match lookup.

    This service depends on the CacheDocumentStore PROTOCOL, so the same
    logic runs against a JSON file, Redis or an in-memory store.

    Example:
        ```python
        from query_cache.repositories import InMemoryDocumentStore
        from query_cache.services import QueryCacheService

        cache = QueryCacheService.create(store=InMemoryDocumentStore())
        result = cache.lookup("Is parking available?")
        if not result.hit:
            cache.store("Is parking available?", search_vectors("parking"))
        ```
    """

    def __init__(
        self,
        store: CacheDocumentStore,
        ttl: float | None = None,
        max_size: int | None = None,
        fuzzy_threshold: float | None = None,
        stopwords: Iterable[str] | None = None,
        matcher: QueryMatcher | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the cache service.

        Args:
            store: Document persistence backend (required).
            ttl: Entry time-to-live in seconds. Defaults to settings.
            max_size: Maximum number of live entries. Defaults to settings.
            fuzzy_threshold: Minimum similarity for a fuzzy hit (0-1). Defaults to settings.
            stopwords: Normalization denylist. Defaults to settings, then the built-in list.
            matcher: Pre-built matcher; overrides fuzzy_threshold and stopwords.
            clock: Returns the current aware datetime. Defaults to UTC now.
        """
        ttl = settings.cache_ttl if ttl is None else ttl
        max_size = settings.cache_max_size if max_size is None else max_size
        if ttl <= 0:
            raise ValueError("TTL must be positive")
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        if matcher is None:
            threshold = settings.cache_fuzzy_threshold if fuzzy_threshold is None else fuzzy_threshold
            if stopwords is None:
                stopwords = settings.cache_stopwords
            matcher = QueryMatcher(threshold=threshold, stopwords=stopwords)

        self._store = store
        self._ttl = timedelta(seconds=ttl)
        self._max_size = max_size
        self._matcher = matcher
        self._clock = clock or _utcnow
        self._metrics = PerformanceMetrics()

    @classmethod
    def create(
        cls,
        store: CacheDocumentStore,
        ttl: float | None = None,
        max_size: int | None = None,
        fuzzy_threshold: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "QueryCacheService[T]":
        """Factory method to create QueryCacheService with sensible defaults.

        Args:
            store: Document persistence backend (required).
            ttl: Time-to-live in seconds. If None, uses settings.
            max_size: Capacity. If None, uses settings.
            fuzzy_threshold: Min similarity for fuzzy hits. If None, uses settings.
            clock: Optional clock override (tests).

        Returns:
            Configured QueryCacheService instance
        """
        return cls(
            store=store,
            ttl=ttl,
            max_size=max_size,
            fuzzy_threshold=fuzzy_threshold,
            clock=clock,
        )

    @classmethod
    def from_settings(
        cls, store: CacheDocumentStore, config: Settings | None = None
    ) -> "QueryCacheService[T]":
        """Create a service configured entirely from a Settings instance."""
        config = config or settings
        return cls(
            store=store,
            ttl=config.cache_ttl,
            max_size=config.cache_max_size,
            fuzzy_threshold=config.cache_fuzzy_threshold,
            stopwords=config.cache_stopwords,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def lookup(self, query: str) -> LookupResult[T]:
        """Find a cached result for query.

        Business logic:
        1. Exact match on the literal query
        2. Fuzzy match against every live key
        3. Miss

        Args:
            query: Non-blank query text

        Returns:
            LookupResult tagged EXACT or FUZZY on a hit, or a miss

        Raises:
            InvalidQueryError: If query is not a non-blank string
        """
        self._validate(query)
        start_time = time.perf_counter()

        try:
            with self._store.lock():
                result = self._lookup_locked(query)
        except StorageError as e:
            logger.warning("cache_unavailable", operation="lookup", error=str(e))
            result = LookupResult.miss()

        lookup_time_ms = (time.perf_counter() - start_time) * 1000
        if result.kind is MatchKind.EXACT:
            self._metrics.record_exact_hit(lookup_time_ms)
        elif result.kind is MatchKind.FUZZY:
            self._metrics.record_fuzzy_hit(lookup_time_ms)
        else:
            self._metrics.record_miss(lookup_time_ms)
            logger.info("cache_miss", query=query, lookup_time_ms=round(lookup_time_ms, 2))

        return result

    def store(self, query: str, value: T) -> None:
        """Cache value under the literal query.

        Expired entries are reaped first; if the cache is still full the
        least recently accessed entries are evicted to make room. An
        existing entry for the same key is overwritten.

        Args:
            query: Non-blank query text, stored verbatim
            value: JSON-serializable payload to return on future hits

        Raises:
            InvalidQueryError: If query is not a non-blank string
        """
        self._validate(query)

        try:
            with self._store.lock():
                now = self._clock()
                try:
                    document = self._load(now)
                except StorageCorruptError as e:
                    logger.warning("cache_corrupt_reset", error=str(e))
                    document = CacheDocument.empty(self._max_size, now)

                entries = document.to_entities()
                self._reap_expired(entries, now)
                entries.pop(query, None)
                self._evict(entries, room_for=1)
                entries[query] = CacheEntryEntity(
                    key=query,
                    value=value,
                    cached_at=now,
                    expires_at=now + self._ttl,
                    last_accessed=now,
                )
                if self._persist(document, entries, now):
                    logger.info(
                        "cache_stored",
                        query=query,
                        size=len(entries),
                        max_size=self._max_size,
                    )
        except StorageError as e:
            logger.warning("cache_unavailable", operation="store", error=str(e))

    def invalidate(self, query: str | None = None) -> int:
        """Remove one exact key, or everything when query is None.

        Args:
            query: Exact key to remove; None clears the cache

        Returns:
            Number of entries removed
        """
        if query is not None:
            self._validate(query)

        try:
            with self._store.lock():
                now = self._clock()
                if query is None:
                    return self._clear_locked(now)

                document = self._load(now)
                entries = document.to_entities()
                if entries.pop(query, None) is None:
                    return 0
                if not self._persist(document, entries, now):
                    return 0
                logger.info("cache_invalidated", query=query)
                return 1
        except StorageError as e:
            logger.warning("cache_unavailable", operation="invalidate", error=str(e))
            return 0

    def status(self) -> StatusReport:
        """Snapshot of live entries and configuration.

        Returns:
            StatusReport with entries sorted by hit count (highest first)
        """
        created_at: datetime | None = None
        last_updated: datetime | None = None
        live: list[CacheEntryEntity] = []

        try:
            with self._store.lock():
                now = self._clock()
                document = self._load(now)
                created_at = document.metadata.created_at
                last_updated = document.metadata.last_updated
                live = [e for e in document.to_entities().values() if not e.is_expired(now)]
        except StorageError as e:
            logger.warning("cache_unavailable", operation="status", error=str(e))

        live.sort(key=lambda e: e.hit_count, reverse=True)
        return StatusReport(
            entry_count=len(live),
            max_size=self._max_size,
            ttl_seconds=self._ttl.total_seconds(),
            fuzzy_threshold=self._matcher.threshold,
            created_at=created_at,
            last_updated=last_updated,
            entries=[
                EntryStatus(
                    key=e.key,
                    hit_count=e.hit_count,
                    cached_at=e.cached_at,
                    last_accessed=e.last_accessed,
                    expires_at=e.expires_at,
                )
                for e in live
            ],
            performance=self._metrics.to_dict(),
            backend=self._store.describe(),
        )

    def get_or_fetch(self, query: str, fetch: Callable[[str], T]) -> LookupResult[T]:
        """Look up query, computing and caching a fresh value on a miss.

        Exceptions raised by fetch propagate to the caller unchanged.

        Args:
            query: Non-blank query text
            fetch: Computes the payload for query (e.g. a vector search)

        Returns:
            The hit, or a miss carrying the freshly fetched value
        """
        result = self.lookup(query)
        if result.hit:
            return result

        value = fetch(query)
        self.store(query, value)
        return LookupResult.miss(value)

    def is_healthy(self) -> bool:
        """Check if the backing store is reachable."""
        return self._store.health_check()

    # ------------------------------------------------------------------
    # Internals (all called with the store lock held)
    # ------------------------------------------------------------------

    def _lookup_locked(self, query: str) -> LookupResult[T]:
        now = self._clock()
        document = self._load(now)
        entries = document.to_entities()
        reaped = self._reap_expired(entries, now)

        entry = entries.get(query)
        if entry is not None:
            entry.touch(now)
            self._persist(document, entries, now)
            logger.info("cache_hit_exact", query=query, hit_count=entry.hit_count)
            return LookupResult(
                hit=True,
                kind=MatchKind.EXACT,
                value=entry.value,
                matched_key=entry.key,
                similarity=1.0,
            )

        match = self._matcher.best_match(query, entries.keys())
        if match is not None:
            matched_key, score = match
            entry = entries[matched_key]
            entry.touch(now)
            self._persist(document, entries, now)
            logger.info(
                "cache_hit_fuzzy",
                query=query,
                matched_key=matched_key,
                similarity=round(score, 3),
                hit_count=entry.hit_count,
            )
            return LookupResult(
                hit=True,
                kind=MatchKind.FUZZY,
                value=entry.value,
                matched_key=matched_key,
                similarity=score,
            )

        if reaped:
            self._persist(document, entries, now)
        return LookupResult.miss()

    def _clear_locked(self, now: datetime) -> int:
        try:
            removed = len(self._load(now).entries)
        except StorageCorruptError:
            removed = 0

        document = CacheDocument.empty(self._max_size, now)
        try:
            self._store.save(document.to_json_dict())
        except StorageWriteError as e:
            logger.error("cache_save_failed", operation="invalidate", error=str(e))
            return 0

        logger.info("cache_cleared", removed=removed)
        return removed

    def _load(self, now: datetime) -> CacheDocument:
        try:
            raw = self._store.load()
            if raw is None:
                return CacheDocument.empty(self._max_size, now)
            try:
                return CacheDocument.model_validate(raw)
            except ValidationError as e:
                raise StorageCorruptError(f"Cache document does not match schema: {e}") from e
        except StorageCorruptError as e:
            logger.warning("cache_load_failed", error=str(e))
            raise

    def _persist(
        self, document: CacheDocument, entries: dict[str, CacheEntryEntity], now: datetime
    ) -> bool:
        document.replace_entries(entries, self._max_size, now)
        try:
            self._store.save(document.to_json_dict())
        except StorageWriteError as e:
            logger.error("cache_save_failed", error=str(e))
            return False
        return True

    def _reap_expired(self, entries: dict[str, CacheEntryEntity], now: datetime) -> list[str]:
        expired = [key for key, entry in entries.items() if entry.is_expired(now)]
        for key in expired:
            del entries[key]
        if expired:
            logger.info("cache_expired", keys=expired)
        return expired

    def _evict(self, entries: dict[str, CacheEntryEntity], room_for: int) -> None:
        # min() keeps the earliest-inserted entry on equal timestamps
        while entries and len(entries) + room_for > self._max_size:
            victim = min(entries.values(), key=lambda e: e.last_accessed)
            del entries[victim.key]
            logger.info("cache_evicted", query=victim.key, last_accessed=victim.last_accessed.isoformat())

    @staticmethod
    def _validate(query: Any) -> None:
        if not isinstance(query, str) or not query.strip():
            raise InvalidQueryError("Query must be a non-empty string")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def ttl_seconds(self) -> float:
        """Entry time-to-live in seconds."""
        return self._ttl.total_seconds()

    @property
    def max_size(self) -> int:
        """Maximum number of live entries."""
        return self._max_size

    @property
    def fuzzy_threshold(self) -> float:
        """Minimum similarity for a fuzzy hit."""
        return self._matcher.threshold

    @property
    def metrics(self) -> PerformanceMetrics:
        """In-process lookup statistics."""
        return self._metrics

    @property
    def matcher(self) -> QueryMatcher:
        """The fuzzy matcher (for testing)."""
        return self._matcher

    @property
    def document_store(self) -> CacheDocumentStore:
        """Get the underlying store (for testing)."""
        return self._store
