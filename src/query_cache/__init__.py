"""Query Cache - fuzzy-matching result cache for restaurant FAQ retrieval.

This package caches vector-retrieval results keyed by the caller's query,
deduplicating near-identical phrasings with edit-distance matching,
bounding its size with LRU eviction and expiring entries on a fixed TTL.

Layers:
    - protocols: Interface contracts (CacheDocumentStore)
    - repositories: Persistence implementations (file, Redis, memory)
    - services: Business logic (QueryCacheService)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)
    - matching: Normalization and Levenshtein similarity

Usage:
    ```python
    from query_cache.repositories import JsonFileDocumentStore
    from query_cache.services import QueryCacheService

    cache = QueryCacheService.create(store=JsonFileDocumentStore.create())
    result = cache.get_or_fetch("Do you have a kids menu?", vector_search)
    ```

For HTTP API:
    ```python
    from query_cache.api.app import app
    ```
"""

from query_cache.config import get_redis_client, settings
from query_cache.dto import InvalidateCacheRequest, LookupCacheRequest, StoreCacheRequest
from query_cache.entities import CacheEntryEntity, LookupResult, MatchKind, StatusReport
from query_cache.exceptions import (
    InvalidQueryError,
    QueryCacheError,
    StorageCorruptError,
    StorageError,
    StorageWriteError,
)
from query_cache.handlers import CacheHandler
from query_cache.matching import QueryMatcher, levenshtein_distance, normalize_query, similarity
from query_cache.protocols import CacheDocumentStore
from query_cache.repositories import (
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    RedisDocumentStore,
    create_document_store,
)
from query_cache.services import QueryCacheService

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheDocumentStore",
    # Services (business logic)
    "QueryCacheService",
    # Handlers (HTTP)
    "CacheHandler",
    # Repositories (data access)
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
    # Matching
    "QueryMatcher",
    "normalize_query",
    "levenshtein_distance",
    "similarity",
    # Entities (domain models)
    "CacheEntryEntity",
    "LookupResult",
    "MatchKind",
    "StatusReport",
    # Errors
    "QueryCacheError",
    "InvalidQueryError",
    "StorageError",
    "StorageCorruptError",
    "StorageWriteError",
    # DTOs (API contracts)
    "LookupCacheRequest",
    "StoreCacheRequest",
    "InvalidateCacheRequest",
]
