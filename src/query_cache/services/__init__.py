"""Service layer for business logic.

This layer contains the cache state machine: lookup, store, invalidate
and status. Services depend on protocols (interfaces), not concrete
implementations, making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from query_cache.repositories import JsonFileDocumentStore
    from query_cache.services import QueryCacheService

    # Using factory method (recommended)
    cache = QueryCacheService.create(store=JsonFileDocumentStore.create())
    cache = QueryCacheService.create(store=store, fuzzy_threshold=0.85)
    ```
"""

from .cache_service import QueryCacheService

__all__ = [
    "QueryCacheService",
]
