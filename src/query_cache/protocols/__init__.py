"""Protocol interfaces for swappable implementations.

Protocols enable:
- Easy swapping of persistence backends (file → Redis → in-memory)
- Unit testing with in-memory implementations
- Clear separation of concerns

Usage:
    ```python
    from query_cache.protocols import CacheDocumentStore

    store: CacheDocumentStore = InMemoryDocumentStore()  # works
    store: CacheDocumentStore = RedisDocumentStore()     # also works
    ```
"""

from .document_store import CacheDocumentStore

__all__ = [
    "CacheDocumentStore",
]
