"""Repository layer for data access.

This layer abstracts the persistence medium (Redis, a JSON file, memory)
behind the CacheDocumentStore protocol. Any class implementing the
required methods satisfies the protocol.
"""

from query_cache.config import Settings, get_redis_client, settings
from query_cache.protocols import CacheDocumentStore

from .file_repository import JsonFileDocumentStore
from .memory_repository import InMemoryDocumentStore
from .redis_repository import RedisDocumentStore


def create_document_store(config: Settings | None = None) -> CacheDocumentStore:
    """Build the document store selected by QUERY_CACHE_BACKEND."""
    config = config or settings
    if config.cache_backend == "redis":
        return RedisDocumentStore(redis_client=get_redis_client(config), key=config.cache_key)
    if config.cache_backend == "memory":
        return InMemoryDocumentStore()
    return JsonFileDocumentStore(path=config.cache_file)


__all__ = [
    "CacheDocumentStore",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
]
