"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import InvalidateCacheRequest, LookupCacheRequest, StoreCacheRequest
from .responses import (
    CacheEntryItem,
    CacheInvalidateResponse,
    CacheLookupResponse,
    CacheStatusResponse,
    CacheStoreResponse,
    HealthCheckResponse,
)

__all__ = [
    "LookupCacheRequest",
    "StoreCacheRequest",
    "InvalidateCacheRequest",
    "CacheEntryItem",
    "CacheLookupResponse",
    "CacheStoreResponse",
    "CacheInvalidateResponse",
    "CacheStatusResponse",
    "HealthCheckResponse",
]
