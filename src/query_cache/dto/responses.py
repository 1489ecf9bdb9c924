"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class CacheLookupResponse(BaseModel):
    """Response DTO for cache lookup operation."""

    query: str = Field(..., description="The original query")
    hit: bool = Field(..., description="Whether a live entry was found")
    kind: Literal["exact", "fuzzy"] | None = Field(
        None, description="How the hit was found (null on a miss)"
    )
    value: Any = Field(None, description="The cached retrieval results")
    matched_key: str | None = Field(None, description="The stored key that produced the hit")
    similarity: float | None = Field(
        None,
        description="Normalized similarity of the match (1 = identical)",
        ge=0.0,
        le=1.0,
    )
    lookup_time_ms: float = Field(..., description="Time taken for the cache lookup in milliseconds")


class CacheStoreResponse(BaseModel):
    """Response DTO for cache store operation."""

    success: bool = Field(..., description="Whether the operation succeeded")
    key: str = Field(..., description="The key the entry was stored under")
    message: str = Field(..., description="Human-readable status message")


class CacheInvalidateResponse(BaseModel):
    """Response DTO for cache invalidation."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(..., description="Number of entries removed", ge=0)
    message: str = Field(..., description="Human-readable status message")


class CacheEntryItem(BaseModel):
    """Single entry in the status report."""

    key: str = Field(..., description="The stored query")
    hit_count: int = Field(..., description="Number of hits served", ge=0)
    cached_at: datetime = Field(..., description="When the entry was created")
    last_accessed: datetime = Field(..., description="Last hit or creation time")
    expires_at: datetime = Field(..., description="When the entry expires")


class CacheStatusResponse(BaseModel):
    """Response DTO for cache status."""

    entry_count: int = Field(..., description="Number of live entries", ge=0)
    max_size: int = Field(..., description="Configured capacity", ge=1)
    ttl_seconds: float = Field(..., description="Entry time-to-live in seconds", gt=0)
    fuzzy_threshold: float = Field(..., description="Minimum similarity for fuzzy hits", ge=0.0, le=1.0)
    created_at: datetime | None = Field(None, description="When the cache document was created")
    last_updated: datetime | None = Field(None, description="When the cache document was last written")
    entries: list[CacheEntryItem] = Field(
        default_factory=list,
        description="Live entries sorted by hit count, highest first",
    )
    performance: dict[str, float | int] = Field(default_factory=dict, description="Lookup counters")
    backend: dict[str, Any] = Field(default_factory=dict, description="Storage backend")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    cache_healthy: bool = Field(..., description="Whether the cache backend is reachable")
