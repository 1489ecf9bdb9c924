"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class LookupCacheRequest(BaseModel):
    """Request DTO for looking up a query.

    The handler will convert this to internal calls to the service layer.
    """

    query: str = Field(..., description="The query to look up", min_length=1)


class StoreCacheRequest(BaseModel):
    """Request DTO for storing retrieval results."""

    query: str = Field(..., description="The query the results were computed for", min_length=1)
    value: Any = Field(..., description="Retrieval results to cache (any JSON value)")


class InvalidateCacheRequest(BaseModel):
    """Request DTO for invalidating cache entries."""

    query: str | None = Field(
        None,
        description="Remove only this exact key (if null, clears all)",
    )
