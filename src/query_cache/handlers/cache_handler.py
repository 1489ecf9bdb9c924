"""HTTP handlers for cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
Service calls are blocking (file I/O, Redis lock waits) and run in the
threadpool so they never stall the event loop.
"""

import time

from fastapi import HTTPException, status
from starlette.concurrency import run_in_threadpool

from query_cache.dto import (
    CacheEntryItem,
    CacheInvalidateResponse,
    CacheLookupResponse,
    CacheStatusResponse,
    CacheStoreResponse,
    HealthCheckResponse,
    InvalidateCacheRequest,
    LookupCacheRequest,
    StoreCacheRequest,
)
from query_cache.exceptions import InvalidQueryError
from query_cache.services import QueryCacheService


class CacheHandler:
    """HTTP handlers for cache operations.

    This handler delegates business logic to QueryCacheService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = CacheHandler(cache_service=cache_service)

        @app.post("/cache/lookup", response_model=CacheLookupResponse)
        async def lookup(request: LookupCacheRequest):
            return await handler.lookup(request)
        ```
    """

    def __init__(self, cache_service: QueryCacheService) -> None:
        """Initialize the cache handler.

        Args:
            cache_service: The cache service for business logic (required).
        """
        self._cache = cache_service

    async def lookup(self, request: LookupCacheRequest) -> CacheLookupResponse:
        """Handle POST /cache/lookup requests.

        Args:
            request: The lookup request DTO

        Returns:
            CacheLookupResponse with hit provenance and cached value

        Raises:
            HTTPException: 400 for blank queries, 500 for unexpected errors
        """
        try:
            start_time = time.time()
            result = await run_in_threadpool(self._cache.lookup, request.query)
            lookup_time_ms = (time.time() - start_time) * 1000

            return CacheLookupResponse(
                query=request.query,
                hit=result.hit,
                kind=result.kind.value if result.kind else None,
                value=result.value,
                matched_key=result.matched_key,
                similarity=result.similarity,
                lookup_time_ms=lookup_time_ms,
            )

        except InvalidQueryError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to look up cache: {e}",
            ) from e

    async def store(self, request: StoreCacheRequest) -> CacheStoreResponse:
        """Handle POST /cache/store requests.

        Args:
            request: The store request DTO

        Returns:
            CacheStoreResponse with storage confirmation
        """
        try:
            await run_in_threadpool(self._cache.store, request.query, request.value)

            return CacheStoreResponse(
                success=True,
                key=request.query,
                message="Entry stored successfully",
            )

        except InvalidQueryError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to store entry: {e}",
            ) from e

    async def invalidate(self, request: InvalidateCacheRequest | None) -> CacheInvalidateResponse:
        """Handle DELETE /cache requests.

        Args:
            request: Optional body naming a single key; absent clears everything

        Returns:
            CacheInvalidateResponse with the number of entries removed
        """
        query = request.query if request else None
        try:
            count = await run_in_threadpool(self._cache.invalidate, query)

            return CacheInvalidateResponse(
                success=True,
                deleted_count=count,
                message="Cache cleared successfully" if query is None else "Entry invalidated",
            )

        except InvalidQueryError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to invalidate cache: {e}",
            ) from e

    async def get_status(self) -> CacheStatusResponse:
        """Handle GET /cache/status requests.

        Returns:
            CacheStatusResponse with per-entry diagnostics
        """
        try:
            report = await run_in_threadpool(self._cache.status)

            return CacheStatusResponse(
                entry_count=report.entry_count,
                max_size=report.max_size,
                ttl_seconds=report.ttl_seconds,
                fuzzy_threshold=report.fuzzy_threshold,
                created_at=report.created_at,
                last_updated=report.last_updated,
                entries=[
                    CacheEntryItem(
                        key=entry.key,
                        hit_count=entry.hit_count,
                        cached_at=entry.cached_at,
                        last_accessed=entry.last_accessed,
                        expires_at=entry.expires_at,
                    )
                    for entry in report.entries
                ],
                performance=report.performance,
                backend=report.backend,
            )

        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get status: {e}",
            ) from e

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Returns:
            HealthCheckResponse with backend status

        Raises:
            HTTPException: 503 if the backend is unreachable
        """
        if not await run_in_threadpool(self._cache.is_healthy):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Cache backend is unreachable",
            )

        return HealthCheckResponse(status="healthy", cache_healthy=True)
