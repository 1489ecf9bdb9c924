from typing import Any

from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from query_cache.api.dependencies import HandlerDep, lifespan
from query_cache.config import settings
from query_cache.dto import (
    CacheInvalidateResponse,
    CacheLookupResponse,
    CacheStatusResponse,
    CacheStoreResponse,
    HealthCheckResponse,
    InvalidateCacheRequest,
    LookupCacheRequest,
    StoreCacheRequest,
)
from query_cache.services import QueryCacheService

API_TITLE = "Query Cache API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Fuzzy-matching result cache in front of restaurant FAQ vector retrieval"


def create_app(cache_service: QueryCacheService | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cache_service: Pre-built service to use instead of one from settings.

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan,
    )
    if cache_service is not None:
        app.state.cache_service = cache_service

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "endpoints": {
                "lookup": "/cache/lookup",
                "store": "/cache/store",
                "invalidate": "/cache",
                "status": "/cache/status",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check endpoint."""
        return await handler.health_check()

    @app.post("/cache/lookup", response_model=CacheLookupResponse)
    async def lookup(request: LookupCacheRequest, handler: HandlerDep) -> CacheLookupResponse:
        """Look up cached retrieval results (exact, then fuzzy)."""
        return await handler.lookup(request)

    @app.post("/cache/store", response_model=CacheStoreResponse)
    async def store(request: StoreCacheRequest, handler: HandlerDep) -> CacheStoreResponse:
        """Cache retrieval results under a query."""
        return await handler.store(request)

    @app.delete("/cache", response_model=CacheInvalidateResponse)
    async def invalidate(
        handler: HandlerDep,
        request: InvalidateCacheRequest | None = Body(None),
    ) -> CacheInvalidateResponse:
        """Remove one exact key, or clear the cache when no query is given."""
        return await handler.invalidate(request)

    @app.get("/cache/status", response_model=CacheStatusResponse)
    async def get_status(handler: HandlerDep) -> CacheStatusResponse:
        """Entry count, capacity and per-entry diagnostics."""
        return await handler.get_status()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "query_cache.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
