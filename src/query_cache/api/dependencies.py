"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

from contextlib import asynccontextmanager
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Request

from query_cache.config import settings
from query_cache.handlers import CacheHandler
from query_cache.repositories import create_document_store
from query_cache.services import QueryCacheService

logger = structlog.get_logger(__name__)


def get_handler(request: Request) -> CacheHandler:
    """Dependency injection for CacheHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The CacheHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "cache_handler", None)
    if handler is None:
        raise RuntimeError("CacheHandler not initialized. Check lifespan setup.")
    return handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Document store (data access) - selected by QUERY_CACHE_BACKEND
    2. Service (business logic) - stored in app.state.cache_service
    3. Handler (HTTP endpoints) - stored in app.state.cache_handler

    A service placed on app.state before startup (tests) is reused.

    Args:
        app: The FastAPI application instance

    Yields:
        None
    """
    cache_service = getattr(app.state, "cache_service", None)
    if cache_service is None:
        store = create_document_store(settings)
        cache_service = QueryCacheService.from_settings(store, settings)

    app.state.cache_service = cache_service
    app.state.cache_handler = CacheHandler(cache_service=cache_service)

    logger.info(
        "cache_service_initialized",
        backend=cache_service.document_store.describe(),
        ttl_seconds=cache_service.ttl_seconds,
        max_size=cache_service.max_size,
        fuzzy_threshold=cache_service.fuzzy_threshold,
        healthy=cache_service.is_healthy(),
    )

    yield

    # Cleanup - remove from app.state
    del app.state.cache_handler
    del app.state.cache_service
    logger.info("cache_service_shut_down")


# Type alias for cleaner dependency injection
HandlerDep = Annotated[CacheHandler, Depends(get_handler)]
