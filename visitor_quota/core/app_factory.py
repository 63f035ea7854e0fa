"""Application factory for the FastAPI app.

The store client is constructed here, once per application, and handed to the
coordinator explicitly. Tests pass their own store instead of configuring one
through the environment.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.adapters.store.factory import create_store
from visitor_quota.api.routes import health_router, rate_limit_router, visitor_router
from visitor_quota.core.config import settings
from visitor_quota.core.exception_handlers import setup_exception_handlers
from visitor_quota.core.logging import configure_logging
from visitor_quota.core.middleware import request_id_middleware
from visitor_quota.core.openapi import TAGS_METADATA, apply_openapi_customizations
from visitor_quota.services.rate_limit_coordinator import RateLimitCoordinator

logger = logging.getLogger(__name__)


def create_app(store: AbstractKeyValueStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Key-value store to use. Omit to build one from settings; when
            settings configure no store, quota checks always allow.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    if store is None:
        store = create_store(settings.store)

    coordinator = RateLimitCoordinator(
        store,
        enabled=settings.rate_limit.enabled,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "store_backend": settings.store.backend if store is not None else "none",
                "rate_limit_enabled": coordinator.active,
                "limit_key": settings.rate_limit.limit_key,
                "max_requests": settings.rate_limit.max_requests,
                "window_ms": settings.rate_limit.window_ms,
            },
        )
        yield
        if store is not None:
            await store.close()
        logger.info("app.shutdown")

    app = FastAPI(
        title="Visitor Quota API",
        description=(
            "Per-visitor usage quota over a rolling window for anonymous clients. "
            "Quota state is kept in a shared key-value store; store outages fail open."
        ),
        version="0.1.0",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.coordinator = coordinator

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limit_router)
    app.include_router(visitor_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
