from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import health_router, waitlist_router, webhook_router
from app.core.config import settings
from app.core.dependencies import close_collaborators, get_waitlist_repository
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import reset_rate_limiting

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create database tables on startup; close shared clients on shutdown."""
    repository_factory = app.dependency_overrides.get(get_waitlist_repository, get_waitlist_repository)
    await repository_factory().init_schema()
    logger.info(
        "app.started",
        extra={"app_env": settings.app_env, "store_backend": settings.store.backend},
    )
    try:
        yield
    finally:
        await close_collaborators()
        await reset_rate_limiting()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Waitlist API",
        description=(
            "Public waitlist signup and Discord notification relay, guarded by "
            "per-IP, per-email, per-endpoint, global and duplicate-content limits."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(waitlist_router, prefix="/v1")
    app.include_router(webhook_router, prefix="/v1")
    app.include_router(health_router)

    return app
