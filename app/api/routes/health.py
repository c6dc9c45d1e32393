from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.storage.base import AbstractWaitlistRepository
from app.core.dependencies import get_waitlist_repository
from app.core.rate_limit import get_counter_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _check(name: str, ping) -> str:
    try:
        return "healthy" if await ping() else "unhealthy"
    except Exception as exc:
        logger.error(
            "health.check_failed",
            extra={"service": name, "error_type": type(exc).__name__},
        )
        return "unhealthy"


@router.get("/health")
async def health_check(
    store: Annotated[AbstractCounterStore, Depends(get_counter_store)],
    repository: Annotated[AbstractWaitlistRepository, Depends(get_waitlist_repository)],
) -> JSONResponse:
    """Health check endpoint.

    Pings the counter store and the database. Used by load balancers and
    monitoring systems to determine service health.

    Returns:
        200 ``{"status": "ok", "services": {...}}`` when every dependency
        answers, otherwise 503 with ``"status": "degraded"``.
    """
    services = {
        "counter_store": await _check("counter_store", store.ping),
        "database": await _check("database", repository.ping),
    }
    healthy = all(state == "healthy" for state in services.values())

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "services": services},
    )
