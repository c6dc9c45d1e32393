"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> 400 / 429 / 502 / 503
- Unexpected Exception -> generic 500 (safety net)
- All responses include request_id for tracing
- Store and notification failures never leak infrastructure detail
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    NotificationAppError,
    RateLimitAppError,
    StoreUnavailableError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, StoreUnavailableError):
        return 503
    if isinstance(exc, NotificationAppError):
        return 502
    return 400


def _rate_limit_headers(exc: RateLimitAppError) -> dict[str, str]:
    details = exc.details or {}
    headers: dict[str, str] = {}

    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])

    if settings.app.rate_limit_include_headers:
        if "limit" in details:
            headers["X-RateLimit-Limit"] = str(details["limit"])
            headers["X-RateLimit-Remaining"] = str(details.get("remaining", 0))
        if "reset_at" in details:
            headers["X-RateLimit-Reset"] = str(details["reset_at"])

    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors as ``{"error": {code, message, request_id, details?}}``.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # Store details describe infrastructure; keep them in logs only
    if exc.details and not isinstance(exc, StoreUnavailableError):
        error_content["details"] = exc.details

    headers = _rate_limit_headers(exc) if isinstance(exc, RateLimitAppError) else None

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and returns a generic 500 with no implementation detail.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "Something went wrong. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
