"""Application-level exception types.

Domain errors shared by services, adapters and the HTTP layer. Every error
carries a stable code so clients and logs can tell rejection reasons apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    reason_code: str
    hint: str
    limit: int
    remaining: int
    reset_at: int
    retry_after: int
    max_length: int
    actual_length: int
    backend: str
    operation: str
    http_status: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input or configuration validation fails."""


class RateLimitAppError(AppError):
    """Raised when a request is rejected by a quota or spam limit."""


class StoreUnavailableError(AppError):
    """Raised when the counter store cannot be reached or errors out."""


class NotificationAppError(AppError):
    """Raised when an outbound notification could not be delivered."""
