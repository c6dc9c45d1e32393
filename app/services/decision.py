"""Admission decisions returned by the abuse gate."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from app.core.errors import (
    AppError,
    ErrorDetails,
    RateLimitAppError,
    StoreUnavailableError,
    ValidationAppError,
)


class ReasonCode(str, Enum):
    """Why a request was admitted or rejected."""

    OK = "OK"
    INVALID_FORMAT = "INVALID_FORMAT"
    SUSPICIOUS_PATTERN = "SUSPICIOUS_PATTERN"
    TOO_LONG = "TOO_LONG"
    IP_RATE_LIMITED = "IP_RATE_LIMITED"
    EMAIL_RATE_LIMITED = "EMAIL_RATE_LIMITED"
    GLOBAL_RATE_LIMITED = "GLOBAL_RATE_LIMITED"
    ENDPOINT_RATE_LIMITED = "ENDPOINT_RATE_LIMITED"
    CONTENT_SPAM_GLOBAL = "CONTENT_SPAM_GLOBAL"
    CONTENT_SPAM_PER_ACTOR = "CONTENT_SPAM_PER_ACTOR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


VALIDATION_REASONS = frozenset(
    {ReasonCode.INVALID_FORMAT, ReasonCode.SUSPICIOUS_PATTERN, ReasonCode.TOO_LONG}
)

STORE_UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."


@dataclass(frozen=True)
class Decision:
    """Outcome of a gate evaluation.

    Attributes:
        allowed: Whether the caller may perform its side effect.
        reason_code: Machine-readable reason, OK when allowed.
        retry_after_seconds: Seconds until a quota rejection clears, if known.
        message: Actor-facing text; never contains infrastructure detail.
        limit: Limit of the rejecting limiter, when one rejected.
        reset_at: UNIX epoch seconds when the rejecting window resets.
    """

    allowed: bool
    reason_code: ReasonCode
    retry_after_seconds: int | None = None
    message: str = ""
    limit: int | None = None
    reset_at: int | None = None

    @classmethod
    def ok(cls) -> Decision:
        return cls(allowed=True, reason_code=ReasonCode.OK)

    @classmethod
    def reject(
        cls,
        reason_code: ReasonCode,
        message: str,
        *,
        retry_after_seconds: int | None = None,
        limit: int | None = None,
        reset_at: int | None = None,
    ) -> Decision:
        return cls(
            allowed=False,
            reason_code=reason_code,
            retry_after_seconds=retry_after_seconds,
            message=message,
            limit=limit,
            reset_at=reset_at,
        )


def format_retry_minutes(retry_after_seconds: int | None) -> str:
    """Render a retry delay as ``"N minute(s)"``, rounding up."""
    minutes = max(1, math.ceil((retry_after_seconds or 0) / 60))
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


def decision_error(decision: Decision) -> AppError:
    """Map a rejected decision to the AppError the HTTP layer renders.

    Validation reasons map to ValidationAppError, quota and spam reasons to
    RateLimitAppError and store outages to StoreUnavailableError.
    """
    if decision.allowed:
        raise ValueError("decision is not a rejection")

    code = decision.reason_code.value.lower()

    if decision.reason_code is ReasonCode.STORE_UNAVAILABLE:
        return StoreUnavailableError(code=code, message=decision.message or STORE_UNAVAILABLE_MESSAGE)

    if decision.reason_code in VALIDATION_REASONS:
        return ValidationAppError(code=code, message=decision.message)

    details: ErrorDetails = {"reason_code": decision.reason_code.value}
    if decision.retry_after_seconds is not None:
        details["retry_after"] = decision.retry_after_seconds
    if decision.limit is not None:
        details["limit"] = decision.limit
        details["remaining"] = 0
    if decision.reset_at is not None:
        details["reset_at"] = decision.reset_at
    return RateLimitAppError(code=code, message=decision.message, details=details)
