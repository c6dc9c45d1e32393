"""Pydantic schemas for the waitlist endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class JoinWaitlistRequest(BaseModel):
    """Signup form payload."""

    email: str | None = Field(
        default=None,
        description="Email address to add to the waitlist.",
        examples=["ada@example.com"],
    )


class JoinWaitlistResponse(BaseModel):
    """Outcome of a signup attempt that passed abuse checks."""

    success: bool = Field(True, description="Always true; rejections use the error envelope.")
    message: str = Field(..., description="Actor-facing confirmation text.")
    already_registered: bool = Field(
        False,
        description="True when the email was already on the waitlist.",
    )


class WaitlistStatsResponse(BaseModel):
    total_entries: int = Field(..., ge=0, description="Number of waitlist entries.")
