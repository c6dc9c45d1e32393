"""Syntactic validation of signup emails and webhook content.

Pure functions: no store access, no I/O. Each returns None when the input
is acceptable, otherwise the rejection reason and an actor-facing message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.services.decision import ReasonCode

MAX_EMAIL_LENGTH = 254  # RFC 5321
MAX_CONTENT_LENGTH = 2000  # Discord message limit

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)

SUSPICIOUS_EMAIL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"test.*@",
        r"fake.*@",
        r"spam.*@",
        r"temp.*@",
        r"disposable.*@",
        r"@.*\.tk$",
        r"@.*\.ml$",
        r"@.*\.ga$",
        r"@.*\.cf$",
    )
)

SUSPICIOUS_CONTENT_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"https?://[^\s]+\.tk\b",
        r"https?://[^\s]+\.ml\b",
        r"https?://[^\s]+\.ga\b",
        r"https?://[^\s]+\.cf\b",
        r"\b(viagra|cialis|casino|lottery|winner|congratulations)\b",
        r"\b(click here|act now|limited time|urgent)\b",
        r"@everyone|@here",
    )
)


@dataclass(frozen=True)
class ValidationIssue:
    reason_code: ReasonCode
    message: str


def validate_email(email: str | None) -> ValidationIssue | None:
    """Validate a signup email.

    Checks run in order: presence and format, denylisted patterns, length.

    Args:
        email: Raw email as submitted.

    Returns:
        ValidationIssue on rejection, None when the email is acceptable.
    """
    if not email or not isinstance(email, str):
        return ValidationIssue(ReasonCode.INVALID_FORMAT, "Please provide a valid email address")

    if not EMAIL_REGEX.match(email):
        return ValidationIssue(ReasonCode.INVALID_FORMAT, "Please provide a valid email address")

    if any(pattern.search(email) for pattern in SUSPICIOUS_EMAIL_PATTERNS):
        return ValidationIssue(ReasonCode.SUSPICIOUS_PATTERN, "Please use a valid email address")

    if len(email) > MAX_EMAIL_LENGTH:
        return ValidationIssue(ReasonCode.TOO_LONG, "Email address is too long")

    return None


def validate_content(content: str | None) -> ValidationIssue | None:
    """Validate webhook message content (empty, length, denylisted patterns)."""
    if not content or not content.strip():
        return ValidationIssue(ReasonCode.INVALID_FORMAT, "Content cannot be empty")

    if len(content) > MAX_CONTENT_LENGTH:
        return ValidationIssue(
            ReasonCode.TOO_LONG,
            f"Content is too long (max {MAX_CONTENT_LENGTH} characters)",
        )

    if any(pattern.search(content) for pattern in SUSPICIOUS_CONTENT_PATTERNS):
        return ValidationIssue(ReasonCode.SUSPICIOUS_PATTERN, "Content contains suspicious patterns")

    return None


def normalize_email(email: str) -> str:
    """Canonical form used for rate-limit keys and persistence."""
    return email.strip().lower()
