"""Tests for email and content validation."""

import pytest

from app.services.decision import ReasonCode
from app.services.input_validation import (
    MAX_CONTENT_LENGTH,
    normalize_email,
    validate_content,
    validate_email,
)


@pytest.mark.parametrize("email", ["ada@example.com", "Grace.Hopper+news@navy.example.org", "x@y.io"])
def test_valid_emails_pass(email: str) -> None:
    assert validate_email(email) is None


@pytest.mark.parametrize("email", [None, "", "not-an-email", "a@", "@example.com", "a b@example.com"])
def test_malformed_emails_rejected(email) -> None:
    issue = validate_email(email)

    assert issue is not None
    assert issue.reason_code is ReasonCode.INVALID_FORMAT
    assert issue.message == "Please provide a valid email address"


@pytest.mark.parametrize(
    "email",
    ["tester@example.com", "FAKE.user@example.com", "someone@throwaway.tk", "me@promo.ml"],
)
def test_suspicious_emails_rejected(email: str) -> None:
    issue = validate_email(email)

    assert issue is not None
    assert issue.reason_code is ReasonCode.SUSPICIOUS_PATTERN


def test_overlong_email_rejected() -> None:
    email = "a" * 64 + "@" + ".".join(["b" * 60] * 4) + ".com"
    assert len(email) > 254

    issue = validate_email(email)

    assert issue is not None
    assert issue.reason_code is ReasonCode.TOO_LONG


def test_normalize_email() -> None:
    assert normalize_email("  Ada@Example.COM ") == "ada@example.com"


def test_content_ok() -> None:
    assert validate_content("Deploy finished on staging") is None


@pytest.mark.parametrize("content", [None, "", "   \n"])
def test_empty_content_rejected(content) -> None:
    issue = validate_content(content)

    assert issue is not None
    assert issue.reason_code is ReasonCode.INVALID_FORMAT


def test_content_length_boundary() -> None:
    assert validate_content("a" * MAX_CONTENT_LENGTH) is None

    issue = validate_content("a" * (MAX_CONTENT_LENGTH + 1))
    assert issue is not None
    assert issue.reason_code is ReasonCode.TOO_LONG


@pytest.mark.parametrize(
    "content",
    [
        "Claim your prize at http://free.example.tk now",
        "You are a WINNER",
        "Click here for a deal",
        "ping @everyone",
    ],
)
def test_suspicious_content_rejected(content: str) -> None:
    issue = validate_content(content)

    assert issue is not None
    assert issue.reason_code is ReasonCode.SUSPICIOUS_PATTERN
