"""Tests for the waitlist signup and stats workflow."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from app.adapters.notifications.base import AbstractNotifier, NotificationResult
from app.adapters.notifications.discord import DiscordWebhookNotifier
from app.adapters.storage.in_memory import InMemoryWaitlistRepository
from app.core.config import LimitSettings
from app.core.errors import RateLimitAppError, StoreUnavailableError, ValidationAppError
from app.services.abuse_gate import create_abuse_gate
from app.services.waitlist_service import (
    ALREADY_JOINED_MESSAGE,
    ANALYTICS_EVENTS_KEY,
    JOINED_MESSAGE,
    STATS_CACHE_KEY,
    WaitlistService,
    build_signup_embed,
)

IP = "198.51.100.4"


@pytest.fixture
def service(store, clock, repository, notifier) -> WaitlistService:
    return WaitlistService(
        gate=create_abuse_gate(store, clock=clock),
        repository=repository,
        store=store,
        notifier=notifier,
    )


def test_join_creates_entry_and_notifies(service, repository, notifier) -> None:
    outcome = asyncio.run(service.join(IP, "Ada@Example.com"))

    assert outcome.created is True
    assert outcome.already_registered is False
    assert outcome.message == JOINED_MESSAGE
    assert repository.emails() == ["ada@example.com"]

    assert len(notifier.payloads) == 1
    payload = notifier.payloads[0]
    assert payload["username"] == "Waitlist Bot"
    fields = {f["name"]: f["value"] for f in payload["embeds"][0]["fields"]}
    assert fields["Email"] == "ada@example.com"
    assert fields["Total Entries"] == "1"


def test_join_duplicate_is_success_without_notification(service, repository, notifier) -> None:
    asyncio.run(service.join(IP, "ada@example.com"))

    outcome = asyncio.run(service.join("198.51.100.5", "ADA@example.com"))

    assert outcome.created is False
    assert outcome.already_registered is True
    assert outcome.message == ALREADY_JOINED_MESSAGE
    assert outcome.entry_id is not None
    assert len(notifier.payloads) == 1
    assert asyncio.run(repository.count()) == 1


def test_join_invalid_email_raises_validation_error(service, repository) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        asyncio.run(service.join(IP, "not-an-email"))

    assert exc_info.value.code == "invalid_format"
    assert asyncio.run(repository.count()) == 0


def test_join_rate_limited_raises(service) -> None:
    for email in ["ada@example.com", "grace@example.com", "alan@example.com"]:
        asyncio.run(service.join(IP, email))

    with pytest.raises(RateLimitAppError) as exc_info:
        asyncio.run(service.join(IP, "edsger@example.com"))

    details = exc_info.value.details
    assert exc_info.value.code == "ip_rate_limited"
    assert details["reason_code"] == "IP_RATE_LIMITED"
    assert 0 < details["retry_after"] <= 60


def test_join_store_down_raises_unavailable(failing_store, repository) -> None:
    service = WaitlistService(
        gate=create_abuse_gate(failing_store),
        repository=repository,
        store=failing_store,
    )

    with pytest.raises(StoreUnavailableError):
        asyncio.run(service.join(IP, "ada@example.com"))

    assert asyncio.run(repository.count()) == 0


def test_notification_skipped_when_not_configured(store, clock, repository, make_notifier) -> None:
    notifier = make_notifier(configured=False)
    service = WaitlistService(
        gate=create_abuse_gate(store, clock=clock),
        repository=repository,
        store=store,
        notifier=notifier,
    )

    asyncio.run(service.join(IP, "ada@example.com"))

    assert notifier.payloads == []
    assert asyncio.run(store.get(f"discord:webhook:{IP}")) is None


def test_notification_failure_does_not_fail_signup(store, clock, repository, make_notifier) -> None:
    notifier = make_notifier(result=NotificationResult(ok=False, http_status=500, error="boom"))
    service = WaitlistService(
        gate=create_abuse_gate(store, clock=clock),
        repository=repository,
        store=store,
        notifier=notifier,
    )

    outcome = asyncio.run(service.join(IP, "ada@example.com"))

    assert outcome.created is True
    assert len(notifier.payloads) == 1


def test_notification_respects_webhook_limits(store, clock, repository, notifier) -> None:
    service = WaitlistService(
        gate=create_abuse_gate(store, LimitSettings(webhook_ip_limit=1), clock=clock),
        repository=repository,
        store=store,
        notifier=notifier,
    )

    asyncio.run(service.join(IP, "ada@example.com"))
    outcome = asyncio.run(service.join(IP, "grace@example.com"))

    assert outcome.created is True
    assert len(notifier.payloads) == 1


def test_stats_are_cached_and_invalidated(service, store) -> None:
    assert asyncio.run(service.stats()).total_entries == 0
    assert json.loads(asyncio.run(store.get(STATS_CACHE_KEY))) == {"total_entries": 0}
    assert asyncio.run(store.time_to_live(STATS_CACHE_KEY)) == 600

    asyncio.run(service.join(IP, "ada@example.com"))

    assert asyncio.run(service.stats()).total_entries == 1


def test_stats_served_from_cache(store, clock) -> None:
    repository = AsyncMock()
    repository.count = AsyncMock(return_value=7)
    service = WaitlistService(gate=create_abuse_gate(store, clock=clock), repository=repository, store=store)

    asyncio.run(service.stats())
    asyncio.run(service.stats())

    repository.count.assert_awaited_once()


def test_stats_fall_back_to_zero_when_count_fails(store, clock) -> None:
    repository = AsyncMock()
    repository.count = AsyncMock(side_effect=RuntimeError("db down"))
    service = WaitlistService(gate=create_abuse_gate(store, clock=clock), repository=repository, store=store)

    assert asyncio.run(service.stats()).total_entries == 0
    assert asyncio.run(store.get(STATS_CACHE_KEY)) is None


def test_stats_tolerate_store_outage(failing_store) -> None:
    repository = InMemoryWaitlistRepository()
    asyncio.run(repository.insert("ada@example.com"))
    service = WaitlistService(gate=create_abuse_gate(failing_store), repository=repository, store=failing_store)

    assert asyncio.run(service.stats()).total_entries == 1


def test_build_signup_embed_unknown_total() -> None:
    embed = build_signup_embed("ada@example.com", None)

    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert fields["Total Entries"] == "Unknown"
    assert embed["title"] == "New Waitlist Signup!"


def test_notifier_exception_does_not_fail_signup(store, clock, repository) -> None:
    class ExplodingNotifier(AbstractNotifier):
        @property
        def configured(self) -> bool:
            return True

        async def send(self, payload):
            raise RuntimeError("sink exploded")

    service = WaitlistService(
        gate=create_abuse_gate(store, clock=clock),
        repository=repository,
        store=store,
        notifier=ExplodingNotifier(),
    )

    outcome = asyncio.run(service.join(IP, "ada@example.com"))

    assert outcome.created is True
    assert repository.emails() == ["ada@example.com"]


def test_malformed_webhook_url_does_not_fail_signup(store, clock, repository) -> None:
    notifier = DiscordWebhookNotifier("http://[::1")
    service = WaitlistService(
        gate=create_abuse_gate(store, clock=clock),
        repository=repository,
        store=store,
        notifier=notifier,
    )

    outcome = asyncio.run(service.join(IP, "ada@example.com"))
    asyncio.run(notifier.close())

    assert outcome.created is True


def test_notification_screens_embed_text_not_email(service, notifier) -> None:
    outcome = asyncio.run(service.join(IP, "winner@example.com"))

    assert outcome.created is True
    assert len(notifier.payloads) == 1
    fields = {f["name"]: f["value"] for f in notifier.payloads[0]["embeds"][0]["fields"]}
    assert fields["Email"] == "winner@example.com"


def test_join_records_analytics_event(service, store) -> None:
    spy = AsyncMock(wraps=store.push_capped)
    with patch.object(store, "push_capped", spy):
        asyncio.run(service.join(IP, "ada@example.com"))

    key, raw, max_length = spy.await_args.args
    event = json.loads(raw)
    assert key == ANALYTICS_EVENTS_KEY
    assert max_length == 1000
    assert event["event"] == "email_added"
    assert event["properties"]["domain"] == "example.com"
    assert event["properties"]["source"] == "waitlist"
    assert "timestamp" in event["properties"]
    assert "ada@example.com" not in raw


def test_duplicate_join_records_no_event(service, store) -> None:
    asyncio.run(service.join(IP, "ada@example.com"))

    spy = AsyncMock(wraps=store.push_capped)
    with patch.object(store, "push_capped", spy):
        asyncio.run(service.join(IP, "ada@example.com"))

    spy.assert_not_awaited()


def test_analytics_store_failure_is_swallowed(service, store, repository) -> None:
    failing = AsyncMock(
        side_effect=StoreUnavailableError(code="store_unavailable", message="Counter store is unavailable")
    )
    with patch.object(store, "push_capped", failing):
        outcome = asyncio.run(service.join(IP, "ada@example.com"))

    assert outcome.created is True
    assert repository.emails() == ["ada@example.com"]
    failing.assert_awaited_once()
