"""Waitlist signup workflow.

Orchestrates the abuse gate, persistence and the signup notification:
- Gate rejection is raised as an AppError (validation, quota or outage)
- An email already on the list counts as success; quota was spent anyway
- New signups invalidate the cached stats, append an `email_added` event to
  the capped analytics log and trigger a Discord embed
- Notification problems are logged and never fail the signup
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.notifications.base import AbstractNotifier
from app.adapters.storage.base import AbstractWaitlistRepository
from app.core.errors import StoreUnavailableError
from app.services.abuse_gate import AbuseGate
from app.services.decision import decision_error
from app.services.input_validation import normalize_email
from app.utils.hashing import short_hash

logger = logging.getLogger(__name__)

STATS_CACHE_KEY = "waitlist_stats"
ANALYTICS_EVENTS_KEY = "analytics_events"
ANALYTICS_EVENTS_MAX = 1000

JOINED_MESSAGE = "Thanks for joining the waitlist! We'll be in touch soon."
ALREADY_JOINED_MESSAGE = "You're already on the waitlist! We'll be in touch soon."


@dataclass(frozen=True)
class SignupOutcome:
    created: bool
    already_registered: bool
    entry_id: str | None
    message: str


@dataclass(frozen=True)
class WaitlistStats:
    total_entries: int


def build_signup_embed(email: str, total_entries: int | None) -> dict[str, Any]:
    """Build the Discord embed announcing a new signup."""
    now = datetime.now(timezone.utc)
    return {
        "title": "New Waitlist Signup!",
        "description": "Someone just joined the waitlist!",
        "color": 0x00FF00,
        "fields": [
            {"name": "Email", "value": email, "inline": True},
            {
                "name": "Total Entries",
                "value": str(total_entries) if total_entries else "Unknown",
                "inline": True,
            },
            {"name": "Time", "value": now.strftime("%Y-%m-%d %H:%M:%S UTC"), "inline": False},
        ],
        "timestamp": now.isoformat(),
        "footer": {"text": "Waitlist Notification System"},
    }


class WaitlistService:
    """Signup and stats use cases for the public waitlist."""

    def __init__(
        self,
        *,
        gate: AbuseGate,
        repository: AbstractWaitlistRepository,
        store: AbstractCounterStore,
        notifier: AbstractNotifier | None = None,
        notification_username: str = "Waitlist Bot",
        stats_cache_ttl_seconds: int = 600,
    ) -> None:
        self._gate = gate
        self._repository = repository
        self._store = store
        self._notifier = notifier
        self._notification_username = notification_username
        self._stats_ttl = stats_cache_ttl_seconds

    async def join(self, ip: str, email: str | None) -> SignupOutcome:
        """Add ``email`` to the waitlist on behalf of ``ip``.

        Args:
            ip: Resolved client IP.
            email: Email as submitted.

        Returns:
            SignupOutcome describing whether a new entry was created.

        Raises:
            ValidationAppError: Email failed syntactic validation.
            RateLimitAppError: IP or email quota exhausted.
            StoreUnavailableError: Rate-limit state could not be read.
        """
        decision = await self._gate.evaluate_signup(ip, email)
        if not decision.allowed:
            raise decision_error(decision)

        normalized = normalize_email(email)
        result = await self._repository.insert(normalized)

        if not result.created:
            logger.info(
                "waitlist.already_registered",
                extra={"email_hash": short_hash(normalized)},
            )
            return SignupOutcome(
                created=False,
                already_registered=True,
                entry_id=result.existing_id,
                message=ALREADY_JOINED_MESSAGE,
            )

        logger.info(
            "waitlist.joined",
            extra={"email_hash": short_hash(normalized), "entry_id": result.entry_id},
        )
        await self._invalidate_stats()
        await self._track_event(
            "email_added",
            {"email_hash": short_hash(normalized), "domain": normalized.rsplit("@", 1)[-1]},
        )
        await self._notify_signup(ip, normalized)

        return SignupOutcome(
            created=True,
            already_registered=False,
            entry_id=result.entry_id,
            message=JOINED_MESSAGE,
        )

    async def stats(self) -> WaitlistStats:
        """Return waitlist stats, served from the counter store when cached."""
        try:
            cached = await self._store.get(STATS_CACHE_KEY)
        except StoreUnavailableError:
            cached = None
            logger.warning("waitlist.stats_cache_unavailable")

        if cached is not None:
            try:
                return WaitlistStats(total_entries=int(json.loads(cached)["total_entries"]))
            except (ValueError, KeyError, TypeError):
                logger.warning("waitlist.stats_cache_corrupt")

        try:
            total = await self._repository.count()
        except Exception as exc:
            logger.error(
                "waitlist.stats_count_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return WaitlistStats(total_entries=0)

        try:
            await self._store.set_with_ttl(
                STATS_CACHE_KEY, json.dumps({"total_entries": total}), self._stats_ttl
            )
        except StoreUnavailableError:
            logger.warning("waitlist.stats_cache_write_failed")

        return WaitlistStats(total_entries=total)

    async def _invalidate_stats(self) -> None:
        try:
            await self._store.delete(STATS_CACHE_KEY)
        except StoreUnavailableError:
            logger.warning("waitlist.stats_invalidate_failed")

    async def _track_event(self, event: str, properties: dict[str, Any]) -> None:
        """Append an event to the capped analytics log; failures are logged only."""
        record = {
            "event": event,
            "properties": {
                **properties,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "source": "waitlist",
            },
        }
        try:
            await self._store.push_capped(ANALYTICS_EVENTS_KEY, json.dumps(record), ANALYTICS_EVENTS_MAX)
        except StoreUnavailableError:
            logger.warning("waitlist.track_event_failed", extra={"event": event})

    async def _notify_signup(self, ip: str, email: str) -> None:
        if self._notifier is None or not self._notifier.configured:
            logger.info("waitlist.notification_skipped", extra={"reason": "not_configured"})
            return

        try:
            await self._send_signup_notification(ip, email)
        except Exception as exc:
            logger.error(
                "waitlist.notification_error",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )

    async def _send_signup_notification(self, ip: str, email: str) -> None:
        stats = await self.stats()
        embed = build_signup_embed(email, stats.total_entries)

        # Spam screening runs on the embed text, never on the raw email
        decision = await self._gate.evaluate_webhook_send(ip, embed["description"])
        if not decision.allowed:
            logger.warning(
                "waitlist.notification_blocked",
                extra={"reason_code": decision.reason_code.value},
            )
            return

        result = await self._notifier.send({"embeds": [embed], "username": self._notification_username})
        if not result.ok:
            logger.warning(
                "waitlist.notification_failed",
                extra={"http_status": result.http_status, "error_msg": result.error},
            )
