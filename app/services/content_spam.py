"""Content deduplication spam filter.

Identical content is counted twice per fingerprint: once globally and once
per actor. ``evaluate`` checks both counters and, only if both are under
their caps, increments both. Unlike the window limiters, check and consume
are merged into one call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from hashlib import sha256

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.errors import StoreUnavailableError
from app.services.decision import STORE_UNAVAILABLE_MESSAGE, ReasonCode
from app.services.limiter_policies import CONTENT_ACTOR_PREFIX, CONTENT_GLOBAL_PREFIX
from app.utils.hashing import short_hash

logger = logging.getLogger(__name__)

FINGERPRINT_HEX_CHARS = 32  # 128 bits


def fingerprint(text: str) -> str:
    """Return a one-way, fixed-length digest of ``text``."""
    return sha256(text.encode("utf-8")).hexdigest()[:FINGERPRINT_HEX_CHARS]


@dataclass(frozen=True)
class SpamVerdict:
    allowed: bool
    reason_code: ReasonCode
    message: str = ""


class ContentSpamFilter:
    """Caps how often the same content may be sent, globally and per actor."""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        window_seconds: int = 3600,
        global_limit: int = 5,
        actor_limit: int = 2,
    ) -> None:
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if global_limit < 1 or actor_limit < 1:
            raise ValueError("limits must be >= 1")

        self._store = store
        self.window_seconds = window_seconds
        self.global_limit = global_limit
        self.actor_limit = actor_limit

    def keys_for(self, text: str, actor_key: str) -> tuple[str, str]:
        """Return the (global, per-actor) counter keys for ``text``."""
        digest = fingerprint(text)
        return (
            f"{CONTENT_GLOBAL_PREFIX}{digest}",
            f"{CONTENT_ACTOR_PREFIX}{actor_key}:{digest}",
        )

    async def evaluate(self, text: str, actor_key: str) -> SpamVerdict:
        """Check and record one submission of ``text`` by ``actor_key``.

        Returns:
            SpamVerdict; a store failure rejects with STORE_UNAVAILABLE.
        """
        global_key, actor_content_key = self.keys_for(text, actor_key)
        log_extra = {"content_hash": global_key[len(CONTENT_GLOBAL_PREFIX):], "actor_hash": short_hash(actor_key)}

        try:
            global_count = _as_count(await self._store.get(global_key))
            if global_count >= self.global_limit:
                logger.warning("content_spam.global_limit", extra={**log_extra, "count": global_count})
                return SpamVerdict(
                    allowed=False,
                    reason_code=ReasonCode.CONTENT_SPAM_GLOBAL,
                    message="Content has been sent too frequently",
                )

            actor_count = _as_count(await self._store.get(actor_content_key))
            if actor_count >= self.actor_limit:
                logger.warning("content_spam.actor_limit", extra={**log_extra, "count": actor_count})
                return SpamVerdict(
                    allowed=False,
                    reason_code=ReasonCode.CONTENT_SPAM_PER_ACTOR,
                    message="You have sent this content too frequently",
                )

            await self._record(global_key)
            await self._record(actor_content_key)
        except (StoreUnavailableError, ValueError):
            logger.error("content_spam.store_unavailable", extra=log_extra)
            return SpamVerdict(
                allowed=False,
                reason_code=ReasonCode.STORE_UNAVAILABLE,
                message=STORE_UNAVAILABLE_MESSAGE,
            )

        return SpamVerdict(allowed=True, reason_code=ReasonCode.OK)

    async def _record(self, key: str) -> None:
        if await self._store.set_if_absent_with_ttl(key, "1", self.window_seconds):
            return
        if await self._store.increment(key) == 1:
            await self._store.expire(key, self.window_seconds)


def _as_count(raw: str | None) -> int:
    return int(raw) if raw is not None else 0
