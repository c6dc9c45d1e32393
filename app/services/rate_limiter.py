"""Fixed-window rate limiter with separate check and consume phases.

``check`` only reads the counter; ``consume`` records one use. Callers
compose several limiters by checking all of them first and consuming only
once every check has passed, so a rejected request never spends quota.

Window semantics:
- The first consume in a window creates the counter with ``SET NX EX``;
  its TTL equals the window length.
- Later consumes ``INCR`` the counter.
- The store's expiry resets the window; counters are never deleted here.
- Fixed windows admit a burst of up to 2x the limit across a boundary.

Failure policy:
- ``check`` fails closed: a store error yields ``allowed=False``.
- ``consume`` failures are logged and swallowed.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.errors import StoreUnavailableError
from app.utils.hashing import short_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether one more request would be admitted.
        limit: Max requests per window.
        remaining: Requests left after admitting this one (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        store_available: False when the decision was forced by a store failure.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    store_available: bool = True


class WindowLimiter:
    """Store-backed fixed-window limiter for a single key namespace."""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        name: str,
        prefix: str,
        window_seconds: int,
        limit: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared counter store.
            name: Policy name used in logs.
            prefix: Key namespace prepended to every actor key.
            window_seconds: Size of the fixed window in seconds.
            limit: Maximum number of consumes per window.
            clock: Time source used for reset_at values only.

        Raises:
            ValueError: If limit, window_seconds or prefix are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if not prefix:
            raise ValueError("prefix must be a non-empty string")

        self._store = store
        self.name = name
        self.prefix = prefix
        self.window_seconds = window_seconds
        self.limit = limit
        self._clock = clock

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"WindowLimiter(name={self.name!r}, prefix={self.prefix!r}, "
            f"window_seconds={self.window_seconds}, limit={self.limit})"
        )

    def key_for(self, actor_key: str) -> str:
        """Build the namespaced store key for ``actor_key``."""
        if not actor_key:
            raise ValueError("actor_key must be a non-empty string")
        return f"{self.prefix}{actor_key}"

    def _log_extra(self, key: str, **fields: object) -> dict[str, object]:
        return {
            "limiter": self.name,
            "key_hash": short_hash(key),
            "limit": self.limit,
            "window_s": self.window_seconds,
            **fields,
        }

    async def check(self, actor_key: str) -> RateLimitResult:
        """Report whether one more request for ``actor_key`` would be allowed.

        Never mutates the counter.

        Args:
            actor_key: Identifier of the rate-limited subject.

        Returns:
            RateLimitResult; ``allowed=False`` with ``store_available=False``
            when the store could not be read.
        """
        key = self.key_for(actor_key)
        now = self._clock()

        try:
            raw = await self._store.get(key)
        except StoreUnavailableError:
            logger.error("rate_limit.check_store_unavailable", extra=self._log_extra(key))
            return self._unavailable_result(now)

        if raw is None:
            return self._allowed_result(now, remaining=self.limit - 1)

        try:
            count = int(raw)
        except ValueError:
            logger.error("rate_limit.corrupt_counter", extra=self._log_extra(key))
            return self._unavailable_result(now)

        if count < self.limit:
            return self._allowed_result(now, remaining=self.limit - count - 1)

        retry_after = await self._retry_after(key)
        logger.warning(
            "rate_limit.check_blocked",
            extra=self._log_extra(key, count=count, retry_after_s=retry_after),
        )
        return RateLimitResult(
            allowed=False,
            limit=self.limit,
            remaining=0,
            reset_at=int(math.ceil(now)) + retry_after,
            retry_after_seconds=retry_after,
        )

    async def consume(self, actor_key: str) -> None:
        """Record one use for ``actor_key``.

        Call exactly once per admitted request, after every gating check
        passed. Not idempotent.
        """
        key = self.key_for(actor_key)

        try:
            if await self._store.set_if_absent_with_ttl(key, "1", self.window_seconds):
                logger.debug("rate_limit.window_started", extra=self._log_extra(key))
                return

            count = await self._store.increment(key)
            if count == 1:
                # The window expired between SET NX and INCR; INCR recreated it without TTL
                await self._store.expire(key, self.window_seconds)
            logger.debug("rate_limit.consumed", extra=self._log_extra(key, count=count))
        except StoreUnavailableError:
            logger.warning("rate_limit.consume_failed", extra=self._log_extra(key))

    async def _retry_after(self, key: str) -> int:
        try:
            ttl = await self._store.time_to_live(key)
        except StoreUnavailableError:
            ttl = -1
        if ttl <= 0:
            return self.window_seconds
        return ttl

    def _allowed_result(self, now: float, *, remaining: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=remaining,
            reset_at=int(math.ceil(now)) + self.window_seconds,
            retry_after_seconds=None,
        )

    def _unavailable_result(self, now: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            limit=self.limit,
            remaining=0,
            reset_at=int(math.ceil(now)) + self.window_seconds,
            retry_after_seconds=self.window_seconds,
            store_available=False,
        )
