"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies every effective limit.
- Thread-safe: uses a lock around shared state, so set-if-absent and
  increment are atomic with respect to each other.
- Expiry is lazy: entries are dropped when read after their deadline.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.counter_store.base import AbstractCounterStore


@dataclass
class _Entry:
    value: str
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a dict with per-key expiry.

    Mirrors the Redis commands the services rely on (GET, SET NX EX, INCR,
    TTL, LPUSH + LTRIM) closely enough that behavior is identical on both
    backends.

    Important:
        This store is per-process only. Use the Redis backend whenever more
        than one worker serves traffic.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}
        self._lists: dict[str, list[str]] = {}

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._lock:
            if self._live_entry_locked(key) is not None:
                return False
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)
            return True

    async def increment(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                # INCR on a missing key creates it without expiry
                entry = _Entry(value="0", expires_at=None)
                self._entries[key] = entry
            try:
                new_value = int(entry.value) + 1
            except ValueError as exc:
                raise ValueError(f"value at {key!r} is not an integer") from exc
            entry.value = str(new_value)
            return new_value

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl_seconds
            return True

    async def time_to_live(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return -2
            if entry.expires_at is None:
                return -1
            return max(0, int(math.ceil(entry.expires_at - self._clock())))

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def push_capped(self, key: str, value: str, max_length: int) -> int:
        if max_length < 1:
            raise ValueError("max_length must be >= 1")

        with self._lock:
            items = self._lists.setdefault(key, [])
            items.insert(0, value)
            del items[max_length:]
            return len(items)

    async def ping(self) -> bool:
        return True
