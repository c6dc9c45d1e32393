"""Counter store interface.

Services depend on this abstraction rather than a concrete client. Every
implementation must provide atomic increment and set-if-absent primitives;
no client-side locking is layered on top of them.

Failures of any kind are raised as ``StoreUnavailableError`` so callers can
tell an outage apart from an absent counter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Interface for shared, TTL-based counter stores."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value stored under ``key`` or None when absent.

        Raises:
            StoreUnavailableError: If the store cannot be queried.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Atomically create ``key`` with an expiry, only if it does not exist.

        Args:
            key: Counter key.
            value: Initial value.
            ttl_seconds: Expiry applied on creation.

        Returns:
            True when this call created the key, False if it already existed.

        Raises:
            StoreUnavailableError: If the store cannot be updated.
        """
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically increment ``key`` by one and return the new value.

        Raises:
            StoreUnavailableError: If the store cannot be updated.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set an expiry on an existing key.

        Returns:
            True when the key existed and the expiry was applied.
        """
        raise NotImplementedError

    @abstractmethod
    async def time_to_live(self, key: str) -> int:
        """Return seconds until ``key`` expires.

        Returns:
            Remaining seconds, -1 when the key has no expiry and -2 when it
            does not exist.

        Raises:
            StoreUnavailableError: If the store cannot be queried.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """Unconditionally store ``value`` under ``key`` with an expiry."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        raise NotImplementedError

    @abstractmethod
    async def push_capped(self, key: str, value: str, max_length: int) -> int:
        """Prepend ``value`` to the list at ``key`` and trim it to ``max_length``.

        The newest item is first; items beyond ``max_length`` are dropped.

        Returns:
            Length of the list after trimming.

        Raises:
            StoreUnavailableError: If the store cannot be updated.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the store is reachable."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources. Default is a no-op."""
        return None
