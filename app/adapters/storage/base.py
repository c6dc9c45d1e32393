"""Waitlist repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class InsertResult:
    """Outcome of inserting a waitlist entry.

    Attributes:
        created: True when a new row was written, False on a unique conflict.
        entry_id: Id of the new row (None on conflict).
        existing_id: Id of the conflicting row when it could be looked up.
    """

    created: bool
    entry_id: str | None = None
    existing_id: str | None = None


class AbstractWaitlistRepository(ABC):
    """Interface for storing waitlist signups with unique emails."""

    @abstractmethod
    async def insert(self, email: str) -> InsertResult:
        """Insert ``email``; a duplicate is reported, not raised."""
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        """Return the total number of entries."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backing database answers."""
        raise NotImplementedError

    async def init_schema(self) -> None:
        """Create tables if the backend needs them. Default is a no-op."""
        return None

    async def close(self) -> None:
        """Release resources. Default is a no-op."""
        return None
