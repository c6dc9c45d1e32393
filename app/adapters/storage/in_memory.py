"""In-memory waitlist repository (per-process, development and tests)."""

from __future__ import annotations

import threading
import uuid

from app.adapters.storage.base import AbstractWaitlistRepository, InsertResult


class InMemoryWaitlistRepository(AbstractWaitlistRepository):
    """Dict-backed repository enforcing email uniqueness under a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids_by_email: dict[str, str] = {}

    async def insert(self, email: str) -> InsertResult:
        with self._lock:
            existing = self._ids_by_email.get(email)
            if existing is not None:
                return InsertResult(created=False, existing_id=existing)

            entry_id = str(uuid.uuid4())
            self._ids_by_email[email] = entry_id
            return InsertResult(created=True, entry_id=entry_id)

    async def count(self) -> int:
        with self._lock:
            return len(self._ids_by_email)

    async def ping(self) -> bool:
        return True

    def emails(self) -> list[str]:
        """Return stored emails in insertion order."""
        with self._lock:
            return list(self._ids_by_email)
