"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``app.core.config`` so
the settings singleton never points at a real Redis, database or webhook.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("DISCORD_WEBHOOK_URL", None)

from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.notifications.base import AbstractNotifier, NotificationResult
from app.adapters.storage.in_memory import InMemoryWaitlistRepository
from app.core.app_factory import create_app
from app.core.dependencies import get_notifier, get_waitlist_repository
from app.core.rate_limit import get_abuse_gate, get_counter_store
from app.services.abuse_gate import create_abuse_gate
from app.core.errors import StoreUnavailableError


class FakeClock:
    """Deterministic clock used to drive window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FailingCounterStore(AbstractCounterStore):
    """Counter store whose every operation raises StoreUnavailableError."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def _fail(self, operation: str):
        self.calls.append(operation)
        raise StoreUnavailableError(code="store_unavailable", message="Counter store is unavailable")

    async def get(self, key):
        self._fail("get")

    async def set_if_absent_with_ttl(self, key, value, ttl_seconds):
        self._fail("set_if_absent_with_ttl")

    async def increment(self, key):
        self._fail("increment")

    async def expire(self, key, ttl_seconds):
        self._fail("expire")

    async def time_to_live(self, key):
        self._fail("time_to_live")

    async def set_with_ttl(self, key, value, ttl_seconds):
        self._fail("set_with_ttl")

    async def delete(self, key):
        self._fail("delete")

    async def push_capped(self, key, value, max_length):
        self._fail("push_capped")

    async def ping(self):
        self._fail("ping")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def failing_store() -> FailingCounterStore:
    return FailingCounterStore()


class RecordingNotifier(AbstractNotifier):
    """Notifier that records payloads and returns a canned result."""

    def __init__(self, *, configured: bool = True, result: NotificationResult | None = None) -> None:
        self._configured = configured
        self.result = result or NotificationResult(ok=True, http_status=204)
        self.payloads: list[dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def send(self, payload: dict[str, Any]) -> NotificationResult:
        self.payloads.append(payload)
        return self.result


@pytest.fixture
def make_notifier() -> Callable[..., RecordingNotifier]:
    return RecordingNotifier


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def repository() -> InMemoryWaitlistRepository:
    return InMemoryWaitlistRepository()


@pytest.fixture
def client(store, clock, repository, notifier):
    """TestClient over a fresh app wired to in-memory collaborators."""
    app = create_app()
    gate = create_abuse_gate(store, clock=clock)

    app.dependency_overrides[get_counter_store] = lambda: store
    app.dependency_overrides[get_abuse_gate] = lambda: gate
    app.dependency_overrides[get_waitlist_repository] = lambda: repository
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client
