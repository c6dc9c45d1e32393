"""Process-wide collaborators for the waitlist routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.notifications.base import AbstractNotifier
from app.adapters.notifications.discord import DiscordWebhookNotifier
from app.adapters.storage.base import AbstractWaitlistRepository
from app.adapters.storage.sqlalchemy_repository import SqlAlchemyWaitlistRepository
from app.core.config import settings
from app.core.rate_limit import get_abuse_gate, get_counter_store
from app.services.abuse_gate import AbuseGate
from app.services.waitlist_service import WaitlistService

_repository: AbstractWaitlistRepository | None = None
_notifier: AbstractNotifier | None = None


def get_waitlist_repository() -> AbstractWaitlistRepository:
    global _repository

    if _repository is None:
        _repository = SqlAlchemyWaitlistRepository(
            settings.database.url,
            echo=settings.database.echo,
        )
    return _repository


def get_notifier() -> AbstractNotifier:
    global _notifier

    if _notifier is None:
        _notifier = DiscordWebhookNotifier(
            settings.discord.webhook_url,
            timeout_seconds=settings.discord.timeout_seconds,
        )
    return _notifier


def get_waitlist_service(
    gate: Annotated[AbuseGate, Depends(get_abuse_gate)],
    repository: Annotated[AbstractWaitlistRepository, Depends(get_waitlist_repository)],
    store: Annotated[AbstractCounterStore, Depends(get_counter_store)],
    notifier: Annotated[AbstractNotifier, Depends(get_notifier)],
) -> WaitlistService:
    """Assemble the signup service from the shared collaborators."""
    return WaitlistService(
        gate=gate,
        repository=repository,
        store=store,
        notifier=notifier,
        notification_username=settings.discord.username,
        stats_cache_ttl_seconds=settings.store.stats_cache_ttl_seconds,
    )


async def close_collaborators() -> None:
    """Release repository and notifier resources on shutdown."""
    global _repository, _notifier

    if _repository is not None:
        await _repository.close()
    if _notifier is not None:
        await _notifier.close()
    _repository = None
    _notifier = None
