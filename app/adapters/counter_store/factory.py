"""Factory for creating counter store instances."""

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.redis_store import RedisCounterStore
from app.core.config import StoreSettings, settings
from app.core.errors import ValidationAppError


def create_counter_store(store_settings: StoreSettings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        store_settings: Optional store settings; defaults to global settings.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown or the Redis URL is missing.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "redis":
        if not cfg.redis_url:
            raise ValidationAppError(
                code="store_missing_url",
                message="Redis backend requires STORE_REDIS_URL environment variable",
            )
        return RedisCounterStore(
            cfg.redis_url,
            socket_timeout_seconds=cfg.socket_timeout_seconds,
            warn_without_tls=settings.app_env == "production",
        )

    if backend == "memory":
        return InMemoryCounterStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown counter store backend: '{backend}'. Supported backends: redis, memory",
    )
