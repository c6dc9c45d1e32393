"""Counter store adapters.

The abuse-prevention layer keeps all of its state in a shared TTL-based
counter store. Services depend on the abstract interface only, so the Redis
backend used in production and the in-memory backend used in development and
tests are interchangeable.
"""

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.factory import create_counter_store
from app.adapters.counter_store.in_memory import InMemoryCounterStore
from app.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
