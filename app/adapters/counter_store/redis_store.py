"""Redis counter store adapter.

Uses the official ``redis`` package's asyncio client. Atomicity comes from
Redis itself: ``SET key value NX EX ttl`` for window creation and ``INCR``
for consumption. Client errors, including socket timeouts, are wrapped into
``StoreUnavailableError``.
"""

from __future__ import annotations

import asyncio
import logging
from urllib.parse import urlsplit

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0"}

_STORE_FAILURES = (RedisError, OSError, asyncio.TimeoutError)


def is_local_redis_url(url: str) -> bool:
    """Return True when ``url`` points to a local or containerized Redis.

    Docker service names containing ``redis`` and ``.local`` hosts count as
    local; they are allowed to skip TLS.
    """
    host = (urlsplit(url).hostname or "").lower()
    return host in _LOCAL_HOSTS or "redis" in host or host.endswith(".local")


def mask_redis_url(url: str) -> str:
    """Hide credentials in a Redis URL for logging."""
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return parts._replace(netloc=f"***:***@{host}").geturl()


class RedisCounterStore(AbstractCounterStore):
    """Counter store backed by Redis."""

    def __init__(
        self,
        url: str | None = None,
        *,
        socket_timeout_seconds: float = 2.0,
        client: aioredis.Redis | None = None,
        warn_without_tls: bool = False,
    ) -> None:
        """Initialize the Redis client.

        Args:
            url: Redis connection URL. Ignored when ``client`` is given.
            socket_timeout_seconds: Timeout applied to every command.
            client: Pre-built asyncio Redis client (tests, shared pools).
            warn_without_tls: Log a warning for non-TLS remote URLs.

        Raises:
            ValueError: If neither url nor client is provided.
        """
        if client is None and not url:
            raise ValueError("url or client is required")

        if client is None:
            if warn_without_tls and not url.startswith("rediss://") and not is_local_redis_url(url):
                logger.warning(
                    "counter_store.redis_without_tls",
                    extra={"redis_host": urlsplit(url).hostname},
                )
            client = aioredis.from_url(
                url,
                decode_responses=True,
                socket_timeout=socket_timeout_seconds,
                socket_connect_timeout=socket_timeout_seconds,
            )
            logger.info(
                "counter_store.redis_configured",
                extra={"redis_endpoint": mask_redis_url(url)},
            )

        self._client = client

    def _unavailable(self, operation: str, exc: BaseException) -> StoreUnavailableError:
        logger.error(
            "counter_store.operation_failed",
            extra={
                "operation": operation,
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
            },
        )
        return StoreUnavailableError(
            code="store_unavailable",
            message="Counter store is unavailable",
            details={"backend": "redis", "operation": operation},
        )

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except _STORE_FAILURES as exc:
            raise self._unavailable("get", exc) from exc

    async def set_if_absent_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        try:
            created = await self._client.set(key, value, ex=ttl_seconds, nx=True)
        except _STORE_FAILURES as exc:
            raise self._unavailable("set_nx", exc) from exc
        return bool(created)

    async def increment(self, key: str) -> int:
        try:
            return int(await self._client.incr(key))
        except _STORE_FAILURES as exc:
            raise self._unavailable("incr", exc) from exc

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        try:
            return bool(await self._client.expire(key, ttl_seconds))
        except _STORE_FAILURES as exc:
            raise self._unavailable("expire", exc) from exc

    async def time_to_live(self, key: str) -> int:
        try:
            return int(await self._client.ttl(key))
        except _STORE_FAILURES as exc:
            raise self._unavailable("ttl", exc) from exc

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except _STORE_FAILURES as exc:
            raise self._unavailable("setex", exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except _STORE_FAILURES as exc:
            raise self._unavailable("del", exc) from exc

    async def push_capped(self, key: str, value: str, max_length: int) -> int:
        if max_length < 1:
            raise ValueError("max_length must be >= 1")

        pipe = self._client.pipeline(transaction=True)
        pipe.lpush(key, value)
        pipe.ltrim(key, 0, max_length - 1)
        try:
            pushed_length, _ = await pipe.execute()
        except _STORE_FAILURES as exc:
            raise self._unavailable("lpush_ltrim", exc) from exc
        return min(int(pushed_length), max_length)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except _STORE_FAILURES as exc:
            raise self._unavailable("ping", exc) from exc

    async def close(self) -> None:
        await self._client.aclose()
