"""Discord webhook notifier adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.adapters.notifications.base import AbstractNotifier, NotificationResult

logger = logging.getLogger(__name__)


class DiscordWebhookNotifier(AbstractNotifier):
    """Posts JSON payloads to a Discord webhook URL using httpx.

    The client is created lazily and reused across sends.
    """

    def __init__(
        self,
        webhook_url: str | None,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            webhook_url: Destination URL; sends fail fast when None.
            timeout_seconds: Total request timeout.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._webhook_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def send(self, payload: dict[str, Any]) -> NotificationResult:
        if not self._webhook_url:
            logger.error("discord.not_configured")
            return NotificationResult(ok=False, error="Discord webhook not configured")

        try:
            response = await self._get_client().post(self._webhook_url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error(
                "discord.send_error",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return NotificationResult(ok=False, error="Failed to send Discord notification")

        if response.is_success:
            logger.info("discord.sent", extra={"http_status": response.status_code})
            return NotificationResult(ok=True, http_status=response.status_code)

        logger.error(
            "discord.send_failed",
            extra={
                "http_status": response.status_code,
                "response_text": response.text[:200],
            },
        )
        if response.status_code == 429:
            return NotificationResult(
                ok=False,
                http_status=429,
                error="Discord rate limit exceeded. Please try again later.",
            )
        return NotificationResult(
            ok=False,
            http_status=response.status_code,
            error=f"Discord webhook failed: {response.status_code}",
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
