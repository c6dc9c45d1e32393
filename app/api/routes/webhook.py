from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.adapters.notifications.base import AbstractNotifier
from app.core.dependencies import get_notifier
from app.core.errors import NotificationAppError, ValidationAppError
from app.core.rate_limit import enforce_endpoint_rate_limit, get_abuse_gate, get_request_ip
from app.schemas.webhook import WebhookSendRequest, WebhookSendResponse, WebhookStatusResponse
from app.services.abuse_gate import AbuseGate
from app.services.decision import decision_error

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhooks"])

WEBHOOK_ENDPOINT_NAME = "discord-webhook"


@router.post(
    "/webhooks/discord",
    response_model=WebhookSendResponse,
    dependencies=[Depends(enforce_endpoint_rate_limit(WEBHOOK_ENDPOINT_NAME))],
)
async def send_discord_webhook(
    body: WebhookSendRequest,
    ip: Annotated[str, Depends(get_request_ip)],
    gate: Annotated[AbuseGate, Depends(get_abuse_gate)],
    notifier: Annotated[AbstractNotifier, Depends(get_notifier)],
) -> WebhookSendResponse:
    """Relay a message to the configured Discord webhook.

    The generic endpoint limiter runs first, then the webhook gate (IP and
    global limits, content checks, duplicate-content filter). Quota consumed
    by the gate is kept even if delivery fails.

    Raises:
        ValidationAppError: Missing or invalid content (400).
        RateLimitAppError: Endpoint, webhook or spam limit hit (429).
        StoreUnavailableError: Counter store down (503).
        NotificationAppError: Discord rejected or was unreachable (502).
    """
    if not body.content and not body.embeds:
        raise ValidationAppError(
            code="missing_content",
            message="Either 'content' or 'embeds' is required",
        )

    decision = await gate.evaluate_webhook_send(
        ip,
        body.content or None,
        embed_descriptions=body.embed_descriptions(),
    )
    if not decision.allowed:
        raise decision_error(decision)

    result = await notifier.send(body.to_payload())
    if not result.ok:
        raise NotificationAppError(
            code="notification_failed",
            message=result.error or "Failed to send Discord notification",
            details={"http_status": result.http_status} if result.http_status else None,
        )

    return WebhookSendResponse(message="Notification sent to Discord")


@router.get("/webhooks/discord", response_model=WebhookStatusResponse)
async def discord_webhook_status(
    notifier: Annotated[AbstractNotifier, Depends(get_notifier)],
) -> WebhookStatusResponse:
    """Report whether a Discord webhook destination is configured."""
    return WebhookStatusResponse(configured=notifier.configured)
