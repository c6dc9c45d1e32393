"""HTTP tests for the Discord webhook relay endpoints."""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.adapters.notifications.base import NotificationResult

IP = "203.0.113.50"


def _send(client: TestClient, body: dict, ip: str = IP):
    return client.post("/v1/webhooks/discord", json=body, headers={"x-forwarded-for": ip})


def test_status_reports_configuration(client: TestClient) -> None:
    resp = client.get("/v1/webhooks/discord")

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "Discord webhook API is operational",
        "configured": True,
    }


def test_send_relays_payload(client: TestClient, notifier) -> None:
    resp = _send(client, {"content": "Deploy finished", "username": "CI"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Notification sent to Discord"}
    assert notifier.payloads == [{"content": "Deploy finished", "username": "CI"}]


def test_send_requires_content_or_embeds(client: TestClient, notifier) -> None:
    resp = _send(client, {"username": "CI"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "missing_content"
    assert notifier.payloads == []


def test_embed_only_message_is_screened(client: TestClient, notifier) -> None:
    resp = _send(client, {"embeds": [{"title": "Alert", "description": "Click here to win"}]})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "suspicious_pattern"
    assert notifier.payloads == []


def test_duplicate_content_rejected_on_third_send(client: TestClient, notifier) -> None:
    assert _send(client, {"content": "Deploy finished"}).status_code == 200
    assert _send(client, {"content": "Deploy finished"}).status_code == 200

    resp = _send(client, {"content": "Deploy finished"})

    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "content_spam_per_actor"
    assert len(notifier.payloads) == 2


def test_delivery_failure_returns_502_and_keeps_quota(client: TestClient, notifier, store) -> None:
    notifier.result = NotificationResult(
        ok=False,
        http_status=429,
        error="Discord rate limit exceeded. Please try again later.",
    )

    resp = _send(client, {"content": "Deploy finished"})

    assert resp.status_code == 502
    error = resp.json()["error"]
    assert error["code"] == "notification_failed"
    assert error["message"] == "Discord rate limit exceeded. Please try again later."
    assert asyncio.run(store.get(f"discord:webhook:{IP}")) == "1"


def test_endpoint_limit_applies_before_body_checks(store, clock, repository, notifier) -> None:
    from app.core.app_factory import create_app
    from app.core.config import LimitSettings
    from app.core.dependencies import get_notifier, get_waitlist_repository
    from app.core.rate_limit import get_abuse_gate, get_counter_store
    from app.services.abuse_gate import create_abuse_gate

    app = create_app()
    gate = create_abuse_gate(store, LimitSettings(endpoint_limit=1), clock=clock)
    app.dependency_overrides[get_counter_store] = lambda: store
    app.dependency_overrides[get_abuse_gate] = lambda: gate
    app.dependency_overrides[get_waitlist_repository] = lambda: repository
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as client:
        assert _send(client, {"username": "CI"}).status_code == 400
        resp = _send(client, {"content": "Deploy finished"})

    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "endpoint_rate_limited"
    assert notifier.payloads == []


def test_embed_with_only_fields_is_relayed(client: TestClient, notifier) -> None:
    body = {"embeds": [{"title": "", "fields": [{"name": "Build", "value": "ok"}]}]}

    resp = _send(client, body)

    assert resp.status_code == 200
    assert notifier.payloads == [{"embeds": [{"title": "", "fields": [{"name": "Build", "value": "ok"}]}]}]


def test_long_embed_descriptions_validated_one_by_one(client: TestClient, notifier) -> None:
    body = {"embeds": [{"description": "a" * 1500}, {"description": "b" * 1500}]}

    resp = _send(client, body)

    assert resp.status_code == 200
    assert len(notifier.payloads) == 1


def test_malformed_webhook_url_returns_502(client: TestClient) -> None:
    from app.adapters.notifications.discord import DiscordWebhookNotifier
    from app.core.dependencies import get_notifier

    client.app.dependency_overrides[get_notifier] = lambda: DiscordWebhookNotifier("http://[::1")

    resp = _send(client, {"content": "Deploy finished"})

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "notification_failed"
