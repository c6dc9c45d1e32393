"""Tests for the named limiter policy table."""

import pytest

from app.core.config import LimitSettings
from app.services.limiter_policies import (
    ENDPOINT_PREFIX,
    LimiterPolicies,
    assert_disjoint_prefixes,
    build_limiter_policies,
    endpoint_actor_key,
)
from app.services.rate_limiter import WindowLimiter


def test_default_policy_table(store, clock) -> None:
    policies = build_limiter_policies(store, clock=clock)

    table = {
        name: (limiter.prefix, limiter.limit, limiter.window_seconds)
        for name, limiter in policies.by_name().items()
    }

    assert table == {
        "signup-by-ip": ("waitlist:rate:", 3, 60),
        "signup-by-email": ("waitlist:email:", 5, 3600),
        "generic-endpoint": ("endpoint:", 50, 300),
        "webhook-by-ip": ("discord:webhook:", 10, 300),
        "webhook-global": ("discord:global:", 50, 60),
    }


def test_limits_come_from_settings(store, clock) -> None:
    limits = LimitSettings(signup_ip_limit=7, signup_ip_window_seconds=120)

    policies = build_limiter_policies(store, limits, clock=clock)

    assert policies.signup_by_ip.limit == 7
    assert policies.signup_by_ip.window_seconds == 120


def test_policy_table_is_read_only(store, clock) -> None:
    policies = build_limiter_policies(store, clock=clock)

    with pytest.raises(TypeError):
        policies.by_name()["signup-by-ip"] = policies.webhook_global  # type: ignore[index]


def test_colliding_namespaces_rejected(store) -> None:
    def _limiter(name: str, prefix: str) -> WindowLimiter:
        return WindowLimiter(store, name=name, prefix=prefix, window_seconds=60, limit=1)

    with pytest.raises(ValueError, match="collide"):
        LimiterPolicies(
            signup_by_ip=_limiter("signup-by-ip", "waitlist:"),
            signup_by_email=_limiter("signup-by-email", "waitlist:email:"),
            generic_endpoint=_limiter("generic-endpoint", "endpoint:"),
            webhook_by_ip=_limiter("webhook-by-ip", "hook:ip:"),
            webhook_global=_limiter("webhook-global", "hook:global:"),
        )


def test_assert_disjoint_prefixes_accepts_siblings() -> None:
    assert_disjoint_prefixes(["a:rate:", "a:email:", "b:"])


def test_endpoint_key_cannot_reach_other_namespaces() -> None:
    key = ENDPOINT_PREFIX + endpoint_actor_key("waitlist", "1.2.3.4")

    assert key == "endpoint:waitlist:rate:1.2.3.4"
    assert not key.startswith("waitlist:rate:")
