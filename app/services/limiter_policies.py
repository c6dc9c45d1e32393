"""Named limiter policies for the signup and webhook workflows.

The policy table is built once at startup and handed to the gate. Each
policy owns a key namespace; namespaces are checked to be disjoint so two
policies can never count against the same store key.

| Policy           | Key basis        | Prefix             | Default    |
|------------------|------------------|--------------------|------------|
| signup-by-ip     | client IP        | waitlist:rate:     | 3 / 60s    |
| signup-by-email  | lowercased email | waitlist:email:    | 5 / 3600s  |
| generic-endpoint | endpoint + IP    | endpoint:          | 50 / 300s  |
| webhook-by-ip    | client IP        | discord:webhook:   | 10 / 300s  |
| webhook-global   | constant key     | discord:global:    | 50 / 60s   |
"""

from __future__ import annotations

import time
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.config import LimitSettings
from app.services.rate_limiter import WindowLimiter

SIGNUP_IP_PREFIX = "waitlist:rate:"
SIGNUP_EMAIL_PREFIX = "waitlist:email:"
ENDPOINT_PREFIX = "endpoint:"
WEBHOOK_IP_PREFIX = "discord:webhook:"
WEBHOOK_GLOBAL_PREFIX = "discord:global:"
CONTENT_GLOBAL_PREFIX = "discord:content:"
CONTENT_ACTOR_PREFIX = "discord:ip-content:"

WEBHOOK_GLOBAL_KEY = "rate"


def endpoint_actor_key(endpoint: str, ip: str) -> str:
    """Actor key for the generic-endpoint policy (``<endpoint>:rate:<ip>``)."""
    return f"{endpoint}:rate:{ip}"


def assert_disjoint_prefixes(prefixes: Iterable[str]) -> None:
    """Raise ValueError when any namespace prefix is a prefix of another."""
    items = sorted(prefixes)
    for i, first in enumerate(items):
        for second in items[i + 1:]:
            if second.startswith(first) or first.startswith(second):
                raise ValueError(f"limiter namespaces collide: {first!r} / {second!r}")


@dataclass(frozen=True)
class LimiterPolicies:
    """Immutable set of the named limiters used by the gate."""

    signup_by_ip: WindowLimiter
    signup_by_email: WindowLimiter
    generic_endpoint: WindowLimiter
    webhook_by_ip: WindowLimiter
    webhook_global: WindowLimiter

    def __post_init__(self) -> None:
        assert_disjoint_prefixes(
            [*(limiter.prefix for limiter in self._limiters()), CONTENT_GLOBAL_PREFIX, CONTENT_ACTOR_PREFIX]
        )

    def _limiters(self) -> list[WindowLimiter]:
        return [getattr(self, f.name) for f in fields(self)]

    def by_name(self) -> Mapping[str, WindowLimiter]:
        """Read-only mapping of policy name to limiter."""
        return MappingProxyType({limiter.name: limiter for limiter in self._limiters()})


def build_limiter_policies(
    store: AbstractCounterStore,
    limits: LimitSettings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> LimiterPolicies:
    """Instantiate every named policy against ``store``.

    Args:
        store: Shared counter store.
        limits: Window/limit configuration; defaults to the built-in table.
        clock: Time source forwarded to every limiter.

    Returns:
        LimiterPolicies: Immutable policy table.
    """
    cfg = limits or LimitSettings()

    def _limiter(name: str, prefix: str, window_seconds: int, limit: int) -> WindowLimiter:
        return WindowLimiter(
            store,
            name=name,
            prefix=prefix,
            window_seconds=window_seconds,
            limit=limit,
            clock=clock,
        )

    return LimiterPolicies(
        signup_by_ip=_limiter(
            "signup-by-ip", SIGNUP_IP_PREFIX, cfg.signup_ip_window_seconds, cfg.signup_ip_limit
        ),
        signup_by_email=_limiter(
            "signup-by-email", SIGNUP_EMAIL_PREFIX, cfg.signup_email_window_seconds, cfg.signup_email_limit
        ),
        generic_endpoint=_limiter(
            "generic-endpoint", ENDPOINT_PREFIX, cfg.endpoint_window_seconds, cfg.endpoint_limit
        ),
        webhook_by_ip=_limiter(
            "webhook-by-ip", WEBHOOK_IP_PREFIX, cfg.webhook_ip_window_seconds, cfg.webhook_ip_limit
        ),
        webhook_global=_limiter(
            "webhook-global", WEBHOOK_GLOBAL_PREFIX, cfg.webhook_global_window_seconds, cfg.webhook_global_limit
        ),
    )
