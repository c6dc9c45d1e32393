"""Rate limiting wiring for FastAPI routes.

Design goals:
- One process-wide counter store and abuse gate, built on first use from
  settings and shared by every request.
- Routes depend on dependency functions only; tests swap implementations
  through ``app.dependency_overrides``.
- The generic per-endpoint limiter runs as a route dependency before any
  body parsing, so abusive clients are turned away cheaply.
"""

from __future__ import annotations

from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request

from app.adapters.counter_store.base import AbstractCounterStore
from app.adapters.counter_store.factory import create_counter_store
from app.core.client_ip import get_client_ip
from app.core.config import settings
from app.services.abuse_gate import AbuseGate, create_abuse_gate
from app.services.decision import decision_error

_store: AbstractCounterStore | None = None
_gate: AbuseGate | None = None


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store, creating it on first use."""
    global _store

    if _store is None:
        _store = create_counter_store(settings.store)
    return _store


def get_abuse_gate(
    store: Annotated[AbstractCounterStore, Depends(get_counter_store)],
) -> AbuseGate:
    """Return the process-wide abuse gate built over ``store``.

    The policy table is built once; limits come from LIMIT_* settings.
    """
    global _gate

    if _gate is None:
        _gate = create_abuse_gate(store, settings.limits)
    return _gate


async def reset_rate_limiting() -> None:
    """Close the store and drop cached instances (shutdown and tests)."""
    global _store, _gate

    if _store is not None:
        await _store.close()
    _store = None
    _gate = None


def get_request_ip(request: Request) -> str:
    """Client IP resolved by the middleware, or resolved here as a fallback."""
    client_ip = getattr(request.state, "client_ip", None)
    if client_ip:
        return client_ip
    return get_client_ip(request, trust_proxy_headers=settings.app.trust_proxy_headers)


def enforce_endpoint_rate_limit(endpoint: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency applying the generic-endpoint policy to ``endpoint``.

    Usage:
        @router.post("/x", dependencies=[Depends(enforce_endpoint_rate_limit("x"))])

    Raises (from the dependency):
        RateLimitAppError: 429 when the endpoint budget for the IP is spent.
        StoreUnavailableError: 503 when the counter store is down.
    """

    async def _enforce(
        gate: Annotated[AbuseGate, Depends(get_abuse_gate)],
        ip: Annotated[str, Depends(get_request_ip)],
    ) -> None:
        decision = await gate.evaluate_endpoint(ip, endpoint)
        if not decision.allowed:
            raise decision_error(decision)

    return _enforce
