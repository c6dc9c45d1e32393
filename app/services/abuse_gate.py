"""Abuse gate: ordered admission checks for each workflow.

The gate is the only component that knows which limiters a workflow uses
and in what order. Every workflow follows the same protocol:

1. Run checks strictly in sequence; the first rejection short-circuits and
   nothing is consumed.
2. Once every check passed, consume each consulted limiter exactly once.
3. Return control to the caller, which performs the side effect.

Consumed quota is never rolled back, whether the caller's side effect
fails or the request is abandoned.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from app.adapters.counter_store.base import AbstractCounterStore
from app.core.config import LimitSettings
from app.services.content_spam import ContentSpamFilter
from app.services.decision import STORE_UNAVAILABLE_MESSAGE, Decision, ReasonCode, format_retry_minutes
from app.services.input_validation import normalize_email, validate_content, validate_email
from app.services.limiter_policies import (
    WEBHOOK_GLOBAL_KEY,
    LimiterPolicies,
    build_limiter_policies,
    endpoint_actor_key,
)
from app.services.rate_limiter import RateLimitResult
from app.utils.hashing import short_hash

logger = logging.getLogger(__name__)


def _limited(result: RateLimitResult, reason_code: ReasonCode, message_prefix: str) -> Decision:
    """Turn a failed limiter check into a rejection decision."""
    if not result.store_available:
        return Decision.reject(ReasonCode.STORE_UNAVAILABLE, STORE_UNAVAILABLE_MESSAGE)

    return Decision.reject(
        reason_code,
        f"{message_prefix} Please try again in {format_retry_minutes(result.retry_after_seconds)}.",
        retry_after_seconds=result.retry_after_seconds,
        limit=result.limit,
        reset_at=result.reset_at,
    )


class AbuseGate:
    """Evaluates signup, webhook and endpoint requests against the policy table."""

    def __init__(self, policies: LimiterPolicies, spam_filter: ContentSpamFilter) -> None:
        self._policies = policies
        self._spam_filter = spam_filter

    async def evaluate_signup(self, ip: str, email: str | None) -> Decision:
        """Admit or reject a waitlist signup.

        Order: email syntax, IP check, email check, then IP consume and email
        consume. The caller persists only when the decision is allowed.

        Args:
            ip: Resolved client IP.
            email: Email as submitted.

        Returns:
            Decision for the signup attempt.
        """
        issue = validate_email(email)
        if issue is not None:
            logger.info(
                "gate.signup_rejected",
                extra={"reason_code": issue.reason_code.value, "ip_hash": short_hash(ip)},
            )
            return Decision.reject(issue.reason_code, issue.message)

        email_key = normalize_email(email)
        by_ip = self._policies.signup_by_ip
        by_email = self._policies.signup_by_email

        ip_result = await by_ip.check(ip)
        if not ip_result.allowed:
            return self._rejected(
                "gate.signup_rejected",
                _limited(ip_result, ReasonCode.IP_RATE_LIMITED, "Too many requests from your location."),
                ip,
            )

        email_result = await by_email.check(email_key)
        if not email_result.allowed:
            return self._rejected(
                "gate.signup_rejected",
                _limited(email_result, ReasonCode.EMAIL_RATE_LIMITED, "Too many attempts with this email."),
                ip,
            )

        await by_ip.consume(ip)
        await by_email.consume(email_key)

        logger.info(
            "gate.signup_admitted",
            extra={
                "ip_hash": short_hash(ip),
                "ip_remaining": ip_result.remaining,
                "email_remaining": email_result.remaining,
            },
        )
        return Decision.ok()

    async def evaluate_webhook_send(
        self,
        ip: str,
        content: str | None,
        *,
        embed_descriptions: Sequence[str] = (),
    ) -> Decision:
        """Admit or reject a webhook send.

        Order: IP check, global check, content syntax, content spam filter
        (check and consume), then IP consume and global consume.

        The screened texts are ``content`` (when not None) followed by every
        non-empty embed description. Each text is validated before any is
        fingerprinted; the first rejection wins. A send with no text at all
        (embeds carrying only fields or titles) skips both text checks.

        Args:
            ip: Resolved client IP.
            content: Message text that would be sent.
            embed_descriptions: Descriptions of the embeds that would be sent.

        Returns:
            Decision for the send attempt.
        """
        by_ip = self._policies.webhook_by_ip
        global_limiter = self._policies.webhook_global

        ip_result = await by_ip.check(ip)
        if not ip_result.allowed:
            return self._rejected(
                "gate.webhook_rejected",
                _limited(ip_result, ReasonCode.IP_RATE_LIMITED, "Too many webhook requests from your location."),
                ip,
            )

        global_result = await global_limiter.check(WEBHOOK_GLOBAL_KEY)
        if not global_result.allowed:
            return self._rejected(
                "gate.webhook_rejected",
                _limited(global_result, ReasonCode.GLOBAL_RATE_LIMITED, "System is experiencing high load."),
                ip,
            )

        texts = [] if content is None else [content]
        texts.extend(description for description in embed_descriptions if description)

        for text in texts:
            issue = validate_content(text)
            if issue is not None:
                return self._rejected(
                    "gate.webhook_rejected",
                    Decision.reject(issue.reason_code, issue.message),
                    ip,
                )

        for text in texts:
            verdict = await self._spam_filter.evaluate(text, ip)
            if not verdict.allowed:
                return self._rejected(
                    "gate.webhook_rejected",
                    Decision.reject(verdict.reason_code, verdict.message),
                    ip,
                )

        await by_ip.consume(ip)
        await global_limiter.consume(WEBHOOK_GLOBAL_KEY)

        logger.info(
            "gate.webhook_admitted",
            extra={"ip_hash": short_hash(ip), "ip_remaining": ip_result.remaining},
        )
        return Decision.ok()

    async def evaluate_endpoint(self, ip: str, endpoint: str) -> Decision:
        """Apply the generic per-endpoint limiter (check, then consume)."""
        limiter = self._policies.generic_endpoint
        actor_key = endpoint_actor_key(endpoint, ip)

        result = await limiter.check(actor_key)
        if not result.allowed:
            return self._rejected(
                "gate.endpoint_rejected",
                _limited(result, ReasonCode.ENDPOINT_RATE_LIMITED, "Too many API requests."),
                ip,
                endpoint=endpoint,
            )

        await limiter.consume(actor_key)
        return Decision.ok()

    def _rejected(self, event: str, decision: Decision, ip: str, **fields: str) -> Decision:
        logger.warning(
            event,
            extra={
                "reason_code": decision.reason_code.value,
                "retry_after_s": decision.retry_after_seconds,
                "ip_hash": short_hash(ip),
                **fields,
            },
        )
        return decision


def create_abuse_gate(
    store: AbstractCounterStore,
    limits: LimitSettings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> AbuseGate:
    """Build the policy table and spam filter over ``store`` and wrap them in a gate."""
    cfg = limits or LimitSettings()
    return AbuseGate(
        build_limiter_policies(store, cfg, clock=clock),
        ContentSpamFilter(
            store,
            window_seconds=cfg.content_window_seconds,
            global_limit=cfg.content_global_limit,
            actor_limit=cfg.content_actor_limit,
        ),
    )
