from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.client_ip import is_cloudflare_request, is_valid_ip
from app.core.dependencies import get_waitlist_service
from app.core.rate_limit import get_request_ip
from app.schemas.waitlist import (
    JoinWaitlistRequest,
    JoinWaitlistResponse,
    WaitlistStatsResponse,
)
from app.services.waitlist_service import WaitlistService
from app.utils.hashing import short_hash

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Waitlist"])


@router.post("/waitlist", response_model=JoinWaitlistResponse)
async def join_waitlist(
    request: Request,
    body: JoinWaitlistRequest,
    ip: Annotated[str, Depends(get_request_ip)],
    service: Annotated[WaitlistService, Depends(get_waitlist_service)],
) -> JoinWaitlistResponse:
    """Join the waitlist.

    Rejections (invalid email, IP or email quota exhausted, rate-limit store
    down) are rendered by the global exception handlers as 400 / 429 / 503.
    Submitting an email that is already registered succeeds.
    """
    logger.info(
        "waitlist.signup_request",
        extra={
            "ip_hash": short_hash(ip),
            "ip_valid": is_valid_ip(ip),
            "cloudflare": is_cloudflare_request(request),
        },
    )
    outcome = await service.join(ip, body.email)
    return JoinWaitlistResponse(
        message=outcome.message,
        already_registered=outcome.already_registered,
    )


@router.get("/waitlist/stats", response_model=WaitlistStatsResponse)
async def waitlist_stats(
    service: Annotated[WaitlistService, Depends(get_waitlist_service)],
) -> WaitlistStatsResponse:
    """Return the number of waitlist entries (cached for a few minutes)."""
    stats = await service.stats()
    return WaitlistStatsResponse(total_entries=stats.total_entries)
