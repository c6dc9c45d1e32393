"""Client IP resolution behind Cloudflare and reverse proxies."""

from __future__ import annotations

import ipaddress

from fastapi import Request

UNKNOWN_IP = "unknown"

_CLOUDFLARE_HEADERS = ("cf-connecting-ip", "cf-ray", "cf-visitor")


def get_client_ip(request: Request, *, trust_proxy_headers: bool = True) -> str:
    """Resolve the client IP for rate limiting.

    Precedence: ``cf-connecting-ip``, first entry of ``x-forwarded-for``,
    ``remote-addr`` header, then the socket peer. Returns ``"unknown"``
    when nothing is available.

    Args:
        request: Incoming request.
        trust_proxy_headers: Honor proxy headers; disable when the service is
            exposed directly.
    """
    if trust_proxy_headers:
        cf_ip = request.headers.get("cf-connecting-ip")
        if cf_ip and cf_ip.strip():
            return cf_ip.strip()

        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for and forwarded_for.split(",")[0].strip():
            return forwarded_for.split(",")[0].strip()

        remote_addr = request.headers.get("remote-addr")
        if remote_addr and remote_addr.strip():
            return remote_addr.strip()

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IP


def is_cloudflare_request(request: Request) -> bool:
    """Whether the request carries any Cloudflare edge header."""
    return any(request.headers.get(name) for name in _CLOUDFLARE_HEADERS)


def is_valid_ip(value: str) -> bool:
    """Whether ``value`` is a syntactically valid IPv4 or IPv6 address."""
    if value == UNKNOWN_IP:
        return False
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True
