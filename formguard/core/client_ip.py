"""Client identifier extraction for rate limiting.

Public form endpoints are anonymous, so the only stable key available is the
network address. Behind a reverse proxy or CDN the socket peer is the proxy
itself; when ``trust_proxy_headers`` is enabled the forwarding headers are
consulted first, in this order:

1. ``X-Forwarded-For`` (first, i.e. original, hop)
2. ``X-Real-IP``
3. ``CF-Connecting-IP``

Only enable header trust when the app is actually deployed behind a proxy that
overwrites these headers; otherwise clients can pick their own rate-limit key.
"""

from __future__ import annotations

import hashlib

from fastapi import Request

UNKNOWN_CLIENT_ID = "unknown"

_FORWARDING_HEADERS = ("x-real-ip", "cf-connecting-ip")


def get_client_ip(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Derive the rate-limit key for the current request.

    Args:
        request: FastAPI request.
        trust_proxy_headers: Whether forwarding headers may override the peer.

    Returns:
        str: Client address, or ``UNKNOWN_CLIENT_ID`` when nothing is available.
    """

    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

        for header in _FORWARDING_HEADERS:
            value = (request.headers.get(header) or "").strip()
            if value:
                return value

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT_ID


def hash_client_id(client_id: str) -> str:
    """Hash the client identifier for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode()).hexdigest()[:16]
