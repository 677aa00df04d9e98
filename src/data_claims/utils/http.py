"""Shared HTTP utilities."""

from __future__ import annotations

from starlette.requests import Request


def first_forwarded_value(value: str | None) -> str | None:
    """Extract the first value from a comma-separated forwarded header."""
    if not value:
        return None
    first = value.split(",", 1)[0].strip()
    return first or None


def _sanitize_ip(value: str) -> str:
    """Strip control characters from an IP string to prevent log injection."""
    return "".join(c for c in value if 0x20 <= ord(c) < 0x7F)


def get_client_ip(request: Request, trust_forwarded_headers: bool = False) -> str | None:
    """Get client IP with optional trusted proxy header support."""
    if trust_forwarded_headers:
        forwarded_for = first_forwarded_value(request.headers.get("x-forwarded-for"))
        if forwarded_for:
            return _sanitize_ip(forwarded_for)

        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return _sanitize_ip(real_ip.strip())

    if request.client:
        return request.client.host

    return None
