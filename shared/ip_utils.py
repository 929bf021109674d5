"""
Client IP resolution for FastAPI requests.

Used as the rate-limit identity when a request carries no email address.
"""

from __future__ import annotations

from fastapi import Request

# Proxy headers in priority order; the first non-empty value wins
_FORWARDING_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",  # Cloudflare
    "True-Client-IP",  # Akamai and others
    "X-Forwarded-For",  # first hop of the list
    "X-Real-IP",  # nginx
)


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Falls back to the direct connection address, or ``""`` when the
    transport does not expose one (e.g. some test clients).
    """
    for header in _FORWARDING_HEADERS:
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else ""
