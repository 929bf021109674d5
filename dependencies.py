"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived objects are built once in the app
lifespan and stored on app.state.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request

from infrastructure.rate_limiter import RateLimiter
from services.account_service import AccountService
from services.otp_service import OtpService
from shared.ip_utils import get_client_ip
from shared.logging import hash_ip


def get_otp_service(request: Request) -> OtpService:
    return request.app.state.otp_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def rate_limit_key(request: Request, scope: str) -> str:
    """Bucket by the body's email when present, else by client IP.

    The IP is hashed in production so raw addresses never reach the limiter
    storage or its log lines.
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    email = body.get("email") if isinstance(body, dict) else None
    if isinstance(email, str) and email.strip():
        identity = email.strip().lower()
    else:
        identity = hash_ip(get_client_ip(request)) or "unknown"
    return f"{scope}:{identity}"


def rate_limit(scope: str) -> Callable[[Request], Awaitable[None]]:
    """Build a route dependency that throttles requests under *scope*.

    Usage:
        @router.post("/send", dependencies=[Depends(rate_limit(Limits.OTP_ISSUE))])
    """

    async def _enforce(request: Request) -> None:
        limiter = get_rate_limiter(request)
        if not limiter.enabled:
            return
        await limiter.hit(scope, await rate_limit_key(request, scope))

    return _enforce
