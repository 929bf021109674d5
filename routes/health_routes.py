"""
Health check endpoint.

GET /health — checks MongoDB, Redis and rate-limit storage.
Rules:
- MongoDB failure → "unhealthy" (503); OTP state lives there.
- Redis failure or absence → "degraded" (200); Redis is optional.
- Rate-limit storage failure → "degraded" (200); throttling is impaired
  but codes can still be issued and verified.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


def _degrade(overall: str) -> str:
    return "degraded" if overall == "healthy" else overall


@router.get(
    "/health",
    responses={200: {"model": HealthResponse}, 503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        await request.app.state.db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.error("health_mongodb_failed", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        checks["redis"] = "not_configured"
        overall = _degrade(overall)
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            log.warning("health_redis_failed", error=str(e))
            checks["redis"] = "error"
            overall = _degrade(overall)

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or not limiter.enabled:
        checks["rate_limiter"] = "disabled"
    elif await limiter.check_storage():
        checks["rate_limiter"] = "ok"
    else:
        checks["rate_limiter"] = "error"
        overall = _degrade(overall)

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
