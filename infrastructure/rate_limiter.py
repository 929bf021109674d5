"""
Per-identity request throttling for the OTP endpoints.

Built on ``limits`` (the engine underneath Flask-Limiter) with the
moving-window strategy, so a burst at the edge of a window cannot double
the allowance. Storage is picked by URI: ``async+memory://`` for a single
process, ``async+redis://`` or ``async+mongodb://`` when several workers
must share counters.

A rejected request raises RateLimitError before any OTP state is touched.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from limits import RateLimitItem, parse
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string

from config import AppSettings
from errors import RateLimitError
from shared.logging import get_logger

log = get_logger(__name__)


class Limits:
    """
    Rate limit scopes. The rule for each scope comes from RateLimitSettings
    in the "N per [M] period" format understood by ``limits``.
    """

    OTP_ISSUE = "otp_issue"
    OTP_VERIFY = "otp_verify"


_MESSAGES = {
    Limits.OTP_ISSUE: "Too many OTP requests. Please wait 15 minutes before trying again.",
    Limits.OTP_VERIFY: (
        "Too many OTP verification attempts. "
        "Please wait 10 minutes before trying again."
    ),
}


@dataclass(frozen=True)
class RateLimitRule:
    item: RateLimitItem
    message: str


class RateLimiter:
    def __init__(
        self,
        rules: dict[str, str],
        storage_uri: str = "async+memory://",
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._storage = storage_from_string(storage_uri)
        self._strategy = MovingWindowRateLimiter(self._storage)
        self._rules = {
            scope: RateLimitRule(
                item=parse(rule),
                message=_MESSAGES.get(scope, f"ratelimit exceeded {rule}"),
            )
            for scope, rule in rules.items()
        }

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "RateLimiter":
        return cls(
            rules={
                Limits.OTP_ISSUE: settings.rate_limit.otp_issue_limit,
                Limits.OTP_VERIFY: settings.rate_limit.otp_verify_limit,
            },
            storage_uri=settings.rate_limit.rate_limit_storage_uri,
            enabled=settings.rate_limiting_active,
        )

    def rule(self, scope: str) -> RateLimitRule:
        return self._rules[scope]

    async def hit(self, scope: str, key: str) -> None:
        """Count one request for *key* under *scope*; raise when over the limit.

        Counters are namespaced by scope, so one key can be throttled
        independently by each scope.
        """
        if not self.enabled:
            return

        rule = self._rules[scope]
        allowed = await self._strategy.hit(rule.item, scope, key)
        stats = await self._strategy.get_window_stats(rule.item, scope, key)
        headers = {
            "X-RateLimit-Limit": str(rule.item.amount),
            "X-RateLimit-Remaining": str(max(stats.remaining, 0)),
            "X-RateLimit-Reset": str(int(stats.reset_time)),
        }
        if allowed:
            return

        retry_after = max(int(stats.reset_time - time.time()), 1)
        headers["Retry-After"] = str(retry_after)
        log.warning("rate_limit_exceeded", scope=scope, rate_limit_key=key)
        raise RateLimitError(rule.message, headers=headers)

    async def check_storage(self) -> bool:
        try:
            return bool(await self._storage.check())
        except Exception as e:
            log.warning(
                "rate_limit_storage_check_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def reset(self) -> None:
        await self._storage.reset()
