"""
Background sweep of expired one-time codes.

MongoDB's TTL monitor removes expired records roughly once a minute; this
loop keeps the collection tidy on stores without TTL support and bounds the
lag. Verification never relies on it: expiry is always checked at read time.
"""

from __future__ import annotations

import asyncio

from services.otp_service import OtpService
from shared.logging import get_logger

log = get_logger(__name__)


async def run_otp_sweeper(
    otp_service: OtpService,
    interval_seconds: float,
    stop: asyncio.Event,
) -> None:
    """Call purge_expired() every *interval_seconds* until *stop* is set."""
    log.info("otp_sweeper_started", interval_seconds=interval_seconds)
    while not stop.is_set():
        try:
            await otp_service.purge_expired()
        except Exception as e:
            # Keep the loop alive; the next tick retries
            log.error(
                "otp_sweep_failed", error=str(e), error_type=type(e).__name__
            )
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
    log.info("otp_sweeper_stopped")
