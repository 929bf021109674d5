"""
Date/time helpers — framework-agnostic.

pymongo returns naive datetimes unless the client is created with
``tz_aware=True``; everything stored by this service is UTC, so naive
values read back are re-tagged as UTC before comparison.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime (naive input is assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_bson_datetime(value: datetime) -> datetime:
    """Naive UTC datetime, the form BSON dates round-trip as."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
