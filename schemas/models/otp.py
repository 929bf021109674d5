"""
One-time code document model.

Maps to the `one-time-codes` MongoDB collection.

One record per (email, purpose) pair, enforced by a unique compound index.
code_hash stores SHA-256(code); the plain code is never stored.
consumed flips to True exactly once, on a successful verification.
attempt_count tracks failed verification tries and is capped at max_attempts.
expires_at is fixed at issuance and carries a TTL index (expireAfterSeconds=0).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc, utcnow


class OtpPurpose(str, Enum):
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


DEFAULT_MAX_ATTEMPTS = 3


class OneTimeCodeDoc(MongoBaseModel):
    """Document model for the `one-time-codes` collection."""

    email: str
    code_hash: str
    purpose: OtpPurpose = OtpPurpose.PASSWORD_RESET
    consumed: bool = False
    consumed_at: Optional[datetime] = None
    expires_at: datetime
    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, gt=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("expires_at", "consumed_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def attempts_exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or utcnow())

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """Not consumed, under the attempt limit and not yet expired."""
        return (
            not self.consumed
            and not self.attempts_exhausted
            and not self.is_expired(now)
        )
