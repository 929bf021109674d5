"""
One-time code lifecycle: issuance and verification.

A record moves Active → Active(attempts + 1) → ... and ends Consumed,
Expired or AttemptsExhausted; none of the terminal states has a way out.
Verification is an ordered decision chain so that a correct code submitted
after lockout or expiry is rejected without revealing that it was correct.

Outcomes are returned as VerificationResult values, never raised; the HTTP
layer decides how to present them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from config import OtpSettings
from repositories.otp_repository import OtpRepository
from schemas.models.otp import OneTimeCodeDoc, OtpPurpose
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)

OTP_LENGTH = 6


class VerificationReason(str, Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"
    MAX_ATTEMPTS_EXCEEDED = "max_attempts_exceeded"
    EXPIRED = "expired"
    INVALID_CODE = "invalid_code"


REASON_MESSAGES: dict[VerificationReason, str] = {
    VerificationReason.VERIFIED: "OTP verified successfully",
    VerificationReason.NOT_FOUND: "OTP not found",
    VerificationReason.ALREADY_USED: "OTP has already been used",
    VerificationReason.MAX_ATTEMPTS_EXCEEDED: "Maximum attempts exceeded",
    VerificationReason.EXPIRED: "OTP has expired",
    VerificationReason.INVALID_CODE: "Invalid OTP",
}


@dataclass(frozen=True)
class VerificationResult:
    valid: bool
    reason: VerificationReason

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self.reason]

    @classmethod
    def rejected(cls, reason: VerificationReason) -> "VerificationResult":
        return cls(valid=False, reason=reason)


@dataclass(frozen=True)
class IssuedCode:
    """A freshly stored record plus the plaintext code, for dispatch only."""

    record: OneTimeCodeDoc
    code: str

    @property
    def expires_in(self) -> int:
        if self.record.created_at is None:
            return 0
        return int((self.record.expires_at - self.record.created_at).total_seconds())


def normalise_email(email: str) -> str:
    return email.strip().lower()


class OtpService:
    def __init__(
        self,
        repository: OtpRepository,
        settings: OtpSettings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repository
        self._settings = settings
        self._clock = clock

    async def issue(self, email: str, purpose: OtpPurpose) -> IssuedCode:
        """Store a new code for (email, purpose), superseding any previous one."""
        email = normalise_email(email)
        code = generate_otp_code(OTP_LENGTH)
        now = self._clock()

        doc = OneTimeCodeDoc(
            email=email,
            code_hash=hash_token(code),
            purpose=purpose,
            expires_at=now + timedelta(seconds=self._settings.otp_expiry_seconds),
            max_attempts=self._settings.otp_max_attempts,
            created_at=now,
            updated_at=now,
        )
        stored = await self._repo.replace_for_pair(doc)

        log.info(
            "otp_issued",
            email=email,
            purpose=purpose.value,
            otp_id=str(stored.id),
            expires_at=stored.expires_at.isoformat(),
        )
        return IssuedCode(record=stored, code=code)

    async def verify(
        self, email: str, code: str, purpose: OtpPurpose
    ) -> VerificationResult:
        email = normalise_email(email)
        code = code.strip()

        record = await self._repo.find_by_pair(email, purpose)
        reason = self._rejection_reason(record)
        if reason is not None:
            return self._reject(email, purpose, reason)

        if not token_matches(code, record.code_hash):
            updated = await self._repo.increment_attempts(
                record.id, record.code_hash, record.max_attempts
            )
            if updated is None:
                # Consumed, exhausted or replaced since the read above
                return await self._reclassify(email, purpose)
            if updated.attempts_exhausted:
                return self._reject(
                    email, purpose, VerificationReason.MAX_ATTEMPTS_EXCEEDED
                )
            return self._reject(
                email,
                purpose,
                VerificationReason.INVALID_CODE,
                attempt_count=updated.attempt_count,
            )

        consumed = await self._repo.mark_consumed(
            record.id, record.code_hash, record.max_attempts
        )
        if consumed is None:
            return await self._reclassify(email, purpose)

        log.info(
            "otp_verified", email=email, purpose=purpose.value, otp_id=str(record.id)
        )
        return VerificationResult(valid=True, reason=VerificationReason.VERIFIED)

    async def get_active(
        self, email: str, purpose: OtpPurpose
    ) -> Optional[OneTimeCodeDoc]:
        """Return the pair's record only while it can still be verified."""
        record = await self._repo.find_by_pair(normalise_email(email), purpose)
        if record is None or not record.is_usable(self._clock()):
            return None
        return record

    async def invalidate(self, email: str, purpose: OtpPurpose) -> int:
        deleted = await self._repo.delete_for_pair(normalise_email(email), purpose)
        if deleted:
            log.info("otp_invalidated", email=email, purpose=purpose.value)
        return deleted

    async def purge_expired(self) -> int:
        """Sweep expired records; the TTL monitor only runs once a minute."""
        deleted = await self._repo.delete_expired(self._clock())
        if deleted:
            log.info("otp_expired_purged", count=deleted)
        return deleted

    def _rejection_reason(
        self, record: Optional[OneTimeCodeDoc]
    ) -> Optional[VerificationReason]:
        """Steps 1-4 of the decision chain, in order."""
        if record is None:
            return VerificationReason.NOT_FOUND
        if record.consumed:
            return VerificationReason.ALREADY_USED
        if record.attempts_exhausted:
            return VerificationReason.MAX_ATTEMPTS_EXCEEDED
        if record.is_expired(self._clock()):
            return VerificationReason.EXPIRED
        return None

    async def _reclassify(
        self, email: str, purpose: OtpPurpose
    ) -> VerificationResult:
        # A guarded update missed: re-read and report the state that won.
        # A still-usable record here is a newer code the submission never matched.
        record = await self._repo.find_by_pair(email, purpose)
        reason = self._rejection_reason(record) or VerificationReason.INVALID_CODE
        return self._reject(email, purpose, reason)

    def _reject(
        self,
        email: str,
        purpose: OtpPurpose,
        reason: VerificationReason,
        **extra,
    ) -> VerificationResult:
        log.warning(
            "otp_verification_failed",
            email=email,
            purpose=purpose.value,
            reason=reason.value,
            **extra,
        )
        return VerificationResult.rejected(reason)
