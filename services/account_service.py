"""
Account flows built on the OTP lifecycle.

- deliver_code:          issue + email a code for any (email, purpose)
- request_password_reset / reset_password
- send_email_verification / verify_email

Dispatch failures surface as DispatchError but leave the stored code in
place; the user can retry delivery or request a new code.
"""

from __future__ import annotations

from typing import Optional

from errors import ConflictError, DispatchError, NotFoundError, OtpVerificationError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.models.otp import OtpPurpose
from schemas.models.user import UserDoc
from services.otp_service import IssuedCode, OtpService, normalise_email
from shared.crypto import hash_password
from shared.logging import get_logger

log = get_logger(__name__)

ACCOUNT_NOT_FOUND = (
    "No account found with this email address. "
    "Please check your email or create a new account."
)


class AccountService:
    def __init__(
        self,
        users: UserRepository,
        otp_service: OtpService,
        email_provider: EmailProvider,
    ) -> None:
        self._users = users
        self._otp = otp_service
        self._email = email_provider

    async def deliver_code(
        self,
        email: str,
        purpose: OtpPurpose,
        display_name: Optional[str] = None,
    ) -> IssuedCode:
        issued = await self._otp.issue(email, purpose)
        sent = await self._email.send_code(
            issued.record.email, issued.code, display_name, purpose
        )
        if not sent:
            log.error(
                "otp_dispatch_failed",
                email=issued.record.email,
                purpose=purpose.value,
                otp_id=str(issued.record.id),
            )
            raise DispatchError("Failed to send OTP email")
        return issued

    async def request_password_reset(self, email: str) -> IssuedCode:
        user = await self._require_user(email)
        return await self.deliver_code(
            user.email, OtpPurpose.PASSWORD_RESET, user.display_name
        )

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        user = await self._require_user(email)
        await self._verify_or_raise(user.email, code, OtpPurpose.PASSWORD_RESET)

        await self._users.update_password(user.id, hash_password(new_password))
        log.info("password_reset_success", user_id=str(user.id))

        if not await self._email.send_confirmation(
            user.email, user.display_name, OtpPurpose.PASSWORD_RESET
        ):
            # The password is already changed; the notice is best-effort
            log.error("password_reset_confirmation_failed", user_id=str(user.id))

    async def send_email_verification(self, email: str) -> IssuedCode:
        user = await self._require_user(email)
        if user.email_verified:
            # Withdraw any code still outstanding from before verification
            await self._otp.invalidate(user.email, OtpPurpose.EMAIL_VERIFICATION)
            raise ConflictError("Email is already verified")
        return await self.deliver_code(
            user.email, OtpPurpose.EMAIL_VERIFICATION, user.display_name
        )

    async def verify_email(self, email: str, code: str) -> None:
        user = await self._require_user(email)
        if user.email_verified:
            raise ConflictError("Email is already verified")
        await self._verify_or_raise(user.email, code, OtpPurpose.EMAIL_VERIFICATION)

        await self._users.mark_email_verified(user.id)
        log.info("email_verified", user_id=str(user.id))

        if not await self._email.send_confirmation(
            user.email, user.display_name, OtpPurpose.EMAIL_VERIFICATION
        ):
            log.error("email_verified_confirmation_failed", user_id=str(user.id))

    async def _require_user(self, email: str) -> UserDoc:
        user = await self._users.find_by_email(normalise_email(email))
        if user is None:
            log.warning("account_lookup_failed", email=email)
            raise NotFoundError(ACCOUNT_NOT_FOUND, field="email")
        return user

    async def _verify_or_raise(
        self, email: str, code: str, purpose: OtpPurpose
    ) -> None:
        result = await self._otp.verify(email, code, purpose)
        if not result.valid:
            raise OtpVerificationError(result.message, reason=result.reason.value)
