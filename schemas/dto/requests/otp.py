"""
Request DTOs for the OTP and account endpoints.

SendCodeRequest              — POST /api/otp/send
VerifyCodeRequest            — POST /api/otp/verify
ForgotPasswordRequest        — POST /api/auth/forgot-password
ResetPasswordRequest         — POST /api/auth/reset-password
SendVerificationRequest      — POST /api/auth/send-verification
VerifyEmailRequest           — POST /api/auth/verify-email
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from schemas.models.otp import OtpPurpose

_CODE_RE = re.compile(r"^\d{6}$")


def _clean_code(v: str) -> str:
    v = v.strip()
    if not _CODE_RE.match(v):
        raise ValueError("OTP must be a 6-digit number")
    return v


class _EmailBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def _strip_email(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class SendCodeRequest(_EmailBody):
    """Request body for POST /api/otp/send."""

    purpose: OtpPurpose = OtpPurpose.PASSWORD_RESET


class VerifyCodeRequest(_EmailBody):
    """Request body for POST /api/otp/verify.

    Only email-verification codes are accepted here. A password-reset code
    is consumed together with the new password by /api/auth/reset-password.
    """

    code: str
    purpose: OtpPurpose = OtpPurpose.EMAIL_VERIFICATION

    @field_validator("code")
    @classmethod
    def _validate_code(cls, v: str) -> str:
        return _clean_code(v)

    @field_validator("purpose")
    @classmethod
    def _reject_password_reset(cls, v: OtpPurpose) -> OtpPurpose:
        if v is OtpPurpose.PASSWORD_RESET:
            raise ValueError(
                "Password reset codes are verified by /api/auth/reset-password"
            )
        return v


class ForgotPasswordRequest(_EmailBody):
    """Request body for POST /api/auth/forgot-password."""


class ResetPasswordRequest(_EmailBody):
    """Request body for POST /api/auth/reset-password."""

    code: str
    password: str = Field(min_length=6, max_length=128)

    @field_validator("code")
    @classmethod
    def _validate_code(cls, v: str) -> str:
        return _clean_code(v)


class SendVerificationRequest(_EmailBody):
    """Request body for POST /api/auth/send-verification."""


class VerifyEmailRequest(_EmailBody):
    """Request body for POST /api/auth/verify-email.

    ``code`` is the 6-digit OTP sent to the user's email address.
    """

    code: str

    @field_validator("code")
    @classmethod
    def _validate_code(cls, v: str) -> str:
        return _clean_code(v)
