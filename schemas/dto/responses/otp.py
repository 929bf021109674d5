"""
Response DTOs for the OTP and account endpoints.

CodeSentResponse   — POST /api/otp/send, /api/auth/forgot-password,
                     /api/auth/send-verification  (200)
CodeVerifiedResponse — POST /api/otp/verify  (200)
"""

from __future__ import annotations

from schemas.dto.responses.common import MessageResponse


class CodeSentResponse(MessageResponse):
    """A code was stored and handed to the email provider."""

    expires_in: int


class CodeVerifiedResponse(MessageResponse):
    """The submitted code matched and has been consumed."""

    purpose: str
