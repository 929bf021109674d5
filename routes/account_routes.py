"""
Account endpoints that consume the OTP lifecycle.

POST /api/auth/forgot-password     — email a password-reset code
POST /api/auth/reset-password      — verify the code and set a new password
POST /api/auth/send-verification   — email an email-verification code
POST /api/auth/verify-email        — verify the code and mark the email verified
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_account_service, rate_limit
from infrastructure.rate_limiter import Limits
from schemas.dto.requests.otp import (
    ForgotPasswordRequest,
    ResetPasswordRequest,
    SendVerificationRequest,
    VerifyEmailRequest,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from schemas.dto.responses.otp import CodeSentResponse
from services.account_service import AccountService

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)


@router.post(
    "/forgot-password",
    response_model=CodeSentResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_ISSUE))],
)
async def forgot_password(
    body: ForgotPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> CodeSentResponse:
    issued = await accounts.request_password_reset(body.email)
    return CodeSentResponse(
        success=True,
        message="Password reset OTP sent to your email",
        expires_in=issued.expires_in,
    )


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_VERIFY))],
)
async def reset_password(
    body: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.reset_password(body.email, body.code, body.password)
    return MessageResponse(success=True, message="Password reset successful")


@router.post(
    "/send-verification",
    response_model=CodeSentResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_ISSUE))],
)
async def send_verification(
    body: SendVerificationRequest,
    accounts: AccountService = Depends(get_account_service),
) -> CodeSentResponse:
    issued = await accounts.send_email_verification(body.email)
    return CodeSentResponse(
        success=True,
        message="Verification code sent to your email",
        expires_in=issued.expires_in,
    )


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_VERIFY))],
)
async def verify_email(
    body: VerifyEmailRequest,
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await accounts.verify_email(body.email, body.code)
    return MessageResponse(success=True, message="Email verified successfully")
