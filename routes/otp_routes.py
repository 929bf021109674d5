"""
Generic OTP endpoints.

POST /api/otp/send    — issue a code for (email, purpose) and email it
POST /api/otp/verify  — check an email-verification code against the stored one

Both are throttled per email (falling back to client IP) before the
lifecycle service is reached.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_account_service, get_otp_service, rate_limit
from errors import OtpVerificationError
from infrastructure.rate_limiter import Limits
from schemas.dto.requests.otp import SendCodeRequest, VerifyCodeRequest
from schemas.dto.responses.common import ErrorResponse
from schemas.dto.responses.otp import CodeSentResponse, CodeVerifiedResponse
from services.account_service import AccountService
from services.otp_service import OtpService

router = APIRouter(
    prefix="/api/otp",
    tags=["otp"],
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)


@router.post(
    "/send",
    response_model=CodeSentResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_ISSUE))],
)
async def send_code(
    body: SendCodeRequest,
    accounts: AccountService = Depends(get_account_service),
) -> CodeSentResponse:
    issued = await accounts.deliver_code(body.email, body.purpose)
    return CodeSentResponse(
        success=True,
        message="OTP sent successfully to your email",
        expires_in=issued.expires_in,
    )


@router.post(
    "/verify",
    response_model=CodeVerifiedResponse,
    dependencies=[Depends(rate_limit(Limits.OTP_VERIFY))],
)
async def verify_code(
    body: VerifyCodeRequest,
    otp_service: OtpService = Depends(get_otp_service),
) -> CodeVerifiedResponse:
    result = await otp_service.verify(body.email, body.code, body.purpose)
    if not result.valid:
        raise OtpVerificationError(result.message, reason=result.reason.value)
    return CodeVerifiedResponse(
        success=True, message=result.message, purpose=body.purpose.value
    )
