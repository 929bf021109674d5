"""EmailProvider protocol — services depend on this, not the concrete implementation."""

from typing import Optional, Protocol

from schemas.models.otp import OtpPurpose


class EmailProvider(Protocol):
    async def send_code(
        self,
        email: str,
        code: str,
        display_name: Optional[str],
        purpose: OtpPurpose,
    ) -> bool: ...

    async def send_confirmation(
        self, email: str, display_name: Optional[str], purpose: OtpPurpose
    ) -> bool: ...
