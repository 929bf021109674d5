"""ZeptoMail implementation of EmailProvider.

Renders the Jinja2 templates under templates/emails and posts them to the
ZeptoMail HTTP API. Every failure is logged and reported as ``False``;
nothing here raises into the OTP flow.
"""

import os
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from infrastructure.http_client import HttpClient
from schemas.models.otp import OtpPurpose
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.com/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)

_CODE_SUBJECTS = {
    OtpPurpose.PASSWORD_RESET: "Password Reset OTP - {app_name}",
    OtpPurpose.EMAIL_VERIFICATION: "Verify your email - {app_name}",
}
_CONFIRMATION_SUBJECTS = {
    OtpPurpose.PASSWORD_RESET: "Password Reset Successful - {app_name}",
    OtpPurpose.EMAIL_VERIFICATION: "Email verified - {app_name}",
}


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: HttpClient,
        app_name: str = "DevLink",
        app_url: str = "https://devlink.dev",
        expiry_minutes: int = 10,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._app_url = app_url
        self._expiry_minutes = expiry_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        to_name: Optional[str],
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("zepto_mail_send_failed", reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
        }
        if text_body:
            payload["textbody"] = text_body

        auth = self._settings.zepto_api_token
        if not auth.startswith("Zoho-enczapikey "):
            auth = f"Zoho-enczapikey {auth}"

        headers = {"Authorization": auth, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL, json=payload, headers=headers
            )
            if response.status_code in (200, 201, 202):
                log.info("email_sent_success", to_email=to_email, subject=subject)
                return True
            log.error(
                "email_sent_failed",
                to_email=to_email,
                subject=subject,
                status_code=response.status_code,
                response=response.text[:200],
            )
            return False
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def send_code(
        self,
        email: str,
        code: str,
        display_name: Optional[str],
        purpose: OtpPurpose,
    ) -> bool:
        subject = _CODE_SUBJECTS[purpose].format(app_name=self._app_name)
        html_body = self._jinja.get_template("otp_code.html").render(
            otp_code=code,
            user_name=display_name,
            purpose=purpose.value,
            expiry_minutes=self._expiry_minutes,
            app_name=self._app_name,
            app_url=self._app_url,
        )
        action = (
            "reset your password"
            if purpose is OtpPurpose.PASSWORD_RESET
            else "verify your email address"
        )
        text_body = (
            f"{subject}\n\n"
            f"Hi {display_name or 'there'},\n\n"
            f"Use this code to {action}: {code}\n\n"
            f"This code expires in {self._expiry_minutes} minutes. "
            f"If you didn't request it, you can ignore this email.\n\n"
            f"© {self._app_name}. This is an automated email, please do not reply."
        )
        return await self._send(email, display_name, subject, html_body, text_body)

    async def send_confirmation(
        self, email: str, display_name: Optional[str], purpose: OtpPurpose
    ) -> bool:
        subject = _CONFIRMATION_SUBJECTS[purpose].format(app_name=self._app_name)
        html_body = self._jinja.get_template("confirmation.html").render(
            user_name=display_name,
            purpose=purpose.value,
            app_name=self._app_name,
            app_url=self._app_url,
        )
        if purpose is OtpPurpose.PASSWORD_RESET:
            detail = (
                "Your password has been successfully reset. If you did not make "
                "this change, contact support immediately."
            )
        else:
            detail = "Your email address has been verified."
        text_body = (
            f"{subject}\n\n"
            f"Hi {display_name or 'there'},\n\n"
            f"{detail}\n\n"
            f"Log in: {self._app_url}/auth/login\n\n"
            f"© {self._app_name}. This is an automated email, please do not reply."
        )
        return await self._send(email, display_name, subject, html_body, text_body)
