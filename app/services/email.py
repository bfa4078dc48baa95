"""
Email service for sending account credentials to imported members.

Supports multiple email providers:
1. Resend (primary) - Set RESEND_API_KEY in environment
2. SendGrid (fallback) - Set SENDGRID_API_KEY in environment
3. Console logging (development) - When no provider is configured

When EMAIL_REDIRECT_TO is set every message goes to that address instead of
the real recipient, which keeps sandbox accounts from emailing members.
"""

import html
import logging
from typing import Optional

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"

CREDENTIALS_SUBJECT = "Your Account Credentials"


def render_credentials_email(email: str, password: str, full_name: Optional[str]) -> tuple[str, str]:
    """Return (html, text) bodies for the credentials message."""
    name = full_name or email
    safe_name = html.escape(name)
    safe_email = html.escape(email)
    safe_password = html.escape(password)

    html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background-color: #1e3a8a; color: white; padding: 20px; text-align: center; }}
        .content {{ padding: 30px; background-color: #f9fafb; }}
        .credentials {{ background-color: #fff; border: 1px solid #e5e7eb; padding: 20px; margin: 20px 0; border-radius: 8px; }}
        .credential-label {{ color: #6b7280; font-size: 12px; text-transform: uppercase; }}
        .credential-value {{ font-size: 16px; font-weight: bold; color: #111827; font-family: monospace; }}
        .warning {{ background-color: #fef3c7; border-left: 4px solid #f59e0b; padding: 12px; margin: 20px 0; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>Welcome to PPMKFriends</h1>
        </div>
        <div class="content">
            <p>Hello {safe_name},</p>
            <p>Your account has been created. Use the credentials below to sign in.</p>

            <div class="credentials">
                <p class="credential-label">Email</p>
                <p class="credential-value">{safe_email}</p>

                <p class="credential-label" style="margin-top: 15px;">Temporary Password</p>
                <p class="credential-value">{safe_password}</p>
            </div>

            <div class="warning">
                <strong>Important:</strong> You will be asked to change this password when you first sign in.
            </div>
        </div>
    </div>
</body>
</html>
"""

    text_content = f"""
Hello {name},

Your account has been created.

Email: {email}
Temporary Password: {password}

You will be asked to change this password when you first sign in.
"""
    return html_content, text_content


class EmailService:
    """Service for sending emails with multi-provider support."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    def _get_provider(self) -> str:
        """Determine which email provider to use."""
        if self.settings.resend_api_key:
            return "resend"
        if self.settings.sendgrid_api_key:
            return "sendgrid"
        return "console"

    def _recipient(self, to_email: str) -> str:
        return self.settings.email_redirect_to or to_email

    async def deliver_credentials(self, email: str, password: str, full_name: Optional[str] = None) -> None:
        """
        Send the credentials message once.

        Raises EmailDeliveryError when the provider does not accept it.
        """
        html_content, text_content = render_credentials_email(email, password, full_name)
        to_email = self._recipient(email)
        provider = self._get_provider()

        if provider == "resend":
            await self._send_via_resend(to_email, CREDENTIALS_SUBJECT, html_content, text_content)
        elif provider == "sendgrid":
            await self._send_via_sendgrid(to_email, CREDENTIALS_SUBJECT, html_content, text_content)
        else:
            self._send_via_console(to_email, CREDENTIALS_SUBJECT)

        if to_email != email:
            logger.info(f"Credentials for {email} delivered to redirect address {to_email}")

    async def send_credentials(self, email: str, password: str, full_name: Optional[str] = None) -> bool:
        """
        Send the credentials message.

        Returns:
            bool: True if the provider accepted the message
        """
        try:
            await self.deliver_credentials(email, password, full_name)
            return True
        except EmailDeliveryError as e:
            logger.error(f"Credentials email to {email} failed: {e}")
            return False

    async def _post(self, url: str, api_key: str, payload: dict) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.settings.email_timeout_seconds,
            ) as client:
                return await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email provider unreachable: {str(e)}")

    async def _send_via_resend(self, to_email: str, subject: str, html_content: str, text_content: str) -> None:
        """Send email via the Resend API."""
        payload = {
            "from": f"{self.settings.email_from_name} <{self.settings.email_from_address}>",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
            "text": text_content,
        }
        response = await self._post(RESEND_API_URL, self.settings.resend_api_key, payload)
        if response.status_code not in (200, 201, 202):
            raise EmailDeliveryError(f"Resend error {response.status_code}: {response.text}")
        logger.info(f"Email sent via Resend to {to_email}")

    async def _send_via_sendgrid(self, to_email: str, subject: str, html_content: str, text_content: str) -> None:
        """Send email via the SendGrid v3 API."""
        payload = {
            "personalizations": [{
                "to": [{"email": to_email}],
            }],
            "from": {
                "email": self.settings.email_from_address,
                "name": self.settings.email_from_name,
            },
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text_content},
                {"type": "text/html", "value": html_content},
            ],
        }
        response = await self._post(SENDGRID_API_URL, self.settings.sendgrid_api_key, payload)
        if response.status_code not in (200, 201, 202):
            raise EmailDeliveryError(f"SendGrid error {response.status_code}: {response.text}")
        logger.info(f"Email sent via SendGrid to {to_email}")

    def _send_via_console(self, to_email: str, subject: str) -> None:
        """Log instead of sending. The body is not logged since it holds a password."""
        logger.warning(f"Email not sent (no provider configured): '{subject}' to {to_email}")
