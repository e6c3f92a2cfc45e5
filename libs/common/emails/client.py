"""
Transactional email client backed by the Resend HTTP API.

The client never raises on delivery problems.
A missing ``RESEND_API_KEY`` turns every send into a logged no-op, and HTTP
or transport failures are logged and reported as ``False`` so callers can
treat email as best-effort.

Usage:
    from libs.common.emails.client import EmailClient

    email_client = EmailClient(settings)

    await email_client.send(
        to_email="user@example.com",
        subject="Order confirmed",
        html_body="<p>Thanks!</p>",
    )
"""

from typing import Any, Optional

import httpx
from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """HTTP client for the Resend ``/emails`` endpoint."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.api_key = settings.RESEND_API_KEY
        self.base_url = settings.RESEND_API_URL.rstrip("/")
        self.default_from = settings.EMAIL_FROM
        self.timeout = settings.EMAIL_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        from_email: Optional[str] = None,
        text_body: Optional[str] = None,
    ) -> bool:
        """
        Send a single email.

        Args:
            to_email: Recipient email address
            subject: Email subject line
            html_body: HTML body
            from_email: Optional sender (defaults to EMAIL_FROM)
            text_body: Optional plain-text alternative

        Returns:
            True if the provider accepted the email, False otherwise
        """
        if not self.is_configured:
            logger.warning("RESEND_API_KEY not configured - email not sent")
            logger.info(f"Would have sent email to {to_email}: {subject}")
            return False

        payload: dict[str, Any] = {
            "from": from_email or self.default_from,
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            payload["text"] = text_body

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/emails",
                    json=payload,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach email provider: {type(e).__name__}: {e}")
            return False

        if response.is_success:
            logger.info(f"Email sent successfully to {to_email}")
            return True

        logger.error(f"Email API returned {response.status_code}: {response.text}")
        return False

