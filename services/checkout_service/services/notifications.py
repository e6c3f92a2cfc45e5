"""Order confirmation notifications (customer + admin), best-effort."""

from dataclasses import dataclass
from typing import Optional

from libs.common.config import Settings, get_settings
from libs.common.emails.client import EmailClient
from libs.common.logging import get_logger
from services.checkout_service.templates.orders import (
    OrderEmailData,
    render_admin_alert,
    render_customer_confirmation,
)

logger = get_logger(__name__)


@dataclass
class NotificationReport:
    # Nothing was attempted: no recipient or no email provider
    skipped: bool = False
    customer_sent: bool = False
    admin_sent: bool = False


class NotificationDispatcher:
    def __init__(self, email_client: EmailClient, settings: Optional[Settings] = None):
        self.email_client = email_client
        self.settings = settings or get_settings()

    async def _send(self, label: str, to_email: str, subject: str, html: str) -> bool:
        try:
            sent = await self.email_client.send(
                to_email=to_email, subject=subject, html_body=html
            )
        except Exception as e:
            # Non-fatal: the other notification must still go out
            logger.error(f"Failed to send {label} email to {to_email}: {e}")
            return False
        if not sent:
            logger.warning(f"{label.capitalize()} email to {to_email} was not sent")
        return sent

    async def notify_order_confirmed(
        self, snapshot: OrderEmailData
    ) -> NotificationReport:
        """Send the customer confirmation and the admin alert independently."""
        if not snapshot.customer_email:
            logger.warning(
                "Order %s has no customer email; skipping notifications",
                snapshot.reference,
            )
            return NotificationReport(skipped=True)

        if not self.email_client.is_configured:
            logger.warning(
                "Email provider not configured; order %s notifications disabled",
                snapshot.reference,
            )
            return NotificationReport(skipped=True)

        report = NotificationReport()

        subject, html = render_customer_confirmation(
            snapshot, self.settings.STORE_NAME, self.settings.SUPPORT_EMAIL
        )
        report.customer_sent = await self._send(
            "customer", snapshot.customer_email, subject, html
        )

        if self.settings.ADMIN_EMAIL:
            subject, html = render_admin_alert(snapshot, self.settings.STORE_NAME)
            report.admin_sent = await self._send(
                "admin", self.settings.ADMIN_EMAIL, subject, html
            )

        logger.info(
            "Order %s notifications: customer=%s admin=%s",
            snapshot.reference,
            report.customer_sent,
            report.admin_sent,
        )
        return report
