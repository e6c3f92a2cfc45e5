"""Out-of-band execution of acknowledged webhooks.

Reconciliation runs after the HTTP response has been sent. Its failures go
to this module's error channel (log + ``failures``), never back to the
payment provider.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from fastapi import BackgroundTasks
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.checkout_service.errors import GatewayError, PersistenceError
from services.checkout_service.services.reconciler import (
    ReconciliationOutcome,
    WebhookReconciler,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class WebhookFailure:
    payment_id: Optional[str]
    error: str
    failed_at: datetime = field(default_factory=utc_now)


class BackgroundRunner:
    def __init__(self, reconciler: WebhookReconciler, max_failures: int = 500):
        self.reconciler = reconciler
        self.failures: deque[WebhookFailure] = deque(maxlen=max_failures)

    def schedule(
        self,
        background_tasks: BackgroundTasks,
        event_type: Optional[str],
        payment_id: Optional[str],
    ) -> None:
        background_tasks.add_task(self.run_webhook, event_type, payment_id)

    async def run_webhook(
        self, event_type: Optional[str], payment_id: Optional[str]
    ) -> Optional[ReconciliationOutcome]:
        try:
            return await self.reconciler.handle_event(event_type, payment_id)
        except GatewayError as e:
            self._fail(payment_id, f"gateway: {e.message}")
        except PersistenceError as e:
            self._fail(payment_id, f"persistence: {e.message}")
        except Exception as e:
            logger.exception("Unexpected error reconciling payment %s", payment_id)
            self._fail(payment_id, f"unexpected: {type(e).__name__}")
        return None

    def _fail(self, payment_id: Optional[str], error: str) -> None:
        self.failures.append(WebhookFailure(payment_id=payment_id, error=error))
        logger.error(
            "Webhook reconciliation failed for payment %s: %s",
            payment_id,
            error,
            extra={"extra_fields": {"payment_id": payment_id}},
        )
