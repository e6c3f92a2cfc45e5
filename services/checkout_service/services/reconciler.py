"""Webhook reconciliation: gateway payment state -> local order state.

The event body only tells us *which* payment changed. Status and the order
reference are always taken from the payment as re-fetched from the gateway,
so forged or stale bodies cannot move an order.
"""

from dataclasses import dataclass
from typing import Optional

from libs.common.logging import get_logger
from services.checkout_service.errors import (
    ANOMALY_MISSING_EXTERNAL_REFERENCE,
    ANOMALY_UNKNOWN_REFERENCE,
    AnomalyLog,
    ReconciliationAnomaly,
)
from services.checkout_service.gateway_client import GatewayPayment, MercadoPagoClient
from services.checkout_service.models import Order, OrderStatus
from services.checkout_service.services.notifications import NotificationDispatcher
from services.checkout_service.services.order_store import OrderStore
from services.checkout_service.templates.orders import OrderEmailData

logger = get_logger(__name__)

PAYMENT_EVENT_TYPES = frozenset({"payment"})


@dataclass
class ReconciliationOutcome:
    payment_id: str
    reference: Optional[str] = None
    payment_status: Optional[str] = None
    previous_status: Optional[OrderStatus] = None
    new_status: Optional[OrderStatus] = None
    first_confirmation: bool = False
    notified: bool = False
    # Terminal-sticky policy kept the stored status
    skipped: bool = False
    anomaly: Optional[ReconciliationAnomaly] = None


def build_order_snapshot(order: Order, payment: GatewayPayment) -> OrderEmailData:
    return OrderEmailData(
        reference=order.reference,
        customer_name=order.customer_name,
        customer_email=order.customer_email or payment.payer_email or "",
        customer_phone=order.customer_phone or "",
        items=list(order.items or []),
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        total=order.total,
        street=order.customer_address or "",
        city=order.customer_city or "",
        region=order.customer_region or "",
        gateway_payment_id=payment.id,
        transaction_amount=payment.transaction_amount,
    )


class WebhookReconciler:
    def __init__(
        self,
        store: OrderStore,
        gateway: MercadoPagoClient,
        dispatcher: NotificationDispatcher,
        anomalies: AnomalyLog,
    ):
        self.store = store
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.anomalies = anomalies

    async def handle_event(
        self, event_type: Optional[str], payment_id: Optional[str]
    ) -> Optional[ReconciliationOutcome]:
        """Entry point for an acknowledged webhook."""
        if event_type not in PAYMENT_EVENT_TYPES:
            logger.info("Ignoring webhook of type %r", event_type)
            return None
        if not payment_id:
            logger.warning("Payment webhook without data.id; nothing to reconcile")
            return None
        return await self.reconcile_payment(payment_id)

    async def reconcile_payment(self, payment_id: str) -> ReconciliationOutcome:
        """Fetch the payment from the gateway and apply it to its order.

        Raises:
            GatewayError: Payment lookup failed
            PersistenceError: Order update failed
        """
        payment = await self.gateway.get_payment(payment_id)
        logger.info(
            "Payment %s is %s (reference=%s)",
            payment.id,
            payment.status,
            payment.external_reference,
        )
        return await self.apply_payment(payment)

    async def apply_payment(self, payment: GatewayPayment) -> ReconciliationOutcome:
        outcome = ReconciliationOutcome(
            payment_id=payment.id,
            reference=payment.external_reference,
            payment_status=payment.status,
        )

        if not payment.external_reference:
            outcome.anomaly = self.anomalies.record(
                ReconciliationAnomaly(
                    kind=ANOMALY_MISSING_EXTERNAL_REFERENCE,
                    payment_id=payment.id,
                    detail="payment carries no external_reference",
                )
            )
            return outcome

        update = await self.store.apply_payment_status(
            payment.external_reference,
            payment.status,
            payment.id,
        )
        if not update.found:
            outcome.anomaly = self.anomalies.record(
                ReconciliationAnomaly(
                    kind=ANOMALY_UNKNOWN_REFERENCE,
                    reference=payment.external_reference,
                    payment_id=payment.id,
                    detail=f"gateway status {payment.status}",
                )
            )
            return outcome

        outcome.previous_status = update.previous_status
        outcome.new_status = update.new_status
        outcome.skipped = not update.applied
        outcome.first_confirmation = update.first_confirmation

        logger.info(
            "Order %s reconciled: %s -> %s (payment %s %s)",
            update.reference,
            update.previous_status.value if update.previous_status else None,
            update.new_status.value if update.new_status else None,
            payment.id,
            payment.status,
        )

        if update.first_confirmation and update.order is not None:
            outcome.notified = await self._notify(update.order, payment)

        return outcome

    async def _notify(self, order: Order, payment: GatewayPayment) -> bool:
        try:
            report = await self.dispatcher.notify_order_confirmed(
                build_order_snapshot(order, payment)
            )
        except Exception as e:
            # Email never fails a reconciliation
            logger.error(f"Notification dispatch failed for {order.reference}: {e}")
            return False
        return not report.skipped
