"""Background reconciliation tasks for the checkout service.

Webhooks can be lost or rejected. This sweep asks Mercado Pago about orders
that have stayed pending too long and feeds whatever it finds through the
same reconciler the webhook endpoint uses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.checkout_service.container import CheckoutContainer, build_container
from services.checkout_service.errors import GatewayError, PersistenceError

logger = get_logger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    updated: int = 0
    without_payment: int = 0
    failed: int = 0


async def reconcile_stale_pending_orders(
    container: CheckoutContainer, limit: int = 200
) -> SweepReport:
    """Re-check pending orders older than ``STALE_PENDING_MINUTES``."""
    cutoff = utc_now() - timedelta(minutes=container.settings.STALE_PENDING_MINUTES)
    pending = await container.store.list_stale_pending(cutoff, limit=limit)
    report = SweepReport()

    for order in pending:
        report.checked += 1
        try:
            payments = await container.gateway.search_payments(order.reference)
        except GatewayError as exc:
            report.failed += 1
            logger.warning(
                "Pending order lookup failed for %s: %s", order.reference, exc.message
            )
            continue

        if not payments:
            report.without_payment += 1
            continue

        # Newest first; the latest attempt decides the order state
        try:
            outcome = await container.reconciler.apply_payment(payments[0])
        except PersistenceError as exc:
            report.failed += 1
            logger.error(f"Failed to reconcile {order.reference}: {exc.message}")
            continue

        if outcome.new_status not in (None, outcome.previous_status):
            report.updated += 1

    if report.checked:
        logger.info(
            "Stale pending sweep: checked=%d updated=%d without_payment=%d failed=%d",
            report.checked,
            report.updated,
            report.without_payment,
            report.failed,
        )
    return report


async def run_stale_pending_sweep() -> SweepReport:
    """Standalone entry point: build a container, sweep, tear down."""
    container = build_container(get_settings())
    try:
        await container.database.init()
        return await reconcile_stale_pending_orders(container)
    finally:
        await container.database.close()
