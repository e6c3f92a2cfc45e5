"""Order persistence and the per-row atomic status transitions."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.checkout_service.errors import PersistenceError
from services.checkout_service.models import (
    TERMINAL_ORDER_STATUSES,
    Order,
    OrderStatus,
    derive_order_status,
)
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

OverwritePolicy = Literal["last_write_wins", "terminal_sticky"]


@dataclass
class NewOrder:
    reference: str
    gateway_preference_id: str
    customer_name: str
    customer_email: str
    items: list[dict]
    subtotal: int
    shipping_cost: int
    total: int
    customer_phone: str = ""
    customer_address: str = ""
    customer_city: str = ""
    customer_region: str = ""


@dataclass
class StatusUpdate:
    """What a reconciliation write did to one order."""

    reference: str
    found: bool
    applied: bool = False
    previous_status: Optional[OrderStatus] = None
    new_status: Optional[OrderStatus] = None
    # True only for the single write that first moved the order to confirmed
    first_confirmation: bool = False
    order: Optional[Order] = None


class OrderStore:
    """Single source of truth for orders.

    Status writes are conditional UPDATE statements rather than
    read-modify-write, so concurrent deliveries of the same event are safe.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        overwrite_policy: OverwritePolicy = "last_write_wins",
    ):
        self._session_factory = session_factory
        self.overwrite_policy = overwrite_policy

    async def create_order(self, new_order: NewOrder) -> Order:
        """Insert a pending order. A reference collision is a hard error."""
        if new_order.total != new_order.subtotal + new_order.shipping_cost:
            raise PersistenceError("Order total does not match subtotal + shipping")

        order = Order(
            reference=new_order.reference,
            gateway_preference_id=new_order.gateway_preference_id,
            customer_name=new_order.customer_name,
            customer_email=new_order.customer_email,
            customer_phone=new_order.customer_phone,
            customer_address=new_order.customer_address,
            customer_city=new_order.customer_city,
            customer_region=new_order.customer_region,
            items=new_order.items,
            subtotal=new_order.subtotal,
            shipping_cost=new_order.shipping_cost,
            total=new_order.total,
            status=OrderStatus.PENDING,
            payment_status="pending",
        )

        async with self._session_factory() as db:
            try:
                db.add(order)
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise PersistenceError(
                    f"Order reference already exists: {new_order.reference}"
                ) from e
            except SQLAlchemyError as e:
                await db.rollback()
                raise PersistenceError("Failed to store order") from e

        logger.info(
            "Order %s stored (total=%d, items=%d)",
            order.reference,
            order.total,
            len(order.items),
        )
        return order

    async def get_by_reference(self, reference: str) -> Optional[Order]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Order).where(Order.reference == reference)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load order") from e

    async def apply_payment_status(
        self,
        reference: str,
        payment_status: str,
        gateway_payment_id: Optional[str],
    ) -> StatusUpdate:
        """Write the gateway's payment status and the derived order status.

        Safe to apply repeatedly. ``first_confirmation`` is claimed with a
        conditional update on ``confirmed_at`` so exactly one caller ever
        sees it set, however many deliveries race.
        """
        new_status = derive_order_status(payment_status)
        now = utc_now()

        try:
            async with self._session_factory() as db:
                async with db.begin():
                    # Locked for the rest of the transaction; only reported
                    previous_status = (
                        await db.execute(
                            select(Order.status)
                            .where(Order.reference == reference)
                            .with_for_update()
                        )
                    ).scalar_one_or_none()

                    stmt = update(Order).where(Order.reference == reference)
                    if self.overwrite_policy == "terminal_sticky":
                        stmt = stmt.where(
                            or_(
                                Order.status.not_in(list(TERMINAL_ORDER_STATUSES)),
                                Order.status == new_status,
                            )
                        )
                    result = await db.execute(
                        stmt.values(
                            payment_status=payment_status,
                            status=new_status,
                            gateway_payment_id=gateway_payment_id,
                            updated_at=now,
                        ).execution_options(synchronize_session=False)
                    )
                    applied = result.rowcount == 1
                    if not applied and (
                        self.overwrite_policy == "last_write_wins"
                        or previous_status is None
                    ):
                        return StatusUpdate(reference=reference, found=False)

                    first_confirmation = False
                    if applied and new_status == OrderStatus.CONFIRMED:
                        claim = await db.execute(
                            update(Order)
                            .where(
                                Order.reference == reference,
                                Order.confirmed_at.is_(None),
                            )
                            .values(confirmed_at=now)
                            .execution_options(synchronize_session=False)
                        )
                        first_confirmation = claim.rowcount == 1

                order = (
                    await db.execute(
                        select(Order)
                        .where(Order.reference == reference)
                        .execution_options(populate_existing=True)
                    )
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update order {reference}") from e

        if not applied:
            logger.info(
                "Order %s is %s; keeping it despite gateway status %s",
                reference,
                previous_status.value,
                payment_status,
            )

        return StatusUpdate(
            reference=reference,
            found=True,
            applied=applied,
            previous_status=previous_status,
            new_status=new_status if applied else previous_status,
            first_confirmation=first_confirmation,
            order=order,
        )

    async def list_stale_pending(
        self, created_before: datetime, limit: int = 200
    ) -> list[Order]:
        """Pending orders older than ``created_before``, oldest first."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Order)
                    .where(
                        Order.status == OrderStatus.PENDING,
                        Order.created_at <= created_before,
                    )
                    .order_by(Order.created_at.asc())
                    .limit(limit)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list pending orders") from e
