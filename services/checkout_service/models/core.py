import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.checkout_service.models.enums import (
    OrderStatus,
    PaymentStatus,
    enum_values,
)
from sqlalchemy import JSON, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Order(Base):
    """Storefront orders, one per checkout, keyed by the external reference."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reference: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    gateway_preference_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )

    # Customer
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, default="", nullable=False)
    customer_city: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    customer_region: Mapped[str] = mapped_column(
        String(100), default="", nullable=False
    )

    # [{"id", "title", "quantity", "unit_price"}]
    items: Mapped[list] = mapped_column(JSONType, nullable=False)

    # Minor currency units, snapshot at checkout
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False)
    shipping_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status_enum",
            values_callable=enum_values,
            native_enum=False,
            length=20,
            validate_strings=True,
        ),
        default=OrderStatus.PENDING,
        index=True,
        nullable=False,
    )
    # Free-form: whatever status the gateway last reported
    payment_status: Mapped[str] = mapped_column(
        String(50), default=PaymentStatus.PENDING.value, index=True, nullable=False
    )
    gateway_payment_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    # Set once, by the reconciliation that produced the first confirmation
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def __repr__(self):
        return f"<Order {self.reference} {self.status.value}/{self.payment_status}>"
