"""Checkout Service models package."""

from services.checkout_service.models.core import Order
from services.checkout_service.models.enums import (
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    PaymentStatus,
    derive_order_status,
)

__all__ = [
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "TERMINAL_ORDER_STATUSES",
    "derive_order_status",
]
