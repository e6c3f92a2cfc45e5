"""Enum definitions for checkout service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED})


class PaymentStatus(str, enum.Enum):
    """Mercado Pago payment statuses.

    Stored as plain strings so that statuses added by the provider later are
    kept verbatim instead of failing validation.
    """

    PENDING = "pending"
    APPROVED = "approved"
    AUTHORIZED = "authorized"
    IN_PROCESS = "in_process"
    IN_MEDIATION = "in_mediation"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CHARGED_BACK = "charged_back"


def derive_order_status(payment_status: str) -> OrderStatus:
    """The only mapping from gateway payment status to order status."""
    if payment_status == PaymentStatus.APPROVED.value:
        return OrderStatus.CONFIRMED
    if payment_status == PaymentStatus.REJECTED.value:
        return OrderStatus.CANCELLED
    return OrderStatus.PENDING
