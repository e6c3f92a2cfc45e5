"""Checkout Service schemas package."""

from services.checkout_service.schemas.main import (
    CartItemIn,
    CheckoutRequest,
    CheckoutResponse,
    CustomerIn,
    CustomerOut,
    HealthResponse,
    OrderItemOut,
    OrderResponse,
    PaymentWebhookEvent,
    ShippingIn,
    WebhookData,
)

__all__ = [
    "CartItemIn",
    "CheckoutRequest",
    "CheckoutResponse",
    "CustomerIn",
    "CustomerOut",
    "HealthResponse",
    "OrderItemOut",
    "OrderResponse",
    "PaymentWebhookEvent",
    "ShippingIn",
    "WebhookData",
]
