from datetime import datetime
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
)
from pydantic.alias_generators import to_camel
from services.checkout_service.models import Order, OrderStatus

# ---------------------------------------------------------------------------
# Checkout input
# ---------------------------------------------------------------------------


class CartItemIn(BaseModel):
    id: Optional[str] = Field(default=None, max_length=255)
    # Older storefront builds send "name" instead of "title"
    title: str = Field(
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("title", "name"),
    )
    quantity: int = Field(gt=0)
    price: int = Field(ge=0, description="Unit price in minor currency units")

    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)


class CustomerIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(default="", max_length=50)
    address: str = ""
    city: str = Field(default="", max_length=100)
    region: str = Field(default="", max_length=100)

    model_config = ConfigDict(str_strip_whitespace=True)


class ShippingIn(BaseModel):
    cost: Optional[int] = Field(default=None, ge=0)


class CheckoutRequest(BaseModel):
    cart: list[CartItemIn] = Field(min_length=1)
    customer: CustomerIn
    shipping: Optional[ShippingIn] = None


class CheckoutResponse(BaseModel):
    preference_id: str
    redirect_url: str
    reference: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Order read path
# ---------------------------------------------------------------------------


class OrderItemOut(BaseModel):
    id: Optional[str] = None
    title: str
    quantity: int
    unit_price: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomerOut(BaseModel):
    name: str
    email: str
    phone: str = ""
    address: str = ""
    city: str = ""
    region: str = ""


class OrderResponse(BaseModel):
    reference: str
    status: OrderStatus
    payment_status: str
    gateway_preference_id: str
    gateway_payment_id: Optional[str] = None
    customer: CustomerOut
    items: list[OrderItemOut]
    subtotal: int
    shipping_cost: int
    total: int
    confirmed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            reference=order.reference,
            status=order.status,
            payment_status=order.payment_status,
            gateway_preference_id=order.gateway_preference_id,
            gateway_payment_id=order.gateway_payment_id,
            customer=CustomerOut(
                name=order.customer_name,
                email=order.customer_email,
                phone=order.customer_phone or "",
                address=order.customer_address or "",
                city=order.customer_city or "",
                region=order.customer_region or "",
            ),
            items=[OrderItemOut.model_validate(item) for item in order.items or []],
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            total=order.total,
            confirmed_at=order.confirmed_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


# ---------------------------------------------------------------------------
# Webhook input
# ---------------------------------------------------------------------------


class WebhookData(BaseModel):
    id: Optional[str] = None

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="allow")


class PaymentWebhookEvent(BaseModel):
    """Mercado Pago notification body. Only ``type`` and ``data.id`` are used;
    the payment status is always re-fetched from the gateway."""

    type: Optional[str] = None
    action: Optional[str] = None
    data: WebhookData = Field(default_factory=WebhookData)

    model_config = ConfigDict(extra="allow")

    @classmethod
    def parse_lenient(cls, payload: Any) -> "PaymentWebhookEvent":
        if not isinstance(payload, dict):
            return cls()
        data = payload.get("data")
        try:
            webhook_data = WebhookData.model_validate(
                data if isinstance(data, dict) else {}
            )
        except ValidationError:
            webhook_data = WebhookData()
        event_type = payload.get("type") or payload.get("topic")
        action = payload.get("action")
        return cls(
            type=event_type if isinstance(event_type, str) else None,
            action=action if isinstance(action, str) else None,
            data=webhook_data,
        )


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: str
