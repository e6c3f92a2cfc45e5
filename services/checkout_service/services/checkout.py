"""Checkout orchestration: validate, price, reference, preference, persist."""

import base64
import secrets
import time
from dataclasses import dataclass
from typing import Optional, Union

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from pydantic import ValidationError
from services.checkout_service.errors import (
    ANOMALY_ORPHANED_PREFERENCE,
    AnomalyLog,
    CheckoutValidationError,
    GatewayError,
    PersistenceError,
    ReconciliationAnomaly,
)
from services.checkout_service.gateway_client import (
    MercadoPagoClient,
    PayerInfo,
    PreferenceItem,
    PreferenceRequest,
)
from services.checkout_service.schemas import CartItemIn, CheckoutRequest
from services.checkout_service.services.order_store import NewOrder, OrderStore

logger = get_logger(__name__)

DEFAULT_SHIPPING_COST = 2990

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: int
    shipping_cost: int
    total: int


@dataclass(frozen=True)
class CheckoutResult:
    preference_id: str
    redirect_url: str
    reference: str


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_reference(prefix: str = "petmat") -> str:
    """``<prefix>_<ms timestamp, base36>_<128 random bits, base32>``.

    Only the timestamp is predictable; the random part comes from
    ``secrets`` so references cannot be forged by enumeration.
    """
    millis = _to_base36(time.time_ns() // 1_000_000)
    random_part = base64.b32encode(secrets.token_bytes(16)).decode("ascii")
    return f"{prefix}_{millis}_{random_part.rstrip('=').lower()}"


def compute_totals(
    cart: list[CartItemIn],
    shipping_cost: Optional[int] = None,
    default_shipping_cost: int = DEFAULT_SHIPPING_COST,
) -> CheckoutTotals:
    subtotal = sum(item.price * item.quantity for item in cart)
    shipping = default_shipping_cost if shipping_cost is None else shipping_cost
    return CheckoutTotals(
        subtotal=subtotal, shipping_cost=shipping, total=subtotal + shipping
    )


def validate_checkout(request: Union[CheckoutRequest, dict]) -> CheckoutRequest:
    """Coerce raw input into a CheckoutRequest or raise CheckoutValidationError."""
    try:
        if isinstance(request, CheckoutRequest):
            # Re-run validators; the instance may have been built with model_construct
            return CheckoutRequest.model_validate(request.model_dump(by_alias=False))
        return CheckoutRequest.model_validate(request)
    except ValidationError as e:
        details = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        raise CheckoutValidationError("Invalid checkout request", details) from e


class CheckoutOrchestrator:
    def __init__(
        self,
        store: OrderStore,
        gateway: MercadoPagoClient,
        anomalies: AnomalyLog,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.anomalies = anomalies
        self.settings = settings or get_settings()

    def _back_urls(self) -> dict[str, str]:
        frontend = self.settings.FRONTEND_URL.rstrip("/")
        if not frontend:
            return {}
        return {
            "success": f"{frontend}/success",
            "failure": f"{frontend}/error",
            "pending": f"{frontend}/success",
        }

    def _notification_url(self) -> str:
        return f"{self.settings.BACKEND_URL.rstrip('/')}/webhooks/payment"

    async def submit_checkout(
        self, request: Union[CheckoutRequest, dict]
    ) -> CheckoutResult:
        """
        Open a payment preference and record the pending order.

        Nothing is persisted unless the gateway call succeeds. A storage
        failure after that leaves a preference without an order; it is
        recorded as an anomaly and surfaced as PersistenceError.

        Raises:
            CheckoutValidationError: Bad input (no side effects)
            GatewayError: Preference could not be created
            PersistenceError: Order could not be stored
        """
        checkout = validate_checkout(request)
        shipping_cost = checkout.shipping.cost if checkout.shipping else None
        totals = compute_totals(
            checkout.cart,
            shipping_cost,
            default_shipping_cost=self.settings.DEFAULT_SHIPPING_COST,
        )
        reference = generate_reference(self.settings.REFERENCE_PREFIX)
        customer = checkout.customer

        items = [
            PreferenceItem(
                id=item.id or f"item_{index}",
                title=item.title,
                quantity=item.quantity,
                unit_price=item.price,
            )
            for index, item in enumerate(checkout.cart, start=1)
        ]

        logger.info(
            "Checkout %s: %d items, total=%d",
            reference,
            len(items),
            totals.total,
        )

        preference = await self.gateway.create_preference(
            PreferenceRequest(
                reference=reference,
                items=items,
                payer=PayerInfo(
                    name=customer.name,
                    email=customer.email,
                    phone=customer.phone,
                    address=customer.address,
                    city=customer.city,
                    region=customer.region,
                ),
                subtotal=totals.subtotal,
                shipping_cost=totals.shipping_cost,
                total=totals.total,
                notification_url=self._notification_url(),
                back_urls=self._back_urls(),
            )
        )
        if not preference.id:
            raise GatewayError("Payment provider returned no preference id")

        try:
            await self.store.create_order(
                NewOrder(
                    reference=reference,
                    gateway_preference_id=preference.id,
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    customer_address=customer.address,
                    customer_city=customer.city,
                    customer_region=customer.region,
                    items=[
                        {
                            "id": item.id,
                            "title": item.title,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                        }
                        for item in items
                    ],
                    subtotal=totals.subtotal,
                    shipping_cost=totals.shipping_cost,
                    total=totals.total,
                )
            )
        except PersistenceError as e:
            self.anomalies.record(
                ReconciliationAnomaly(
                    kind=ANOMALY_ORPHANED_PREFERENCE,
                    reference=reference,
                    preference_id=preference.id,
                    detail=str(e),
                )
            )
            raise

        redirect_url = preference.redirect_url
        if self.settings.MP_USE_SANDBOX and preference.sandbox_redirect_url:
            redirect_url = preference.sandbox_redirect_url

        return CheckoutResult(
            preference_id=preference.id,
            redirect_url=redirect_url,
            reference=reference,
        )
