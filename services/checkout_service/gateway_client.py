"""
Mercado Pago API client for checkout preferences and payment lookups.

Provides async methods for:
- Creating a checkout preference (redirect URL for the buyer)
- Fetching a payment by id (authoritative status for reconciliation)
- Searching payments by external reference (stale order sweep)

Every call is bounded by ``GATEWAY_TIMEOUT_SECONDS``; timeouts, transport
errors and non-2xx answers all surface as ``GatewayError``. The access token
is only ever placed in the Authorization header.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import httpx
from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from services.checkout_service.errors import GatewayError

logger = get_logger(__name__)


@dataclass
class PreferenceItem:
    id: str
    title: str
    quantity: int
    unit_price: int


@dataclass
class PayerInfo:
    name: str
    email: str
    phone: str = ""
    address: str = ""
    city: str = ""
    region: str = ""


@dataclass
class PreferenceRequest:
    """Everything the gateway needs to open a checkout for one order."""

    reference: str
    items: List[PreferenceItem]
    payer: PayerInfo
    subtotal: int
    shipping_cost: int
    total: int
    notification_url: str
    back_urls: dict[str, str] = field(default_factory=dict)


@dataclass
class PreferenceResult:
    id: str
    redirect_url: str
    sandbox_redirect_url: Optional[str] = None


@dataclass
class GatewayPayment:
    """Authoritative payment view as reported by Mercado Pago."""

    id: str
    status: str
    status_detail: Optional[str] = None
    external_reference: Optional[str] = None
    transaction_amount: Optional[float] = None
    payer_email: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "GatewayPayment":
        payer = data.get("payer") or {}
        return cls(
            id=str(data.get("id", "")),
            status=str(data.get("status") or "").lower(),
            status_detail=data.get("status_detail"),
            external_reference=data.get("external_reference") or None,
            transaction_amount=data.get("transaction_amount"),
            payer_email=payer.get("email"),
            metadata=data.get("metadata") or {},
        )


def _split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return full_name, ""
    return parts[0], " ".join(parts[1:])


class MercadoPagoClient:
    """Async client for the Mercado Pago Checkout Pro and Payments APIs."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self.base_url = settings.MP_API_BASE_URL.rstrip("/")
        self.timeout = settings.GATEWAY_TIMEOUT_SECONDS
        self._access_token = settings.MP_ACCESS_TOKEN
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self._access_token)

    def _headers(self, idempotency_key: Optional[str] = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
        idempotency_key: str = None,
    ) -> dict:
        """Make a bounded request to the Mercado Pago API."""
        if not self.is_configured:
            raise GatewayError("MP_ACCESS_TOKEN is not configured")

        url = f"{self.base_url}{endpoint}"
        kwargs = dict(
            method=method,
            url=url,
            headers=self._headers(idempotency_key),
            params=params,
            json=json_data,
            timeout=self.timeout,
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.request(**kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(**kwargs)
        except httpx.TimeoutException as e:
            logger.error(
                f"Mercado Pago {method} {endpoint} timed out after {self.timeout}s"
            )
            raise GatewayError("Payment provider timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Mercado Pago {method} {endpoint} failed: {type(e).__name__}")
            raise GatewayError("Payment provider unreachable") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            logger.error(
                f"Mercado Pago API error: {response.status_code} - "
                f"{data.get('message') or data.get('error') or 'no message'}"
            )
            raise GatewayError(
                message=data.get("message", "Payment provider request failed"),
                status_code=response.status_code,
                response_data=data,
            )

        if not isinstance(data, dict):
            raise GatewayError("Unexpected payment provider response")

        return data

    # =========================================================================
    # Preferences
    # =========================================================================

    def build_preference_payload(self, request: PreferenceRequest) -> dict:
        first_name, surname = _split_name(request.payer.name)
        phone_digits = "".join(ch for ch in request.payer.phone if ch.isdigit())
        currency = self.settings.CURRENCY_ID

        return {
            "items": [
                {
                    "id": item.id,
                    "title": item.title,
                    "description": item.title,
                    "category_id": "others",
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "currency_id": currency,
                }
                for item in request.items
            ],
            "payer": {
                "name": first_name,
                "surname": surname,
                "email": request.payer.email,
                "phone": {"number": phone_digits},
                "address": {"street_name": request.payer.address},
            },
            "shipments": {
                "cost": request.shipping_cost,
                "mode": "not_specified",
                "receiver_address": {
                    "street_name": request.payer.address,
                    "city_name": request.payer.city,
                    "state_name": request.payer.region,
                },
            },
            "back_urls": request.back_urls,
            "auto_return": "approved" if request.back_urls.get("success") else None,
            "external_reference": request.reference,
            "notification_url": request.notification_url,
            "statement_descriptor": self.settings.STATEMENT_DESCRIPTOR,
            "binary_mode": False,
            "metadata": {
                "reference": request.reference,
                "customer_email": request.payer.email,
                "items_count": len(request.items),
                "subtotal": request.subtotal,
                "shipping_cost": request.shipping_cost,
                "total": request.total,
            },
        }

    async def create_preference(self, request: PreferenceRequest) -> PreferenceResult:
        """
        Create a Checkout Pro preference for one order.

        The order reference doubles as the idempotency key, so a retried
        create for the same order never opens a second preference.

        Raises:
            GatewayError: On failure, timeout, or a response without an id
        """
        payload = self.build_preference_payload(request)
        payload = {k: v for k, v in payload.items() if v is not None}

        data = await self._request(
            "POST",
            "/checkout/preferences",
            json_data=payload,
            idempotency_key=request.reference,
        )

        preference_id = data.get("id")
        init_point = data.get("init_point") or data.get("sandbox_init_point")
        if not preference_id or not init_point:
            raise GatewayError(
                "Payment provider returned no preference id", response_data=data
            )

        logger.info(
            "Preference created for %s: %s", request.reference, preference_id
        )
        return PreferenceResult(
            id=str(preference_id),
            redirect_url=init_point,
            sandbox_redirect_url=data.get("sandbox_init_point"),
        )

    # =========================================================================
    # Payments
    # =========================================================================

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch the authoritative state of a payment."""
        data = await self._request("GET", f"/v1/payments/{payment_id}")
        return GatewayPayment.from_api(data)

    async def search_payments(self, external_reference: str) -> List[GatewayPayment]:
        """Payments attached to an order reference, newest first."""
        data = await self._request(
            "GET",
            "/v1/payments/search",
            params={
                "external_reference": external_reference,
                "sort": "date_created",
                "criteria": "desc",
            },
        )
        return [GatewayPayment.from_api(item) for item in data.get("results", [])]
