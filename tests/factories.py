"""
Factories and fakes for creating valid test data.

Every model factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    order = OrderFactory.create(status=OrderStatus.CONFIRMED)
    async with database.session() as db:
        db.add(order)
        await db.commit()
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from libs.common.config import Settings
from services.checkout_service.errors import GatewayError
from services.checkout_service.gateway_client import (
    GatewayPayment,
    PreferenceRequest,
    PreferenceResult,
)
from services.checkout_service.signature import compute_signature

WEBHOOK_SECRET = "test-webhook-secret"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _unique_reference() -> str:
    return f"petmat_test_{uuid.uuid4().hex}"


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "local",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "DB_CREATE_SCHEMA": True,
        "MP_ACCESS_TOKEN": "TEST-access-token",
        "MP_WEBHOOK_SECRET": WEBHOOK_SECRET,
        "MP_USE_SANDBOX": False,
        "RESEND_API_KEY": "re_test_key",
        "ADMIN_EMAIL": "admin@petmat.test",
        "SUPPORT_EMAIL": "info@petmat.test",
        "FRONTEND_URL": "https://shop.petmat.test",
        "BACKEND_URL": "https://api.petmat.test",
        "STATUS_OVERWRITE_POLICY": "last_write_wins",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def signed_webhook_headers(
    data_id: str,
    request_id: str = "req-test-1",
    secret: str = WEBHOOK_SECRET,
    ts: Optional[int] = None,
) -> dict[str, str]:
    ts = str(ts if ts is not None else int(time.time()))
    digest = compute_signature(secret, data_id, request_id, ts)
    return {
        "x-signature": f"ts={ts},v1={digest}",
        "x-request-id": request_id,
    }


# ---------------------------------------------------------------------------
# Checkout Service
# ---------------------------------------------------------------------------


class OrderFactory:
    @staticmethod
    def create(**overrides):
        from services.checkout_service.models import Order, OrderStatus

        defaults = {
            "id": uuid.uuid4(),
            "reference": _unique_reference(),
            "gateway_preference_id": f"pref-{uuid.uuid4().hex[:8]}",
            "customer_name": "Test Customer",
            "customer_email": f"test-{uuid.uuid4().hex[:8]}@test.com",
            "customer_phone": "+56900000000",
            "customer_address": "Calle Falsa 123",
            "customer_city": "Santiago",
            "customer_region": "RM",
            "items": [
                {"id": "sku-1", "title": "Collar", "quantity": 2, "unit_price": 5000}
            ],
            "subtotal": 10000,
            "shipping_cost": 2990,
            "total": 12990,
            "status": OrderStatus.PENDING,
            "payment_status": "pending",
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


class NewOrderFactory:
    @staticmethod
    def create(**overrides):
        from services.checkout_service.services.order_store import NewOrder

        defaults = {
            "reference": _unique_reference(),
            "gateway_preference_id": f"pref-{uuid.uuid4().hex[:8]}",
            "customer_name": "Test Customer",
            "customer_email": "customer@test.com",
            "items": [
                {"id": "sku-1", "title": "Collar", "quantity": 2, "unit_price": 5000}
            ],
            "subtotal": 10000,
            "shipping_cost": 2990,
            "total": 12990,
        }
        defaults.update(overrides)
        return NewOrder(**defaults)


# ---------------------------------------------------------------------------
# Fakes for the outbound HTTP collaborators
# ---------------------------------------------------------------------------


class FakeGateway:
    """Stands in for MercadoPagoClient; payments are served from ``payments``."""

    def __init__(self):
        self.preference_requests: list[PreferenceRequest] = []
        self.payment_lookups: list[str] = []
        self.searches: list[str] = []
        self.payments: dict[str, dict] = {}
        self.fail_create: Optional[GatewayError] = None
        self.fail_lookup: Optional[GatewayError] = None
        self._counter = 0

    def add_payment(
        self, payment_id: str, status: str, reference: Optional[str]
    ) -> None:
        self.payments[str(payment_id)] = {
            "id": payment_id,
            "status": status,
            "status_detail": "accredited" if status == "approved" else None,
            "external_reference": reference,
            "transaction_amount": 12990,
            "payer": {"email": "payer@example.com"},
        }

    async def create_preference(self, request: PreferenceRequest) -> PreferenceResult:
        self.preference_requests.append(request)
        if self.fail_create is not None:
            raise self.fail_create
        self._counter += 1
        pref_id = f"pref-{self._counter}"
        return PreferenceResult(
            id=pref_id,
            redirect_url=f"https://mp.test/checkout?pref_id={pref_id}",
            sandbox_redirect_url=f"https://sandbox.mp.test/checkout?pref_id={pref_id}",
        )

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        self.payment_lookups.append(payment_id)
        if self.fail_lookup is not None:
            raise self.fail_lookup
        if payment_id not in self.payments:
            raise GatewayError("Payment not found", status_code=404)
        return GatewayPayment.from_api(self.payments[payment_id])

    async def search_payments(self, external_reference: str) -> list[GatewayPayment]:
        self.searches.append(external_reference)
        # Newest first, like the real search with sort=date_created desc
        return [
            GatewayPayment.from_api(data)
            for data in reversed(list(self.payments.values()))
            if data.get("external_reference") == external_reference
        ]


class FakeEmailClient:
    """Stands in for EmailClient; records every accepted send."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.sent: list[dict] = []
        self.fail_for: set[str] = set()

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def send(
        self, to_email, subject, html_body, from_email=None, text_body=None
    ) -> bool:
        if to_email in self.fail_for:
            raise RuntimeError(f"provider rejected {to_email}")
        self.sent.append({"to": to_email, "subject": subject, "html": html_body})
        return True
