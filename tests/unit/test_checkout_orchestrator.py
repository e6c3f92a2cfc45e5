"""Unit tests for checkout pricing, reference generation and orchestration.

Orchestrator tests run against the in-memory database and the fake gateway;
no HTTP layer involved.
"""

import re

import pytest
from services.checkout_service.container import build_container
from services.checkout_service.errors import (
    ANOMALY_ORPHANED_PREFERENCE,
    CheckoutValidationError,
    GatewayError,
    PersistenceError,
)
from services.checkout_service.models import OrderStatus
from services.checkout_service.schemas import CartItemIn
from services.checkout_service.services.checkout import (
    DEFAULT_SHIPPING_COST,
    compute_totals,
    generate_reference,
    validate_checkout,
)
from tests.factories import FakeEmailClient, NewOrderFactory, make_settings

# ---------------------------------------------------------------------------
# compute_totals
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_totals_use_default_shipping():
    cart = [CartItemIn(title="Collar", quantity=2, price=5000)]

    totals = compute_totals(cart)

    assert totals.subtotal == 10000
    assert totals.shipping_cost == DEFAULT_SHIPPING_COST == 2990
    assert totals.total == 12990


@pytest.mark.unit
def test_totals_with_explicit_zero_shipping():
    cart = [
        CartItemIn(title="Collar", quantity=1, price=3500),
        CartItemIn(title="Plato", quantity=3, price=1200),
    ]

    totals = compute_totals(cart, shipping_cost=0)

    assert totals.subtotal == 7100
    assert totals.shipping_cost == 0
    assert totals.total == 7100


@pytest.mark.unit
def test_totals_respect_configured_default():
    cart = [CartItemIn(title="Collar", quantity=1, price=1000)]

    totals = compute_totals(cart, default_shipping_cost=500)

    assert totals.total == 1500


# ---------------------------------------------------------------------------
# generate_reference
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_reference_format():
    reference = generate_reference("petmat")

    assert re.fullmatch(r"petmat_[0-9a-z]+_[a-z2-7]{26}", reference)


@pytest.mark.unit
def test_references_do_not_collide():
    references = {generate_reference("petmat") for _ in range(10_000)}

    assert len(references) == 10_000


# ---------------------------------------------------------------------------
# validate_checkout
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_validation_rejects_empty_cart(cart_payload):
    cart_payload["cart"] = []

    with pytest.raises(CheckoutValidationError) as exc_info:
        validate_checkout(cart_payload)

    assert any(detail.startswith("cart") for detail in exc_info.value.details)


@pytest.mark.unit
def test_validation_rejects_bad_email(cart_payload):
    cart_payload["customer"]["email"] = "not-an-email"

    with pytest.raises(CheckoutValidationError) as exc_info:
        validate_checkout(cart_payload)

    assert any("customer.email" in detail for detail in exc_info.value.details)


@pytest.mark.unit
@pytest.mark.parametrize(
    "item",
    [
        {"title": "Collar", "quantity": 0, "price": 1000},
        {"title": "Collar", "quantity": 1, "price": -1},
        {"title": "", "quantity": 1, "price": 1000},
    ],
)
def test_validation_rejects_bad_cart_items(cart_payload, item):
    cart_payload["cart"] = [item]

    with pytest.raises(CheckoutValidationError):
        validate_checkout(cart_payload)


@pytest.mark.unit
def test_validation_accepts_name_alias_and_numeric_id(cart_payload):
    cart_payload["cart"] = [{"id": 42, "name": "Collar", "quantity": 1, "price": 900}]

    request = validate_checkout(cart_payload)

    assert request.cart[0].title == "Collar"
    assert request.cart[0].id == "42"


# ---------------------------------------------------------------------------
# CheckoutOrchestrator.submit_checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_checkout_creates_pending_order(
    container, fake_gateway, cart_payload
):
    result = await container.orchestrator.submit_checkout(cart_payload)

    assert result.preference_id == "pref-1"
    assert result.redirect_url == "https://mp.test/checkout?pref_id=pref-1"
    assert result.reference.startswith("petmat_")

    order = await container.store.get_by_reference(result.reference)
    assert order is not None
    assert order.status == OrderStatus.PENDING
    assert order.payment_status == "pending"
    assert order.gateway_preference_id == "pref-1"
    assert (order.subtotal, order.shipping_cost, order.total) == (10000, 2990, 12990)
    assert order.items == [
        {"id": "sku-1", "title": "Cama ortopédica", "quantity": 2, "unit_price": 5000}
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_checkout_sends_reference_and_urls_to_gateway(
    container, fake_gateway, cart_payload
):
    result = await container.orchestrator.submit_checkout(cart_payload)

    [request] = fake_gateway.preference_requests
    assert request.reference == result.reference
    assert request.total == 12990
    assert request.notification_url == "https://api.petmat.test/webhooks/payment"
    assert request.back_urls["success"] == "https://shop.petmat.test/success"
    assert request.back_urls["failure"] == "https://shop.petmat.test/error"
    assert request.payer.email == "ana@example.com"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_checkout_invalid_input_has_no_side_effects(
    container, fake_gateway, cart_payload
):
    cart_payload["cart"] = []

    with pytest.raises(CheckoutValidationError):
        await container.orchestrator.submit_checkout(cart_payload)

    assert fake_gateway.preference_requests == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_checkout_gateway_failure_stores_nothing(
    container, fake_gateway, cart_payload
):
    fake_gateway.fail_create = GatewayError("Payment provider timed out")

    with pytest.raises(GatewayError):
        await container.orchestrator.submit_checkout(cart_payload)

    [request] = fake_gateway.preference_requests
    assert await container.store.get_by_reference(request.reference) is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_submit_checkout_storage_failure_records_orphaned_preference(
    container, fake_gateway, cart_payload, monkeypatch
):
    async def failing_create(new_order):
        raise PersistenceError("Failed to store order")

    monkeypatch.setattr(container.store, "create_order", failing_create)

    with pytest.raises(PersistenceError):
        await container.orchestrator.submit_checkout(cart_payload)

    [anomaly] = container.anomalies.entries(ANOMALY_ORPHANED_PREFERENCE)
    assert anomaly.preference_id == "pref-1"
    assert anomaly.reference == fake_gateway.preference_requests[0].reference


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_reference_is_a_persistence_error(container):
    new_order = NewOrderFactory.create()
    await container.store.create_order(new_order)

    with pytest.raises(PersistenceError):
        await container.store.create_order(new_order)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sandbox_mode_returns_sandbox_redirect(
    database, fake_gateway, cart_payload
):
    container = build_container(
        make_settings(MP_USE_SANDBOX=True),
        database=database,
        gateway=fake_gateway,
        email_client=FakeEmailClient(),
    )

    result = await container.orchestrator.submit_checkout(cart_payload)

    assert result.redirect_url.startswith("https://sandbox.mp.test/")
