"""Unit tests for WebhookReconciler and the background runner."""

import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from libs.db.config import Database
from services.checkout_service.container import build_container
from services.checkout_service.errors import (
    ANOMALY_MISSING_EXTERNAL_REFERENCE,
    ANOMALY_UNKNOWN_REFERENCE,
    GatewayError,
)
from services.checkout_service.models import OrderStatus
from tests.factories import FakeEmailClient, OrderFactory


async def _insert(database, **overrides):
    order = OrderFactory.create(**overrides)
    async with database.session() as db:
        db.add(order)
        await db.commit()
    return order


@pytest.mark.asyncio
@pytest.mark.unit
async def test_ignores_non_payment_events(container, fake_gateway):
    assert await container.reconciler.handle_event("merchant_order", "1") is None
    assert await container.reconciler.handle_event("payment", None) is None
    assert fake_gateway.payment_lookups == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approved_payment_confirms_and_notifies(
    container, database, fake_gateway, fake_email
):
    order = await _insert(database, customer_email="buyer@example.com")
    fake_gateway.add_payment("900", "approved", order.reference)

    outcome = await container.reconciler.handle_event("payment", "900")

    assert outcome.previous_status == OrderStatus.PENDING
    assert outcome.new_status == OrderStatus.CONFIRMED
    assert outcome.first_confirmation is True
    assert outcome.notified is True
    assert sorted(mail["to"] for mail in fake_email.sent) == [
        "admin@petmat.test",
        "buyer@example.com",
    ]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_replayed_approval_notifies_once(
    container, database, fake_gateway, fake_email
):
    order = await _insert(database)
    fake_gateway.add_payment("901", "approved", order.reference)

    first = await container.reconciler.handle_event("payment", "901")
    second = await container.reconciler.handle_event("payment", "901")
    third = await container.reconciler.handle_event("payment", "901")

    assert first.notified is True
    assert second.notified is False and third.notified is False
    assert len(fake_email.sent) == 2
    assert fake_gateway.payment_lookups == ["901", "901", "901"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_status_comes_from_gateway_not_event(
    container, database, fake_gateway, fake_email
):
    order = await _insert(database)
    fake_gateway.add_payment("902", "rejected", order.reference)

    outcome = await container.reconciler.handle_event("payment", "902")

    assert outcome.new_status == OrderStatus.CANCELLED
    assert outcome.notified is False
    assert fake_email.sent == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_reference_records_anomaly(container, fake_gateway, fake_email):
    fake_gateway.add_payment("903", "approved", "petmat_does_not_exist")

    outcome = await container.reconciler.handle_event("payment", "903")

    assert outcome.anomaly is not None
    assert outcome.anomaly.kind == ANOMALY_UNKNOWN_REFERENCE
    [anomaly] = container.anomalies.entries(ANOMALY_UNKNOWN_REFERENCE)
    assert anomaly.reference == "petmat_does_not_exist"
    assert anomaly.payment_id == "903"
    assert fake_email.sent == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_missing_external_reference_records_anomaly(container, fake_gateway):
    fake_gateway.add_payment("904", "approved", None)

    outcome = await container.reconciler.handle_event("payment", "904")

    assert outcome.anomaly.kind == ANOMALY_MISSING_EXTERNAL_REFERENCE
    assert len(container.anomalies.entries(ANOMALY_MISSING_EXTERNAL_REFERENCE)) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_gateway_failure_propagates_from_reconciler(container, fake_gateway):
    fake_gateway.fail_lookup = GatewayError("Payment provider timed out")

    with pytest.raises(GatewayError):
        await container.reconciler.handle_event("payment", "905")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_email_failure_does_not_undo_confirmation(
    container, database, fake_gateway, fake_email
):
    order = await _insert(database, customer_email="buyer@example.com")
    fake_gateway.add_payment("906", "approved", order.reference)
    fake_email.fail_for = {"buyer@example.com", "admin@petmat.test"}

    outcome = await container.reconciler.handle_event("payment", "906")

    assert outcome.new_status == OrderStatus.CONFIRMED
    assert outcome.notified is True
    stored = await container.store.get_by_reference(order.reference)
    assert stored.status == OrderStatus.CONFIRMED


# ---------------------------------------------------------------------------
# BackgroundRunner
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_runner_records_gateway_failures(container, fake_gateway):
    fake_gateway.fail_lookup = GatewayError("Payment provider unreachable")

    result = await container.runner.run_webhook("payment", "907")

    assert result is None
    [failure] = container.runner.failures
    assert failure.payment_id == "907"
    assert failure.error.startswith("gateway:")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_runner_records_unexpected_failures(container, monkeypatch):
    async def boom(event_type, payment_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(container.reconciler, "handle_event", boom)

    assert await container.runner.run_webhook("payment", "908") is None
    assert container.runner.failures[0].error == "unexpected: RuntimeError"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unconfigured_email_provider_is_not_notified(
    settings, database, fake_gateway
):
    email = FakeEmailClient(configured=False)
    container = build_container(
        settings, database=database, gateway=fake_gateway, email_client=email
    )
    order = await _insert(database)
    fake_gateway.add_payment("909", "approved", order.reference)

    outcome = await container.reconciler.handle_event("payment", "909")

    assert outcome.first_confirmation is True
    assert outcome.notified is False
    assert email.sent == []


# ---------------------------------------------------------------------------
# Concurrent deliveries
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(params=["memory", "file"])
async def shared_database(
    request, tmp_path, settings
) -> AsyncGenerator[Database, None]:
    if request.param == "memory":
        url = settings.DATABASE_URL
    else:
        url = f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}"
    db = Database.from_url(url, settings)
    await db.init(create_schema=True)
    yield db
    await db.close()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_deliveries_notify_once(
    settings, shared_database, fake_gateway, fake_email
):
    container = build_container(
        settings,
        database=shared_database,
        gateway=fake_gateway,
        email_client=fake_email,
    )
    order = await _insert(shared_database)
    fake_gateway.add_payment("910", "approved", order.reference)

    outcomes = await asyncio.gather(
        *(container.runner.run_webhook("payment", "910") for _ in range(5))
    )

    assert list(container.runner.failures) == []
    assert [o.first_confirmation for o in outcomes].count(True) == 1
    assert [o.notified for o in outcomes].count(True) == 1
    assert len(fake_email.sent) == 2
    stored = await container.store.get_by_reference(order.reference)
    assert stored.status == OrderStatus.CONFIRMED
