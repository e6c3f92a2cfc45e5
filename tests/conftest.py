from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from libs.common.config import Settings
from libs.db.config import Database
from services.checkout_service.container import CheckoutContainer, build_container
from tests.factories import FakeEmailClient, FakeGateway, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def fake_email() -> FakeEmailClient:
    return FakeEmailClient()


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    """Fresh in-memory database per test."""
    db = Database.from_url(settings.DATABASE_URL, settings)
    await db.init(create_schema=True)
    yield db
    await db.close()


@pytest.fixture
def container(settings, database, fake_gateway, fake_email) -> CheckoutContainer:
    return build_container(
        settings,
        database=database,
        gateway=fake_gateway,
        email_client=fake_email,
    )


@pytest.fixture
def checkout_app(settings, database, fake_gateway, fake_email):
    from services.checkout_service.app.main import create_app

    return create_app(
        settings,
        database=database,
        gateway=fake_gateway,
        email_client=fake_email,
    )


@pytest_asyncio.fixture
async def client(checkout_app) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient bound to the checkout app.

    ASGITransport does not run the lifespan; the ``database`` fixture owns
    schema creation and disposal instead.
    """
    async with AsyncClient(
        transport=ASGITransport(app=checkout_app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def cart_payload() -> dict:
    return {
        "cart": [
            {"id": "sku-1", "title": "Cama ortopédica", "quantity": 2, "price": 5000}
        ],
        "customer": {
            "name": "Ana Pérez",
            "email": "ana@example.com",
            "phone": "+56 9 1234 5678",
            "address": "Av. Siempre Viva 742",
            "city": "Santiago",
            "region": "RM",
        },
    }
