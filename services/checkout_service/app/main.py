"""FastAPI application for the Checkout Service."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import utc_isoformat
from libs.common.emails.client import EmailClient
from libs.common.error_handler import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.db.config import Database
from services.checkout_service.container import build_container
from services.checkout_service.gateway_client import MercadoPagoClient
from services.checkout_service.routers import (
    checkout_router,
    orders_router,
    webhooks_router,
)
from services.checkout_service.schemas import HealthResponse

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    gateway: Optional[MercadoPagoClient] = None,
    email_client: Optional[EmailClient] = None,
) -> FastAPI:
    """Create and configure the Checkout Service FastAPI app.

    Collaborators can be injected (tests pass an in-memory database and
    fake gateway/email clients); otherwise they are built from settings.
    """
    settings = settings or get_settings()
    container = build_container(
        settings,
        database=database,
        gateway=gateway,
        email_client=email_client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await container.database.init(create_schema=settings.DB_CREATE_SCHEMA)
        if not settings.MP_WEBHOOK_SECRET:
            logger.warning("MP_WEBHOOK_SECRET is not set; webhooks will be rejected")
        if not container.email_client.is_configured:
            logger.warning("RESEND_API_KEY is not set; confirmation emails disabled")
        yield
        await container.database.close()

    app = FastAPI(
        title=f"{settings.STORE_NAME} Checkout Service",
        version="0.1.0",
        description="Checkout, payment webhook reconciliation and order lookup.",
        lifespan=lifespan,
    )
    app.state.container = container

    add_observability_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    add_exception_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="ok",
            service=settings.SERVICE_NAME,
            timestamp=utc_isoformat(),
        )

    app.include_router(checkout_router)
    app.include_router(webhooks_router)
    app.include_router(orders_router)

    return app


app = create_app()
