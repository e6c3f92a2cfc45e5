"""Routers package."""

from services.checkout_service.routers.checkout import router as checkout_router
from services.checkout_service.routers.orders import router as orders_router
from services.checkout_service.routers.webhooks import router as webhooks_router

__all__ = [
    "checkout_router",
    "orders_router",
    "webhooks_router",
]
