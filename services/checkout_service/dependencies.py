"""FastAPI dependencies resolving components from ``app.state.container``."""

from fastapi import Request

from libs.common.config import Settings
from services.checkout_service.container import CheckoutContainer
from services.checkout_service.services.background import BackgroundRunner
from services.checkout_service.services.checkout import CheckoutOrchestrator
from services.checkout_service.services.order_store import OrderStore


def get_container(request: Request) -> CheckoutContainer:
    return request.app.state.container


def get_service_settings(request: Request) -> Settings:
    return get_container(request).settings


def get_order_store(request: Request) -> OrderStore:
    return get_container(request).store


def get_orchestrator(request: Request) -> CheckoutOrchestrator:
    return get_container(request).orchestrator


def get_background_runner(request: Request) -> BackgroundRunner:
    return get_container(request).runner
