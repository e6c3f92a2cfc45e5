"""Explicitly constructed service graph for one application instance."""

from dataclasses import dataclass
from typing import Optional

from libs.common.config import Settings
from libs.common.emails.client import EmailClient
from libs.db.config import Database
from services.checkout_service.errors import AnomalyLog
from services.checkout_service.gateway_client import MercadoPagoClient
from services.checkout_service.services.background import BackgroundRunner
from services.checkout_service.services.checkout import CheckoutOrchestrator
from services.checkout_service.services.notifications import NotificationDispatcher
from services.checkout_service.services.order_store import OrderStore
from services.checkout_service.services.reconciler import WebhookReconciler


@dataclass
class CheckoutContainer:
    settings: Settings
    database: Database
    store: OrderStore
    gateway: MercadoPagoClient
    email_client: EmailClient
    anomalies: AnomalyLog
    dispatcher: NotificationDispatcher
    orchestrator: CheckoutOrchestrator
    reconciler: WebhookReconciler
    runner: BackgroundRunner


def build_container(
    settings: Settings,
    database: Optional[Database] = None,
    gateway: Optional[MercadoPagoClient] = None,
    email_client: Optional[EmailClient] = None,
) -> CheckoutContainer:
    database = database or Database.from_settings(settings)
    gateway = gateway or MercadoPagoClient(settings)
    email_client = email_client or EmailClient(settings)

    anomalies = AnomalyLog()
    store = OrderStore(
        database.session_factory,
        overwrite_policy=settings.STATUS_OVERWRITE_POLICY,
    )
    dispatcher = NotificationDispatcher(email_client, settings)
    orchestrator = CheckoutOrchestrator(store, gateway, anomalies, settings)
    reconciler = WebhookReconciler(store, gateway, dispatcher, anomalies)

    return CheckoutContainer(
        settings=settings,
        database=database,
        store=store,
        gateway=gateway,
        email_client=email_client,
        anomalies=anomalies,
        dispatcher=dispatcher,
        orchestrator=orchestrator,
        reconciler=reconciler,
        runner=BackgroundRunner(reconciler),
    )
