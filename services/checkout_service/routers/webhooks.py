"""Mercado Pago payment notifications."""

import json

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import PlainTextResponse
from libs.common.config import Settings
from libs.common.logging import get_logger
from services.checkout_service.dependencies import (
    get_background_runner,
    get_service_settings,
)
from services.checkout_service.errors import AuthenticityError
from services.checkout_service.schemas import PaymentWebhookEvent
from services.checkout_service.services.background import BackgroundRunner
from services.checkout_service.signature import verify_webhook_signature

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = get_logger(__name__)


@router.post("/payment", response_class=PlainTextResponse)
async def payment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_service_settings),
    runner: BackgroundRunner = Depends(get_background_runner),
):
    """
    Payment notification endpoint (no auth; verified by x-signature).

    Answers "OK" as soon as the signature checks out. Reconciliation runs
    after the response and its outcome never changes the answer.
    """
    raw = await request.body()
    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except (ValueError, UnicodeDecodeError):
        payload = {}

    event = PaymentWebhookEvent.parse_lenient(payload)
    query = request.query_params
    # Mercado Pago signs the id it puts in the query string; IPN-style
    # notifications send ``?topic=payment&id=...`` instead
    data_id = query.get("data.id") or query.get("id") or event.data.id
    event_type = event.type or query.get("type") or query.get("topic")

    try:
        verify_webhook_signature(
            secret=settings.MP_WEBHOOK_SECRET,
            signature_header=request.headers.get("x-signature"),
            request_id=request.headers.get("x-request-id"),
            data_id=data_id,
            tolerance_seconds=settings.WEBHOOK_TOLERANCE_SECONDS,
        )
    except AuthenticityError as e:
        logger.warning(
            "Rejected webhook for %s: %s",
            data_id,
            e.message,
            extra={"extra_fields": {"payment_id": data_id, "type": event_type}},
        )
        raise

    logger.info("Webhook accepted: type=%s id=%s", event_type, data_id)
    runner.schedule(background_tasks, event_type, data_id)
    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)
