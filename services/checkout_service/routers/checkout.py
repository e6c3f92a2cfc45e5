"""Checkout submission: preference creation + pending order."""

from fastapi import APIRouter, Depends
from services.checkout_service.dependencies import get_orchestrator
from services.checkout_service.schemas import CheckoutRequest, CheckoutResponse
from services.checkout_service.services.checkout import CheckoutOrchestrator

router = APIRouter(tags=["checkout"])


@router.post("/checkout", response_model=CheckoutResponse)
async def submit_checkout(
    payload: CheckoutRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """
    Create a payment preference and record the order as pending.

    Validation, gateway and storage failures are mapped to 400/500 by the
    app's exception handlers.
    """
    result = await orchestrator.submit_checkout(payload)
    return CheckoutResponse(
        preference_id=result.preference_id,
        redirect_url=result.redirect_url,
        reference=result.reference,
    )
