"""Order read path."""

from fastapi import APIRouter, Depends, HTTPException, status
from services.checkout_service.dependencies import get_order_store
from services.checkout_service.schemas import OrderResponse
from services.checkout_service.services.order_store import OrderStore

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/{reference}", response_model=OrderResponse)
async def get_order(
    reference: str,
    store: OrderStore = Depends(get_order_store),
):
    order = await store.get_by_reference(reference)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    return OrderResponse.from_order(order)
