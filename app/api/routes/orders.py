"""Order Routes — finalize a Rye submission, list history, fetch live details."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_rye_client, get_shopper
from app.infrastructure.database import get_db
from app.infrastructure.rye_client import ResilientRyeClient
from app.schemas.order import FinalizeOrderRequest, OrderDetailsRequest
from app.services.checkout_finalizer import CheckoutFinalizer, FinalizeInput
from app.services.handle_orders import OrderHandlers
from app.services.shopper_cart import Shopper

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("/finalize")
async def finalize_order(
    body: FinalizeOrderRequest,
    shopper: Shopper = Depends(get_shopper),
    db: AsyncSession = Depends(get_db),
):
    """Record a submitted cart as an order. 201 when created, 200 when already recorded."""
    result = await CheckoutFinalizer(db).finalize(
        shopper,
        FinalizeInput(
            rye_cart_id=body.rye_cart_id,
            rye_order_ids=body.rye_order_ids,
            amount_in_cents=body.amount_in_cents,
            currency=body.currency,
            guest_first_name=body.guest_first_name,
            guest_last_name=body.guest_last_name,
            guest_email=body.guest_email,
        ),
    )
    code = status.HTTP_200_OK if result.already_finalized else status.HTTP_201_CREATED
    return JSONResponse(status_code=code, content=result.to_dict())


@router.get("")
async def list_orders(
    shopper: Shopper = Depends(get_shopper),
    db: AsyncSession = Depends(get_db),
):
    return {"orders": await OrderHandlers(db).list_orders(shopper)}


@router.post("/details")
async def order_details(
    body: OrderDetailsRequest,
    shopper: Shopper = Depends(get_shopper),
    db: AsyncSession = Depends(get_db),
    rye: ResilientRyeClient = Depends(get_rye_client),
):
    return await OrderHandlers(db, rye).order_details(shopper, body.rye_order_id)
