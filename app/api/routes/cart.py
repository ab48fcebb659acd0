"""Cart Routes — shopper-facing cart endpoints over the Rye cart and local mirror.

Invariants:
    - Every route resolves the shopper from headers/cookies, never from the body
    - "No cart" is a JSON null body with 200, not a 404
    - Add answers 201 when it created a cart (and sets the guest cookie for guests)
    - validate-checkout answers 400 with the same body shape when invalid
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_rye_client, get_shopper, set_guest_cookie
from app.config import get_settings
from app.infrastructure.database import get_db
from app.infrastructure.rye_client import ResilientRyeClient
from app.schemas.cart import (
    AddToCartRequest, BuyerIdentityRequest, RemoveCartItemRequest,
    SubmitCartRequest, UpdateCartItemRequest,
)
from app.services.handle_cart import CartHandlers
from app.services.shopper_cart import Shopper

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cart", tags=["cart"])


def get_cart_handlers(
    db: AsyncSession = Depends(get_db),
    rye: ResilientRyeClient = Depends(get_rye_client),
) -> CartHandlers:
    return CartHandlers(db, rye, get_settings().receipt_email_domain)


@router.get("")
async def get_cart(
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    """Current cart, augmented, or null."""
    return await handlers.get_cart(shopper)


@router.post("/add")
async def add_to_cart(
    body: AddToCartRequest,
    response: Response,
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    """Reserve quantity against a need and add it to the remote cart."""
    result = await handlers.add_item(
        shopper, body.rye_item_id, body.marketplace, body.quantity, body.need_ref,
    )
    if result.guest_token:
        set_guest_cookie(response, result.guest_token)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
    return result.cart


@router.post("/update")
async def update_cart_item(
    body: UpdateCartItemRequest,
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    return await handlers.update_item(
        shopper, body.rye_item_id, body.marketplace, body.quantity, body.need_ref,
    )


@router.post("/remove")
async def remove_cart_item(
    body: RemoveCartItemRequest,
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    return await handlers.remove_item(shopper, body.rye_item_id, body.marketplace)


@router.post("/validate-checkout")
async def validate_checkout(
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    """Re-check every cart line against remaining need before payment."""
    result = await handlers.validate_checkout(shopper)
    if not result["is_valid"]:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result)
    return result


@router.post("/buyer-identity")
async def update_buyer_identity(
    body: BuyerIdentityRequest,
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    """Ship to the recipient organization under the donor's name."""
    return await handlers.update_buyer_identity(
        shopper, body.first_name, body.last_name, body.email,
    )


@router.post("/submit")
async def submit_cart(
    body: SubmitCartRequest,
    shopper: Shopper = Depends(get_shopper),
    handlers: CartHandlers = Depends(get_cart_handlers),
):
    """Pay for the cart and finalize the stores that succeeded."""
    result = await handlers.submit(
        shopper, body.payment_token,
        body.guest_first_name, body.guest_last_name, body.guest_email,
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=result.to_dict())
