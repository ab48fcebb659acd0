"""Checkout Finalizer — turn a submitted cart into a local order without overselling.

Invariants:
    - Cart row locked by rye_cart_id for the whole finalization
    - Idempotent: an existing order for the cart whose primary rye order id is
      among the submitted ones is returned, nothing is written
    - Every need is locked and re-checked; quantities are summed per need so
      two mirror rows of one need cannot pass separately
    - Order, order items and the cart status change commit together or not at all
    - A concurrent duplicate loses on orders.primary_rye_order_id (DatabaseError)

Design Decisions:
    - line_filter restricts finalization to the lines of successful stores
      (partial submission); None finalizes the whole mirror
    - Oversell here is 409: the money side already happened, the client must
      reconcile rather than retry
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.availability import ensure_available
from app.core.domain_types import CartStatus, LineKey, NeedRef, OrderStatus
from app.core.errors import (
    CartOwnershipError, CartStatusConflictError, EmptyCartError,
    ErrorContext, InvalidRequestError, NeedNotFoundError, ResourceNotFoundError,
)
from app.core.money import cents_to_amount, normalize_currency
from app.models import Cart, Order, OrderItem
from app.services.cart_mirror import CartMirror, MirrorLine
from app.services.need_ledger import NeedLedger, need_ref_of
from app.services.shopper_cart import Shopper, cart_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeInput:
    rye_cart_id: str
    rye_order_ids: list[str]
    amount_in_cents: int
    currency: str
    guest_first_name: str | None = None
    guest_last_name: str | None = None
    guest_email: str | None = None


@dataclass(frozen=True)
class FinalizeResult:
    order_id: uuid.UUID
    primary_rye_order_id: str
    already_finalized: bool

    def to_dict(self) -> dict:
        return {
            "order_id": str(self.order_id),
            "primary_rye_order_id": self.primary_rye_order_id,
            "already_finalized": self.already_finalized,
        }


def require_guest_details(
    shopper: Shopper, first_name: str | None, last_name: str | None, email: str | None,
) -> None:
    if not shopper.is_guest:
        return
    if not (first_name and last_name and email):
        raise InvalidRequestError(
            "Guest first name, last name and email are required", field="guest_email",
        )


class CheckoutFinalizer:
    """Records orders; owns its transaction (commits or rolls back)."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = NeedLedger(db)
        self.mirror = CartMirror(db)

    async def finalize(
        self,
        shopper: Shopper,
        data: FinalizeInput,
        line_filter: set[LineKey] | None = None,
    ) -> FinalizeResult:
        if not data.rye_order_ids:
            raise InvalidRequestError("At least one Rye order id is required", field="rye_order_ids")
        require_guest_details(
            shopper, data.guest_first_name, data.guest_last_name, data.guest_email,
        )
        try:
            return await self._finalize(shopper, data, line_filter)
        except Exception:
            await self.db.rollback()
            raise

    async def _finalize(
        self, shopper: Shopper, data: FinalizeInput, line_filter: set[LineKey] | None,
    ) -> FinalizeResult:
        cart = (await self.db.execute(
            select(Cart).where(Cart.rye_cart_id == data.rye_cart_id).with_for_update(),
        )).scalar_one_or_none()
        if cart is None:
            raise ResourceNotFoundError("Cart", data.rye_cart_id)
        ctx = cart_context(cart)
        if cart.account_id and cart.account_id != shopper.account_id:
            raise CartOwnershipError(ctx)

        existing = (await self.db.execute(
            select(Order).where(
                Order.cart_id == cart.id,
                Order.primary_rye_order_id.in_(data.rye_order_ids),
            ),
        )).scalars().first()
        if existing is not None:
            result = FinalizeResult(existing.id, existing.primary_rye_order_id, True)
            await self.db.rollback()
            logger.info(
                "Order already finalized for this cart",
                extra={"order_id": str(result.order_id), "rye_order_id": result.primary_rye_order_id},
            )
            return result

        if cart.status != CartStatus.ACTIVE.value:
            raise CartStatusConflictError(cart.status, ctx)

        lines = await self.mirror.lines(cart.id)
        if line_filter is not None:
            lines = [line for line in lines if line.key in line_filter]
        if not lines:
            raise EmptyCartError("Cart has no items to finalize", ctx)

        await self._reserve(lines, ctx)

        cart.status = CartStatus.SUBMITTED.value
        items = [
            OrderItem(
                item_id=line.content.item_id,
                drive_id=line.content.drive_id,
                child_id=line.content.child_id,
                quantity=line.content.quantity,
                price=line.item_price,
                source_drive_item_id=line.content.source_drive_item_id,
                source_child_item_id=line.content.source_child_item_id,
            )
            for line in lines
        ]
        order = Order(
            account_id=cart.account_id,
            cart_id=cart.id,
            rye_cart_id=cart.rye_cart_id,
            primary_rye_order_id=data.rye_order_ids[0],
            rye_order_ids=list(data.rye_order_ids),
            status=OrderStatus.PROCESSING.value,
            total_amount=cents_to_amount(data.amount_in_cents),
            currency=normalize_currency(data.currency),
            items=items,
        )
        if cart.account_id is None:
            order.guest_first_name = data.guest_first_name
            order.guest_last_name = data.guest_last_name
            order.guest_email = data.guest_email
        self.db.add(order)
        await self.db.commit()

        logger.info(
            f"Order finalized with {len(lines)} items",
            extra={
                "order_id": str(order.id),
                "rye_order_id": order.primary_rye_order_id,
                "cart_id": str(cart.id),
            },
        )
        return FinalizeResult(order.id, order.primary_rye_order_id, False)

    async def _reserve(self, lines: list[MirrorLine], ctx: ErrorContext) -> None:
        """Lock every need and check the summed quantity against availability."""
        requested: dict[NeedRef, int] = {}
        names: dict[NeedRef, MirrorLine] = {}
        for line in lines:
            ref = need_ref_of(line.content.source_drive_item_id, line.content.source_child_item_id)
            if ref is None:
                logger.warning(
                    "Mirror row without a source need finalized unchecked",
                    extra={"cart_id": ctx.cart_id},
                )
                continue
            requested[ref] = requested.get(ref, 0) + line.content.quantity
            names.setdefault(ref, line)

        for ref, quantity in requested.items():
            need = await self.ledger.load_need(ref, lock=True)
            if need is None:
                raise NeedNotFoundError(str(ref), "is no longer available", http_status=400, context=ctx)
            availability = await self.ledger.availability(need)
            line = names[ref]
            ensure_available(
                availability, quantity,
                item_name=line.item_name,
                item_id=str(line.content.item_id),
                need_ref=str(ref),
                http_status=409,
            )
