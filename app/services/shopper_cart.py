"""Shopper Cart — resolve who is shopping and which local cart is theirs.

Invariants:
    - An account shopper's active cart is looked up by account_id only
    - A guest's active cart must match the token AND have no account_id
    - An unknown guest token resolves to "no cart" (never an error)
    - At most one active cart is returned (newest first if duplicates exist)
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import CartStatus
from app.core.errors import ErrorContext
from app.models import Cart

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shopper:
    """Caller identity as established by the upstream auth layer and cookies."""
    account_id: str | None = None
    guest_token: str | None = None
    ip: str | None = None

    @property
    def is_guest(self) -> bool:
        return self.account_id is None


def new_guest_token() -> str:
    return str(uuid.uuid4())


def cart_context(cart: Cart | None) -> ErrorContext:
    if cart is None:
        return ErrorContext()
    return ErrorContext(cart_id=str(cart.id), rye_cart_id=cart.rye_cart_id)


async def find_active_cart(db: AsyncSession, shopper: Shopper) -> Cart | None:
    if shopper.account_id:
        query = select(Cart).where(Cart.account_id == shopper.account_id)
    elif shopper.guest_token:
        query = select(Cart).where(
            Cart.guest_session_token == shopper.guest_token,
            Cart.account_id.is_(None),
        )
    else:
        return None
    result = await db.execute(
        query.where(Cart.status == CartStatus.ACTIVE.value)
        .order_by(Cart.created_at.desc())
        .limit(1),
    )
    cart = result.scalar_one_or_none()
    if cart is None and shopper.guest_token and not shopper.account_id:
        logger.info("Guest cart token has no active cart")
    return cart
