"""Order Handlers — donation history and live order details for an account.

Invariants:
    - Every read is scoped by account_id; guests have no order history
    - Details are fetched from Rye only after the order is proven to belong
      to the caller locally
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorContext, NotAuthenticatedError, ResourceNotFoundError
from app.infrastructure.rye_client import ResilientRyeClient
from app.models import Item, Order, OrderItem
from app.services.shopper_cart import Shopper

logger = logging.getLogger(__name__)


def _order_summary(order: Order, item_names: dict) -> dict:
    return {
        "id": str(order.id),
        "primary_rye_order_id": order.primary_rye_order_id,
        "rye_order_ids": list(order.rye_order_ids or []),
        "status": order.status,
        "total_amount": str(order.total_amount),
        "currency": order.currency,
        "order_date": order.order_date.isoformat(),
        "items": [
            {
                "item_id": str(item.item_id),
                "item_name": item_names.get(item.item_id),
                "quantity": item.quantity,
                "price": str(item.price) if item.price is not None else None,
                "drive_id": str(item.drive_id) if item.drive_id else None,
                "child_id": str(item.child_id) if item.child_id else None,
            }
            for item in order.items
        ],
    }


class OrderHandlers:
    def __init__(self, db: AsyncSession, rye: ResilientRyeClient | None = None):
        self.db = db
        self.rye = rye

    async def list_orders(self, shopper: Shopper) -> list[dict]:
        """Account order history, newest first."""
        if shopper.is_guest:
            raise NotAuthenticatedError()
        orders = (await self.db.execute(
            select(Order)
            .where(Order.account_id == shopper.account_id)
            .order_by(Order.order_date.desc()),
        )).scalars().all()

        names = dict((await self.db.execute(
            select(Item.id, Item.name)
            .join(OrderItem, OrderItem.item_id == Item.id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.account_id == shopper.account_id),
        )).all())
        return [_order_summary(order, names) for order in orders]

    async def _owned_order(self, shopper: Shopper, rye_order_id: str) -> Order:
        orders = (await self.db.execute(
            select(Order).where(Order.account_id == shopper.account_id),
        )).scalars().all()
        for order in orders:
            if order.primary_rye_order_id == rye_order_id or rye_order_id in (order.rye_order_ids or []):
                return order
        raise ResourceNotFoundError("Order", rye_order_id)

    async def order_details(self, shopper: Shopper, rye_order_id: str) -> dict:
        if shopper.is_guest:
            raise NotAuthenticatedError()
        order = await self._owned_order(shopper, rye_order_id)
        remote = await self.rye.get_order(
            rye_order_id, shopper_ip=shopper.ip,
            context=ErrorContext(rye_cart_id=order.rye_cart_id),
        )
        if remote is None:
            raise ResourceNotFoundError("Rye order", rye_order_id)
        return {"order_id": str(order.id), "rye_order": remote}
