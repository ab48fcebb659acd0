"""Need Ledger — read needed/purchased quantities for drive and child item needs.

Invariants:
    - purchased = SUM(order_items.quantity) for the need, excluding orders whose
      status is cancelled, failed or refunded
    - load_need(lock=True) issues SELECT ... FOR UPDATE on the need row so two
      donors cannot both pass the availability check for the last unit
    - Inactive needs are invisible (None), the same as missing ones

Design Decisions:
    - Polymorphic over the two need tables via NeedRef: every caller gets one
      NeedSnapshot shape regardless of where the need lives
    - Row lock taken on the need, not on order_items: the need row is the single
      serialization point for everything that reserves against it
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.availability import Availability
from app.core.domain_types import NeedRef, NeedRefType, VOIDED_ORDER_STATUSES
from app.models import Child, ChildItem, DriveItem, Item, Order, OrderItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeedSnapshot:
    """One need row with the catalog item it points at."""
    ref: NeedRef
    needed: int
    item_id: uuid.UUID | None
    item_name: str | None
    item_price: Decimal | None
    drive_id: uuid.UUID
    child_id: uuid.UUID | None

    @property
    def source_drive_item_id(self) -> uuid.UUID | None:
        return self.ref.ref_id if self.ref.ref_type is NeedRefType.DRIVE_ITEM else None

    @property
    def source_child_item_id(self) -> uuid.UUID | None:
        return self.ref.ref_id if self.ref.ref_type is NeedRefType.CHILD_ITEM else None


def need_ref_of(source_drive_item_id, source_child_item_id) -> NeedRef | None:
    """NeedRef for a mirror/order row, or None when it has no source need."""
    if source_drive_item_id:
        return NeedRef(NeedRefType.DRIVE_ITEM, source_drive_item_id)
    if source_child_item_id:
        return NeedRef(NeedRefType.CHILD_ITEM, source_child_item_id)
    return None


def _order_item_source_column(ref_type: NeedRefType):
    if ref_type is NeedRefType.DRIVE_ITEM:
        return OrderItem.source_drive_item_id
    return OrderItem.source_child_item_id


class NeedLedger:
    """Ledger reads within the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_need(self, ref: NeedRef, *, lock: bool = False) -> NeedSnapshot | None:
        if ref.ref_type is NeedRefType.DRIVE_ITEM:
            query = (
                select(
                    DriveItem.quantity, DriveItem.item_id, DriveItem.drive_id,
                    Item.name, Item.price,
                )
                .outerjoin(Item, Item.id == DriveItem.item_id)
                .where(DriveItem.id == ref.ref_id, DriveItem.is_active.is_(True))
            )
            if lock:
                query = query.with_for_update(of=DriveItem)
            row = (await self.db.execute(query)).one_or_none()
            if row is None:
                return None
            quantity, item_id, drive_id, name, price = row
            child_id = None
        else:
            query = (
                select(
                    ChildItem.quantity, ChildItem.item_id, Child.drive_id,
                    Child.id, Item.name, Item.price,
                )
                .join(Child, Child.id == ChildItem.child_id)
                .outerjoin(Item, Item.id == ChildItem.item_id)
                .where(ChildItem.id == ref.ref_id, ChildItem.is_active.is_(True))
            )
            if lock:
                query = query.with_for_update(of=ChildItem)
            row = (await self.db.execute(query)).one_or_none()
            if row is None:
                return None
            quantity, item_id, drive_id, child_id, name, price = row

        return NeedSnapshot(
            ref=ref,
            needed=quantity,
            item_id=item_id,
            item_name=name,
            item_price=price,
            drive_id=drive_id,
            child_id=child_id,
        )

    async def purchased_quantity(self, ref: NeedRef) -> int:
        column = _order_item_source_column(ref.ref_type)
        result = await self.db.execute(
            select(func.coalesce(func.sum(OrderItem.quantity), 0))
            .join(Order, Order.id == OrderItem.order_id)
            .where(column == ref.ref_id)
            .where(Order.status.not_in(VOIDED_ORDER_STATUSES)),
        )
        return int(result.scalar_one())

    async def availability(self, need: NeedSnapshot) -> Availability:
        purchased = await self.purchased_quantity(need.ref)
        return Availability(needed=need.needed, purchased=purchased)
