"""Need Handlers — read-only availability reports for one need and for a whole drive.

Invariants:
    - Drive totals count only active needs, both drive-level and per-child
    - Purchased totals exclude voided orders, the same rule as the ledger
    - Donors are distinct accounts plus distinct guest emails
"""

import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.domain_types import NeedRef, VOIDED_ORDER_STATUSES
from app.core.errors import NeedNotFoundError, ResourceNotFoundError
from app.models import Child, ChildItem, Drive, DriveItem, Order, OrderItem
from app.services.need_ledger import NeedLedger


class NeedHandlers:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = NeedLedger(db)

    async def need_availability(self, ref: NeedRef) -> dict:
        need = await self.ledger.load_need(ref)
        if need is None:
            raise NeedNotFoundError(str(ref))
        availability = await self.ledger.availability(need)
        return {
            "ref_type": ref.ref_type.value,
            "ref_id": str(ref.ref_id),
            "item_id": str(need.item_id) if need.item_id else None,
            "item_name": need.item_name,
            **availability.to_dict(),
        }

    async def drive_aggregate(self, drive_id: uuid.UUID) -> dict:
        drive = await self.db.get(Drive, drive_id)
        if drive is None:
            raise ResourceNotFoundError("Drive", str(drive_id))

        drive_needed = (await self.db.execute(
            select(func.coalesce(func.sum(DriveItem.quantity), 0))
            .where(DriveItem.drive_id == drive_id, DriveItem.is_active.is_(True)),
        )).scalar_one()
        child_needed = (await self.db.execute(
            select(func.coalesce(func.sum(ChildItem.quantity), 0))
            .join(Child, Child.id == ChildItem.child_id)
            .where(Child.drive_id == drive_id, ChildItem.is_active.is_(True)),
        )).scalar_one()

        counted = (
            select(OrderItem.quantity, Order.account_id, Order.guest_email)
            .join(Order, Order.id == OrderItem.order_id)
            .where(
                OrderItem.drive_id == drive_id,
                Order.status.not_in(VOIDED_ORDER_STATUSES),
            )
            .subquery()
        )
        purchased, donors = (await self.db.execute(
            select(
                func.coalesce(func.sum(counted.c.quantity), 0),
                func.count(func.distinct(
                    func.coalesce(counted.c.account_id, counted.c.guest_email),
                )),
            ),
        )).one()

        return {
            "drive_id": str(drive_id),
            "name": drive.name,
            "total_needed": int(drive_needed) + int(child_needed),
            "total_purchased": int(purchased),
            "total_donors": int(donors),
        }
