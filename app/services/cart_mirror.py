"""Cart Mirror — local record of what each remote cart line holds, per need.

Invariants:
    - All reads are scoped by cart_id; never returns rows of another cart
    - One row per (cart, need, remote line); rows_for_line may return several
      rows when different needs share one remote line
    - A need may be spread over several remote lines (variants); what counts
      against its availability is quantity_for_need, the sum over all of them
    - display_rows prefers need-level display overrides over catalog values

Design Decisions:
    - Returns ORM rows for writers and frozen MirrorDisplay for the pure
      augmentation step, so core/ never sees SQLAlchemy objects
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cart_augmentation import MirrorDisplay
from app.core.domain_types import LineKey, Marketplace, NeedRef, NeedRefType
from app.models import CartContent, ChildItem, DriveItem, Item


@dataclass(frozen=True)
class MirrorLine:
    """Mirror row plus the catalog fields validation and finalization need."""
    content: CartContent
    item_name: str | None
    item_price: Decimal | None

    @property
    def key(self) -> LineKey:
        return LineKey(Marketplace(self.content.marketplace), self.content.rye_item_id)


def _source_filter(ref: NeedRef):
    if ref.ref_type is NeedRefType.DRIVE_ITEM:
        return CartContent.source_drive_item_id == ref.ref_id
    return CartContent.source_child_item_id == ref.ref_id


def _str_or_none(value: uuid.UUID | None) -> str | None:
    return str(value) if value else None


class CartMirror:
    """Mirror queries within the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_for_need(
        self, cart_id: uuid.UUID, ref: NeedRef, key: LineKey,
    ) -> CartContent | None:
        result = await self.db.execute(
            select(CartContent).where(
                CartContent.cart_id == cart_id,
                _source_filter(ref),
                CartContent.marketplace == key.marketplace.value,
                CartContent.rye_item_id == key.rye_item_id,
            ),
        )
        return result.scalars().first()

    async def quantity_for_need(self, cart_id: uuid.UUID, ref: NeedRef) -> int:
        """Quantity reserved for one need across every remote line of the cart."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(CartContent.quantity), 0)).where(
                CartContent.cart_id == cart_id,
                _source_filter(ref),
            ),
        )
        return int(result.scalar_one())

    async def rows_for_line(self, cart_id: uuid.UUID, key: LineKey) -> list[CartContent]:
        result = await self.db.execute(
            select(CartContent).where(
                CartContent.cart_id == cart_id,
                CartContent.marketplace == key.marketplace.value,
                CartContent.rye_item_id == key.rye_item_id,
            ),
        )
        return list(result.scalars().all())

    async def lines(self, cart_id: uuid.UUID) -> list[MirrorLine]:
        result = await self.db.execute(
            select(CartContent, Item.name, Item.price)
            .join(Item, Item.id == CartContent.item_id)
            .where(CartContent.cart_id == cart_id),
        )
        return [MirrorLine(content, name, price) for content, name, price in result.all()]

    async def display_rows(self, cart_id: uuid.UUID) -> list[MirrorDisplay]:
        result = await self.db.execute(
            select(
                CartContent.marketplace,
                CartContent.rye_item_id,
                CartContent.quantity,
                CartContent.source_drive_item_id,
                CartContent.source_child_item_id,
                Item.name,
                func.coalesce(
                    DriveItem.variant_display_name,
                    ChildItem.variant_display_name,
                    Item.name,
                ),
                func.coalesce(
                    DriveItem.variant_display_photo,
                    ChildItem.variant_display_photo,
                    Item.image_url,
                ),
                func.coalesce(
                    DriveItem.variant_display_price,
                    ChildItem.variant_display_price,
                    Item.price,
                ),
            )
            .join(Item, Item.id == CartContent.item_id)
            .outerjoin(DriveItem, DriveItem.id == CartContent.source_drive_item_id)
            .outerjoin(ChildItem, ChildItem.id == CartContent.source_child_item_id)
            .where(CartContent.cart_id == cart_id),
        )
        return [
            MirrorDisplay(
                marketplace=Marketplace(marketplace),
                rye_item_id=rye_item_id,
                quantity=quantity,
                source_drive_item_id=_str_or_none(drive_item_id),
                source_child_item_id=_str_or_none(child_item_id),
                base_product_name=base_name,
                display_name=display_name,
                display_photo=display_photo,
                display_price=Decimal(str(display_price)) if display_price is not None else None,
            )
            for (
                marketplace, rye_item_id, quantity, drive_item_id, child_item_id,
                base_name, display_name, display_photo, display_price,
            ) in result.all()
        ]
