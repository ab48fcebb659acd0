"""ChildItem ORM — "N units of item X needed" for one child in a drive.

Invariants:
    - Same need semantics as DriveItem; purchases are summed from
      order_items.source_child_item_id
    - drive_id is reached through children.drive_id
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Boolean, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class ChildItem(Base):
    __tablename__ = "child_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    child_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("children.id"), nullable=False, index=True,
    )
    item_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("items.id"), nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    selected_rye_variant_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True,
    )
    variant_display_name: Mapped[str | None] = mapped_column(
        String(500), nullable=True,
    )
    variant_display_photo: Mapped[str | None] = mapped_column(Text, nullable=True)
    variant_display_price: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
