"""DriveItem ORM — "N units of item X needed" at drive level.

Invariants:
    - quantity is the needed quantity; purchased is derived from order_items
      (source_drive_item_id) and never stored here
    - Only active rows accept new cart reservations
    - variant_display_* override the catalog's name/photo/price in cart views
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Boolean, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class DriveItem(Base):
    __tablename__ = "drive_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    drive_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("drives.id"), nullable=False, index=True,
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
