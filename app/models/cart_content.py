"""CartContent ORM — mirror row: what we believe one remote cart line holds for one need.

Invariants:
    - Exactly one of source_drive_item_id / source_child_item_id is set
    - One row per (cart_id, source need, remote line): repeated adds grow quantity;
      enforced by partial unique indexes, one per source column
    - (marketplace, rye_item_id) is the remote line this row lives in; several
      rows may share a line when different needs ask for the same product

Design Decisions:
    - rye_item_id stored on the row: the id actually sent to Rye, so line
      matching never depends on catalog columns that webhooks may rewrite
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class CartContent(Base):
    __tablename__ = "cart_contents"
    __table_args__ = (
        CheckConstraint(
            "(source_drive_item_id IS NULL) <> (source_child_item_id IS NULL)",
            name="ck_cart_contents_one_source_need",
        ),
        Index(
            "uq_cart_contents_drive_item_line",
            "cart_id", "source_drive_item_id", "marketplace", "rye_item_id",
            unique=True,
            postgresql_where=text("source_drive_item_id IS NOT NULL"),
            sqlite_where=text("source_drive_item_id IS NOT NULL"),
        ),
        Index(
            "uq_cart_contents_child_item_line",
            "cart_id", "source_child_item_id", "marketplace", "rye_item_id",
            unique=True,
            postgresql_where=text("source_child_item_id IS NOT NULL"),
            sqlite_where=text("source_child_item_id IS NOT NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    cart_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carts.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("items.id"), nullable=False,
    )
    drive_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("drives.id"), nullable=True,
    )
    child_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("children.id"), nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    source_drive_item_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("drive_items.id"), nullable=True,
    )
    source_child_item_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("child_items.id"), nullable=True,
    )
    marketplace: Mapped[str] = mapped_column(String(20), nullable=False)
    rye_item_id: Mapped[str] = mapped_column(String(255), nullable=False)
