"""Initial schema — organizations, drives, needs, catalog, carts, mirror, orders.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _display_columns() -> list[sa.Column]:
    return [
        sa.Column("selected_rye_variant_id", sa.String(255), nullable=True),
        sa.Column("variant_display_name", sa.String(500), nullable=True),
        sa.Column("variant_display_photo", sa.Text, nullable=True),
        sa.Column("variant_display_price", sa.Numeric(10, 2), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("address2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(50), nullable=True),
        sa.Column("zip_code", sa.String(20), nullable=True),
        sa.Column("country", sa.String(50), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        _created_at(),
    )

    op.create_table(
        "drives",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("org_id", UUID(as_uuid=True), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        _created_at(),
    )

    op.create_table(
        "children",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("drive_id", UUID(as_uuid=True), sa.ForeignKey("drives.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        _created_at(),
    )
    op.create_index("ix_children_drive_id", "children", ["drive_id"])

    op.create_table(
        "items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("marketplace", sa.String(20), nullable=False),
        sa.Column("rye_product_id", sa.String(255), nullable=True),
        sa.Column("rye_variant_id", sa.String(255), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("is_rye_linked", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("inventory", sa.Integer, nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_items_rye_product_id", "items", ["rye_product_id"])
    op.create_index("ix_items_rye_variant_id", "items", ["rye_variant_id"])

    op.create_table(
        "drive_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("drive_id", UUID(as_uuid=True), sa.ForeignKey("drives.id"), nullable=False),
        sa.Column("item_id", UUID(as_uuid=True), sa.ForeignKey("items.id"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_display_columns(),
        _created_at(),
    )
    op.create_index("ix_drive_items_drive_id", "drive_items", ["drive_id"])

    op.create_table(
        "child_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("child_id", UUID(as_uuid=True), sa.ForeignKey("children.id"), nullable=False),
        sa.Column("item_id", UUID(as_uuid=True), sa.ForeignKey("items.id"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_display_columns(),
        _created_at(),
    )
    op.create_index("ix_child_items_child_id", "child_items", ["child_id"])

    op.create_table(
        "carts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("account_id", sa.String(64), nullable=True),
        sa.Column("guest_session_token", sa.String(64), nullable=True),
        sa.Column("rye_cart_id", sa.String(255), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_carts_account_id", "carts", ["account_id"])
    op.create_index("ix_carts_guest_session_token", "carts", ["guest_session_token"])

    op.create_table(
        "cart_contents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "cart_id", UUID(as_uuid=True),
            sa.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("item_id", UUID(as_uuid=True), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("drive_id", UUID(as_uuid=True), sa.ForeignKey("drives.id"), nullable=True),
        sa.Column("child_id", UUID(as_uuid=True), sa.ForeignKey("children.id"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column(
            "source_drive_item_id", UUID(as_uuid=True),
            sa.ForeignKey("drive_items.id"), nullable=True,
        ),
        sa.Column(
            "source_child_item_id", UUID(as_uuid=True),
            sa.ForeignKey("child_items.id"), nullable=True,
        ),
        sa.Column("marketplace", sa.String(20), nullable=False),
        sa.Column("rye_item_id", sa.String(255), nullable=False),
        sa.CheckConstraint(
            "(source_drive_item_id IS NULL) <> (source_child_item_id IS NULL)",
            name="ck_cart_contents_one_source_need",
        ),
    )
    op.create_index("ix_cart_contents_cart_id", "cart_contents", ["cart_id"])
    for column, name in (
        ("source_drive_item_id", "uq_cart_contents_drive_item_line"),
        ("source_child_item_id", "uq_cart_contents_child_item_line"),
    ):
        op.create_index(
            name, "cart_contents", ["cart_id", column, "marketplace", "rye_item_id"],
            unique=True,
            postgresql_where=sa.text(f"{column} IS NOT NULL"),
            sqlite_where=sa.text(f"{column} IS NOT NULL"),
        )

    op.create_table(
        "orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("account_id", sa.String(64), nullable=True),
        sa.Column("cart_id", UUID(as_uuid=True), sa.ForeignKey("carts.id"), nullable=False),
        sa.Column("rye_cart_id", sa.String(255), nullable=False),
        sa.Column("primary_rye_order_id", sa.String(255), nullable=False, unique=True),
        sa.Column("rye_order_ids", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="processing"),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("guest_first_name", sa.String(100), nullable=True),
        sa.Column("guest_last_name", sa.String(100), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
    )
    op.create_index("ix_orders_account_id", "orders", ["account_id"])

    op.create_table(
        "order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "order_id", UUID(as_uuid=True),
            sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("item_id", UUID(as_uuid=True), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("drive_id", UUID(as_uuid=True), sa.ForeignKey("drives.id"), nullable=True),
        sa.Column("child_id", UUID(as_uuid=True), sa.ForeignKey("children.id"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "source_drive_item_id", UUID(as_uuid=True),
            sa.ForeignKey("drive_items.id"), nullable=True,
        ),
        sa.Column(
            "source_child_item_id", UUID(as_uuid=True),
            sa.ForeignKey("child_items.id"), nullable=True,
        ),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_source_drive_item_id", "order_items", ["source_drive_item_id"])
    op.create_index("ix_order_items_source_child_item_id", "order_items", ["source_child_item_id"])


def downgrade() -> None:
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("cart_contents")
    op.drop_table("carts")
    op.drop_table("child_items")
    op.drop_table("drive_items")
    op.drop_table("items")
    op.drop_table("children")
    op.drop_table("drives")
    op.drop_table("organizations")
