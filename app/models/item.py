"""Item ORM — catalog entry linked to a Rye product (Amazon) or variant (Shopify).

Invariants:
    - marketplace is AMAZON or SHOPIFY
    - Amazon items are keyed by rye_product_id, Shopify items by rye_variant_id
    - price/is_rye_linked/inventory are refreshed by Rye webhooks
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Text, Boolean, Integer, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Item(Base):
    __tablename__ = "items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    marketplace: Mapped[str] = mapped_column(String(20), nullable=False)
    rye_product_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True,
    )
    rye_variant_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True,
    )
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_rye_linked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    inventory: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
