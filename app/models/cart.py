"""Cart ORM — local handle on one remote Rye cart.

Invariants:
    - rye_cart_id is unique; it is the only link to the remote cart
    - At most one active cart per account, or per guest token without account
    - status transitions: active -> abandoned | submitted (never back)

Design Decisions:
    - Guest carts carry guest_session_token (cookie value) and no account_id
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    account_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    guest_session_token: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True,
    )
    rye_cart_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
