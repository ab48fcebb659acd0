"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - A need is addressed by NeedRef (table + NeedId), never by a bare UUID
    - Rye ids (cart, product, variant) stay opaque strings
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

NeedId = NewType("NeedId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Marketplace(str, Enum):
    """Marketplaces fronted by Rye."""
    AMAZON = "AMAZON"
    SHOPIFY = "SHOPIFY"

    @classmethod
    def parse(cls, value: str) -> "Marketplace":
        """Case-insensitive lookup; raises ValueError on unknown marketplaces."""
        return cls(value.strip().upper())


class NeedRefType(str, Enum):
    """Which ledger table a need lives in."""
    DRIVE_ITEM = "drive_item"
    CHILD_ITEM = "child_item"


class CartStatus(str, Enum):
    """Local cart lifecycle — maps to carts.status."""
    ACTIVE = "active"
    ABANDONED = "abandoned"
    SUBMITTED = "submitted"


class OrderStatus(str, Enum):
    """Local order lifecycle — maps to orders.status."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"


# Orders in these states no longer count toward purchased quantities
VOIDED_ORDER_STATUSES = (
    OrderStatus.CANCELLED.value,
    OrderStatus.FAILED.value,
    OrderStatus.REFUNDED.value,
)


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class NeedRef:
    """Names one drive item or child item."""
    ref_type: NeedRefType
    ref_id: NeedId

    def __str__(self) -> str:
        return f"{self.ref_type.value}:{self.ref_id}"


@dataclass(frozen=True)
class LineKey:
    """Identity of a remote cart line: one Rye product/variant in one marketplace."""
    marketplace: Marketplace
    rye_item_id: str
