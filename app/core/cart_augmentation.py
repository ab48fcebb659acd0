"""Cart Augmentation — decorate a Rye cart with local display metadata.

Invariants:
    - Input cart is never mutated; a deep copy is returned
    - A line matches mirror rows on (marketplace, rye_item_id)
    - Unmatched lines fall back to Rye's own titles and images
    - Every giftdrive_* key is present on every line after augmentation

Design Decisions:
    - One remote line may serve several needs (same product requested by the
      drive and by a child); display fields come from the first mirror row and
      `giftdrive_needs` lists all of them
"""

import copy
from dataclasses import dataclass
from decimal import Decimal

from app.core.domain_types import LineKey, Marketplace
from app.core.marketplace import iter_cart_lines, line_key, store_marketplace


@dataclass(frozen=True)
class MirrorDisplay:
    """One mirror row joined with its catalog item and need display overrides."""
    marketplace: Marketplace
    rye_item_id: str
    quantity: int
    source_drive_item_id: str | None
    source_child_item_id: str | None
    base_product_name: str | None
    display_name: str | None
    display_photo: str | None
    display_price: Decimal | None

    @property
    def key(self) -> LineKey:
        return LineKey(self.marketplace, self.rye_item_id)

    def need_ref(self) -> dict:
        if self.source_drive_item_id:
            return {"ref_type": "drive_item", "ref_id": self.source_drive_item_id, "quantity": self.quantity}
        return {"ref_type": "child_item", "ref_id": self.source_child_item_id, "quantity": self.quantity}


def _price(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _apply_local(line: dict, rows: list[MirrorDisplay]) -> None:
    first = rows[0]
    line["giftdrive_base_product_name"] = first.base_product_name
    line["giftdrive_variant_details_text"] = first.display_name
    line["giftdrive_display_photo"] = first.display_photo
    line["giftdrive_display_price"] = _price(first.display_price)
    line["giftdrive_source_drive_item_id"] = first.source_drive_item_id
    line["giftdrive_source_child_item_id"] = first.source_child_item_id
    line["giftdrive_needs"] = [row.need_ref() for row in rows]


def _apply_fallback(store: dict, line: dict) -> None:
    product = line.get("product") or {}
    variant = line.get("variant") or {}
    images = product.get("images") or []
    if store_marketplace(store) is Marketplace.SHOPIFY:
        details = variant.get("title")
        photo = (variant.get("image") or {}).get("url")
    else:
        details = product.get("title")
        photo = None
    line["giftdrive_base_product_name"] = product.get("title")
    line["giftdrive_variant_details_text"] = details
    line["giftdrive_display_photo"] = photo or (images[0].get("url") if images else None)
    line["giftdrive_display_price"] = None
    line["giftdrive_source_drive_item_id"] = None
    line["giftdrive_source_child_item_id"] = None
    line["giftdrive_needs"] = []


def augment_cart(cart: dict, rows: list[MirrorDisplay]) -> dict:
    """Return a copy of `cart` with giftdrive_* fields on every line."""
    augmented = copy.deepcopy(cart)
    by_key: dict[LineKey, list[MirrorDisplay]] = {}
    for row in rows:
        by_key.setdefault(row.key, []).append(row)

    for store, line in iter_cart_lines(augmented):
        key = line_key(store, line)
        matches = by_key.get(key) if key else None
        if matches:
            _apply_local(line, matches)
        else:
            _apply_fallback(store, line)
    return augmented
