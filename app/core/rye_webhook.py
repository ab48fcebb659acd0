"""Rye Webhook Rules — signature verification and product event parsing.

Invariants:
    - Signature = base64(HMAC-SHA256(secret, raw_body)), compared in constant time
    - Prices arrive in cents and are stored in major units
    - An unavailable Amazon product has inventory 0
    - Events missing id, marketplace, price or availability are ignored (None)
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from decimal import Decimal

from app.core.domain_types import Marketplace
from app.core.money import cents_to_amount

SIGNATURE_HEADER = "Rye-Hmac-Signature-V1"


def compute_signature(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode(), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_signature(secret: str, raw_body: bytes, signature: str) -> bool:
    return hmac.compare_digest(compute_signature(secret, raw_body), signature)


@dataclass(frozen=True)
class ProductUpdate:
    rye_item_id: str
    marketplace: Marketplace
    price: Decimal
    is_available: bool
    inventory: int | None


def _marketplace(payload: dict) -> Marketplace | None:
    try:
        return Marketplace.parse(payload.get("marketplace") or "")
    except ValueError:
        return None


def parse_product_update(payload: dict) -> ProductUpdate | None:
    product = (payload.get("data") or {}).get("product") or {}
    marketplace = _marketplace(payload)
    rye_item_id = product.get("id")
    price = (product.get("price") or {}).get("value")
    if price is None:
        price = (product.get("priceV2") or {}).get("value")
    is_available = product.get("isAvailable")
    if not rye_item_id or marketplace is None or price is None or is_available is None:
        return None

    inventory = product.get("quantityAvailable")
    if marketplace is Marketplace.AMAZON and not is_available:
        inventory = 0
    return ProductUpdate(
        rye_item_id=rye_item_id,
        marketplace=marketplace,
        price=cents_to_amount(price),
        is_available=bool(is_available),
        inventory=inventory,
    )


def parse_product_deleted(payload: dict) -> tuple[str, Marketplace] | None:
    product = (payload.get("data") or {}).get("product") or {}
    marketplace = _marketplace(payload)
    rye_item_id = product.get("id")
    if not rye_item_id or marketplace is None:
        return None
    return rye_item_id, marketplace
