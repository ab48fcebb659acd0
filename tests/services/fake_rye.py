"""Fake Rye + seed helpers — in-memory stand-in for the Rye cart API in route tests.

Carts are {LineKey: quantity}; every method returns the same GraphQL-shaped
dicts the real client returns, so cart augmentation and submission parsing
run unchanged against it.
"""

from decimal import Decimal

from app.core.domain_types import LineKey, Marketplace
from app.core.errors import RyeAPIError
from app.models import Cart, Order, OrderItem

ACCOUNT = {"X-Account-Id": "acct-1"}
OTHER_ACCOUNT = {"X-Account-Id": "acct-2"}
SHOPIFY_STORE = "toys.myshopify.com"


def _parse_items(items: dict) -> list[tuple[LineKey, int]]:
    parsed = []
    for entry in items.get("shopifyCartItemsInput", []):
        parsed.append((LineKey(Marketplace.SHOPIFY, entry["variantId"]), entry["quantity"]))
    for entry in items.get("amazonCartItemsInput", []):
        parsed.append((LineKey(Marketplace.AMAZON, entry["productId"]), entry["quantity"]))
    for entry in items.get("shopifyProducts", []):
        parsed.append((LineKey(Marketplace.SHOPIFY, entry["variantId"]), 0))
    for entry in items.get("amazonProducts", []):
        parsed.append((LineKey(Marketplace.AMAZON, entry["productId"]), 0))
    return parsed


class FakeRyeClient:
    """In-memory Rye: carts are {LineKey: quantity}."""

    def __init__(self):
        self.carts: dict[str, dict[LineKey, int]] = {}
        self.expired: set[str] = set()
        self.failures: dict[str, RyeAPIError] = {}
        self.buyer_identities: dict[str, dict] = {}
        self.submit_results: dict[str, dict] = {}
        self.orders: dict[str, dict] = {}
        self.calls: list[str] = []
        self._next_id = 0

    # ─── helpers for tests ───

    def quantity(self, cart_id: str, marketplace: Marketplace, rye_item_id: str) -> int:
        return self.carts.get(cart_id, {}).get(LineKey(marketplace, rye_item_id), 0)

    def _check(self, operation: str, cart_id: str | None = None) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures.pop(operation)
        if cart_id is not None and cart_id in self.expired:
            raise RyeAPIError("Cart expired", "CART_EXPIRED_ERROR", 410)

    def _render(self, cart_id: str) -> dict:
        lines = self.carts[cart_id]
        amazon = [
            {"quantity": q, "product": {"id": k.rye_item_id, "title": f"Amazon {k.rye_item_id}", "images": []}}
            for k, q in lines.items() if k.marketplace is Marketplace.AMAZON
        ]
        shopify = [
            {
                "quantity": q,
                "variant": {"id": k.rye_item_id, "title": f"Variant {k.rye_item_id}"},
                "product": {"id": f"p-{k.rye_item_id}", "title": f"Product {k.rye_item_id}"},
            }
            for k, q in lines.items() if k.marketplace is Marketplace.SHOPIFY
        ]
        stores = []
        if amazon:
            stores.append({"__typename": "AmazonStore", "store": "amazon", "cartLines": amazon, "errors": []})
        if shopify:
            stores.append({"__typename": "ShopifyStore", "store": SHOPIFY_STORE, "cartLines": shopify, "errors": []})
        total = sum(lines.values()) * 1000
        return {
            "id": cart_id,
            "cost": {"total": {"value": total, "currency": "usd", "displayValue": f"${total / 100:.2f}"}},
            "stores": stores,
            "buyerIdentity": self.buyer_identities.get(cart_id),
        }

    # ─── client surface ───

    async def get_cart(self, cart_id, *, shopper_ip=None, context=None):
        self._check("get_cart", cart_id)
        if cart_id not in self.carts:
            return None
        return self._render(cart_id)

    async def create_cart(self, items, *, shopper_ip=None, context=None):
        self._check("create_cart")
        self._next_id += 1
        cart_id = f"rye-cart-{self._next_id}"
        self.carts[cart_id] = {}
        for key, quantity in _parse_items(items):
            self.carts[cart_id][key] = self.carts[cart_id].get(key, 0) + quantity
        return self._render(cart_id)

    async def add_cart_items(self, cart_id, items, *, shopper_ip=None, context=None):
        self._check("add_cart_items", cart_id)
        for key, quantity in _parse_items(items):
            self.carts[cart_id][key] = self.carts[cart_id].get(key, 0) + quantity
        return self._render(cart_id)

    async def update_cart_items(self, cart_id, items, *, shopper_ip=None, context=None):
        self._check("update_cart_items", cart_id)
        for key, quantity in _parse_items(items):
            self.carts[cart_id][key] = quantity
        return self._render(cart_id)

    async def delete_cart_items(self, cart_id, items, *, shopper_ip=None, context=None):
        self._check("delete_cart_items", cart_id)
        for key, _ in _parse_items(items):
            self.carts[cart_id].pop(key, None)
        return self._render(cart_id)

    async def update_buyer_identity(self, cart_id, buyer_identity, *, shopper_ip=None, context=None):
        self._check("update_buyer_identity", cart_id)
        self.buyer_identities[cart_id] = buyer_identity
        return self._render(cart_id)

    async def submit_cart(self, cart_id, payment_token, *, shopper_ip=None, context=None):
        self._check("submit_cart", cart_id)
        if cart_id in self.submit_results:
            return self.submit_results[cart_id]
        rendered = self._render(cart_id)
        return {
            "id": cart_id,
            "stores": [
                {
                    "status": "COMPLETED",
                    "orderId": f"order-{store['store']}",
                    "store": {"store": store["store"]},
                    "errors": [],
                }
                for store in rendered["stores"]
            ],
        }

    async def get_order(self, order_id, *, shopper_ip=None, context=None):
        self._check("get_order")
        return self.orders.get(order_id)


def coat_body(seed, quantity=1, need="drive") -> dict:
    ref_type, ref_id = (
        ("drive_item", seed.coat_need.id) if need == "drive"
        else ("child_item", seed.child_coat_need.id)
    )
    return {
        "rye_item_id": "v-coat",
        "marketplace": "shopify",
        "quantity": quantity,
        "need_ref_type": ref_type,
        "need_ref_id": str(ref_id),
    }


def crayon_body(seed, quantity=1) -> dict:
    return {
        "rye_item_id": "B0CRAYON",
        "marketplace": "AMAZON",
        "quantity": quantity,
        "need_ref_type": "drive_item",
        "need_ref_id": str(seed.crayon_need.id),
    }


async def record_order(test_db, seed, need="drive", quantity=1, status="processing", rye_order_id="prior-1"):
    """Insert a prior order purchasing `quantity` of the coat need."""
    cart = Cart(account_id="acct-9", rye_cart_id=f"cart-{rye_order_id}", status="submitted")
    test_db.add(cart)
    await test_db.flush()
    order = Order(
        account_id="acct-9", cart_id=cart.id, rye_cart_id=cart.rye_cart_id,
        primary_rye_order_id=rye_order_id, rye_order_ids=[rye_order_id],
        status=status, total_amount=Decimal("25.00"), currency="USD",
        items=[OrderItem(
            item_id=seed.coat.id, drive_id=seed.drive.id, quantity=quantity,
            price=Decimal("25.00"),
            source_drive_item_id=seed.coat_need.id if need == "drive" else None,
            source_child_item_id=seed.child_coat_need.id if need == "child" else None,
            child_id=seed.child.id if need == "child" else None,
        )],
    )
    test_db.add(order)
    await test_db.commit()
    return order
