"""Marketplace Shapes — translate between local line identities and Rye cart payloads.

Invariants:
    - Shopify lines are identified by variant id, Amazon lines by product id
    - A store whose `store` field is "amazon" is the Amazon store; every other
      store is a Shopify shop
    - Builders return fresh dicts (callers may mutate them)

Design Decisions:
    - Pure functions over the raw GraphQL dict shape: the remote schema stays
      opaque, only the handful of fields the ledger needs are read here
"""

from collections.abc import Iterator

from app.core.domain_types import LineKey, Marketplace


def cart_items_input(marketplace: Marketplace, rye_item_id: str, quantity: int) -> dict:
    """Items input for createCart / addCartItems / updateCartItems."""
    if marketplace is Marketplace.SHOPIFY:
        return {"shopifyCartItemsInput": [{"variantId": rye_item_id, "quantity": quantity}]}
    return {"amazonCartItemsInput": [{"productId": rye_item_id, "quantity": quantity}]}


def delete_items_input(marketplace: Marketplace, rye_item_id: str) -> dict:
    """Items input for deleteCartItems."""
    if marketplace is Marketplace.SHOPIFY:
        return {"shopifyProducts": [{"variantId": rye_item_id}]}
    return {"amazonProducts": [{"productId": rye_item_id}]}


def store_name(store: dict) -> str | None:
    """Store identifier from either a cart store or a submit result entry."""
    name = store.get("store")
    if isinstance(name, dict):
        name = name.get("store")
    return name


def store_marketplace(store: dict) -> Marketplace:
    if store.get("__typename") == "AmazonStore" or store_name(store) == "amazon":
        return Marketplace.AMAZON
    return Marketplace.SHOPIFY


def line_rye_item_id(store: dict, line: dict) -> str | None:
    if store_marketplace(store) is Marketplace.SHOPIFY:
        return (line.get("variant") or {}).get("id")
    return (line.get("product") or {}).get("id")


def line_key(store: dict, line: dict) -> LineKey | None:
    rye_item_id = line_rye_item_id(store, line)
    if not rye_item_id:
        return None
    return LineKey(store_marketplace(store), rye_item_id)


def iter_cart_lines(cart: dict | None) -> Iterator[tuple[dict, dict]]:
    """Yield (store, line) for every line of every store."""
    if not cart:
        return
    for store in cart.get("stores") or []:
        for line in store.get("cartLines") or []:
            yield store, line


def is_cart_empty(cart: dict | None) -> bool:
    return next(iter_cart_lines(cart), None) is None
