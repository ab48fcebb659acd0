"""Marketplace Shapes — tests for Rye payload builders and cart line readers."""

from app.core.domain_types import LineKey, Marketplace
from app.core.marketplace import (
    cart_items_input, delete_items_input, is_cart_empty, iter_cart_lines,
    line_key, store_marketplace, store_name,
)

AMAZON_STORE = {
    "__typename": "AmazonStore",
    "store": "amazon",
    "cartLines": [{"quantity": 2, "product": {"id": "B0AMZ"}}],
}
SHOPIFY_STORE = {
    "__typename": "ShopifyStore",
    "store": "toys.myshopify.com",
    "cartLines": [{"quantity": 1, "variant": {"id": "4455"}, "product": {"id": "99"}}],
}


def test_shopify_items_use_variant_id():
    assert cart_items_input(Marketplace.SHOPIFY, "4455", 3) == {
        "shopifyCartItemsInput": [{"variantId": "4455", "quantity": 3}],
    }


def test_amazon_items_use_product_id():
    assert cart_items_input(Marketplace.AMAZON, "B0AMZ", 1) == {
        "amazonCartItemsInput": [{"productId": "B0AMZ", "quantity": 1}],
    }


def test_delete_inputs_per_marketplace():
    assert delete_items_input(Marketplace.SHOPIFY, "1") == {"shopifyProducts": [{"variantId": "1"}]}
    assert delete_items_input(Marketplace.AMAZON, "A") == {"amazonProducts": [{"productId": "A"}]}


def test_store_name_reads_nested_submit_shape():
    assert store_name({"store": {"store": "amazon"}}) == "amazon"
    assert store_name(SHOPIFY_STORE) == "toys.myshopify.com"


def test_store_marketplace_by_typename_or_name():
    assert store_marketplace(AMAZON_STORE) is Marketplace.AMAZON
    assert store_marketplace({"store": {"store": "amazon"}}) is Marketplace.AMAZON
    assert store_marketplace(SHOPIFY_STORE) is Marketplace.SHOPIFY


def test_line_key_per_marketplace():
    assert line_key(AMAZON_STORE, AMAZON_STORE["cartLines"][0]) == LineKey(Marketplace.AMAZON, "B0AMZ")
    assert line_key(SHOPIFY_STORE, SHOPIFY_STORE["cartLines"][0]) == LineKey(Marketplace.SHOPIFY, "4455")


def test_line_key_none_without_id():
    assert line_key(SHOPIFY_STORE, {"quantity": 1}) is None


def test_iter_cart_lines_and_emptiness():
    cart = {"stores": [AMAZON_STORE, SHOPIFY_STORE]}
    assert len(list(iter_cart_lines(cart))) == 2
    assert not is_cart_empty(cart)
    assert is_cart_empty({"stores": [{"store": "amazon", "cartLines": []}]})
    assert is_cart_empty(None)
