"""Add To Cart — reservation against needs, cart creation and recovery.

Invariants:
    - First add creates the remote and local cart (201); later adds answer 200
    - in-cart + requested may never exceed needed - purchased
    - Voided orders do not count as purchased
    - An expired remote cart is abandoned and replaced
    - A remote failure leaves the mirror untouched
"""

from sqlalchemy import select

from app.core.domain_types import Marketplace
from app.core.errors import RyeAPIError
from app.models import Cart, CartContent
from tests.services.fake_rye import ACCOUNT, coat_body, crayon_body, record_order


async def test_first_add_creates_cart(client, seed, fake_rye, fetch):
    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)

    assert res.status_code == 201
    body = res.json()
    line = body["stores"][0]["cartLines"][0]
    assert line["giftdrive_variant_details_text"] == "Red coat, size L"
    assert line["giftdrive_source_drive_item_id"] == str(seed.coat_need.id)

    carts = await fetch(select(Cart))
    assert len(carts) == 1
    assert carts[0].account_id == "acct-1"
    assert carts[0].status == "active"
    assert fake_rye.quantity(carts[0].rye_cart_id, Marketplace.SHOPIFY, "v-coat") == 2

    rows = await fetch(select(CartContent))
    assert [(r.quantity, r.rye_item_id, r.marketplace) for r in rows] == [(2, "v-coat", "SHOPIFY")]
    assert rows[0].drive_id == seed.drive.id


async def test_second_add_reuses_cart_and_accumulates(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    assert res.status_code == 200
    rows = await fetch(select(CartContent))
    assert len(rows) == 1
    assert rows[0].quantity == 2
    cart = (await fetch(select(Cart)))[0]
    assert fake_rye.quantity(cart.rye_cart_id, Marketplace.SHOPIFY, "v-coat") == 2


async def test_add_beyond_need_rejected(client, seed, fake_rye):
    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 4), headers=ACCOUNT)

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INSUFFICIENT_AVAILABILITY"
    assert error["details"]["available"] == 3
    assert fake_rye.calls == []


async def test_quantity_already_in_cart_counts(client, seed, fake_rye):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)
    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["error"]["details"]["requested"] == 4
    assert fake_rye.calls == ["create_cart"]


async def test_purchased_quantity_reduces_availability(client, seed, test_db):
    await record_order(test_db, seed, quantity=2)

    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["error"]["details"]["purchased"] == 2


async def test_cancelled_orders_do_not_count(client, seed, test_db):
    await record_order(test_db, seed, quantity=3, status="cancelled")

    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 3), headers=ACCOUNT)

    assert res.status_code == 201


async def test_missing_need_returns_404(client, seed):
    body = coat_body(seed)
    body["need_ref_id"] = "00000000-0000-0000-0000-000000000000"
    res = await client.post("/api/v1/cart/add", json=body, headers=ACCOUNT)
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NEED_NOT_FOUND"


async def test_inactive_need_returns_404(client, seed, test_db):
    seed.crayon_need.is_active = False
    await test_db.commit()

    res = await client.post("/api/v1/cart/add", json=crayon_body(seed), headers=ACCOUNT)
    assert res.status_code == 404


async def test_invalid_marketplace_is_400(client, seed):
    body = coat_body(seed)
    body["marketplace"] = "ebay"
    res = await client.post("/api/v1/cart/add", json=body, headers=ACCOUNT)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_zero_quantity_is_400(client, seed):
    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 0), headers=ACCOUNT)
    assert res.status_code == 400


async def test_guest_add_sets_cookie_and_owns_cart(client, seed, fetch):
    res = await client.post("/api/v1/cart/add", json=crayon_body(seed, 2))

    assert res.status_code == 201
    token = res.cookies.get("guestCartToken")
    assert token
    assert "httponly" in res.headers["set-cookie"].lower()
    cart = (await fetch(select(Cart)))[0]
    assert cart.account_id is None
    assert cart.guest_session_token == token

    got = await client.get("/api/v1/cart", headers={"Cookie": f"guestCartToken={token}"})
    assert got.status_code == 200
    assert got.json()["id"] == cart.rye_cart_id


async def test_expired_remote_cart_is_replaced(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    old = (await fetch(select(Cart)))[0]
    fake_rye.expired.add(old.rye_cart_id)

    res = await client.post("/api/v1/cart/add", json=crayon_body(seed, 1), headers=ACCOUNT)

    assert res.status_code == 201
    carts = {c.rye_cart_id: c for c in await fetch(select(Cart))}
    assert carts[old.rye_cart_id].status == "abandoned"
    new = next(c for c in carts.values() if c.rye_cart_id != old.rye_cart_id)
    assert new.status == "active"
    rows = await fetch(select(CartContent).where(CartContent.cart_id == new.id))
    assert [r.rye_item_id for r in rows] == ["B0CRAYON"]


async def test_remote_failure_leaves_mirror_unchanged(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    fake_rye.failures["add_cart_items"] = RyeAPIError("bad item", "INVALID_ITEM", 400)

    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_ITEM"
    rows = await fetch(select(CartContent))
    assert rows[0].quantity == 1


async def test_need_spread_over_variants_counts_every_line(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)
    blue = {**coat_body(seed, 1), "rye_item_id": "v-coat-blue"}
    assert (await client.post("/api/v1/cart/add", json=blue, headers=ACCOUNT)).status_code == 200

    res = await client.post("/api/v1/cart/add", json=blue, headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["error"]["details"]["requested"] == 4
    rows = await fetch(select(CartContent))
    assert sorted((r.rye_item_id, r.quantity) for r in rows) == [("v-coat", 2), ("v-coat-blue", 1)]
    cart = (await fetch(select(Cart)))[0]
    assert fake_rye.quantity(cart.rye_cart_id, Marketplace.SHOPIFY, "v-coat-blue") == 1


async def test_expired_cart_quantity_does_not_block_readd(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 3), headers=ACCOUNT)
    old = (await fetch(select(Cart)))[0]
    fake_rye.expired.add(old.rye_cart_id)

    res = await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    assert res.status_code == 201
    carts = {c.rye_cart_id: c for c in await fetch(select(Cart))}
    assert carts[old.rye_cart_id].status == "abandoned"
    new = next(c for c in carts.values() if c.rye_cart_id != old.rye_cart_id)
    rows = await fetch(select(CartContent).where(CartContent.cart_id == new.id))
    assert [(r.rye_item_id, r.quantity) for r in rows] == [("v-coat", 1)]
