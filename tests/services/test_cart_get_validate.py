"""Get Cart, Validate Checkout & Buyer Identity.

Invariants:
    - "No cart" is 200 with a null body
    - A gone or empty remote cart abandons the local cart
    - Validation answers 400 with the issues when the lines of a need outgrew it
    - Shipping always goes to the recipient organization
"""

from sqlalchemy import select

from app.core.errors import RyeAPIError
from app.models import Cart, CartContent
from tests.services.fake_rye import ACCOUNT, coat_body, crayon_body, record_order


async def test_no_cart_is_null(client, seed):
    res = await client.get("/api/v1/cart", headers=ACCOUNT)
    assert res.status_code == 200
    assert res.json() is None


async def test_cart_lines_carry_need_details(client, seed):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1, need="child"), headers=ACCOUNT)
    await client.post("/api/v1/cart/add", json=crayon_body(seed, 2), headers=ACCOUNT)

    res = await client.get("/api/v1/cart", headers=ACCOUNT)

    assert res.status_code == 200
    stores = {store["store"]: store for store in res.json()["stores"]}
    crayon_line = stores["amazon"]["cartLines"][0]
    assert crayon_line["giftdrive_base_product_name"] == "Crayons"
    assert crayon_line["giftdrive_display_price"] == 4.99
    coat_line = next(s for name, s in stores.items() if name != "amazon")["cartLines"][0]
    assert coat_line["quantity"] == 2
    refs = sorted(need["ref_type"] for need in coat_line["giftdrive_needs"])
    assert refs == ["child_item", "drive_item"]


async def test_other_account_does_not_see_cart(client, seed):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    res = await client.get("/api/v1/cart", headers={"X-Account-Id": "acct-2"})

    assert res.json() is None


async def test_expired_remote_cart_is_abandoned(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    cart = (await fetch(select(Cart)))[0]
    fake_rye.expired.add(cart.rye_cart_id)

    res = await client.get("/api/v1/cart", headers=ACCOUNT)

    assert res.json() is None
    assert (await fetch(select(Cart)))[0].status == "abandoned"


async def test_empty_remote_cart_is_abandoned(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    cart = (await fetch(select(Cart)))[0]
    fake_rye.carts[cart.rye_cart_id].clear()

    res = await client.get("/api/v1/cart", headers=ACCOUNT)

    assert res.json() is None
    assert (await fetch(select(Cart)))[0].status == "abandoned"


async def test_remote_outage_is_not_treated_as_gone(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    fake_rye.failures["get_cart"] = RyeAPIError("upstream down", "RYE_HTTP_503", 503)

    res = await client.get("/api/v1/cart", headers=ACCOUNT)

    assert res.status_code == 503
    assert (await fetch(select(Cart)))[0].status == "active"


async def test_validate_checkout_passes(client, seed):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)

    res = await client.post("/api/v1/cart/validate-checkout", headers=ACCOUNT)

    assert res.status_code == 200
    assert res.json() == {"is_valid": True, "issues": []}


async def test_validate_checkout_reports_outgrown_lines(client, seed, test_db):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)
    await record_order(test_db, seed, quantity=2)

    res = await client.post("/api/v1/cart/validate-checkout", headers=ACCOUNT)

    assert res.status_code == 400
    body = res.json()
    assert body["is_valid"] is False
    [issue] = body["issues"]
    assert issue["item_name"] == "Rain Coat"
    assert issue["requested"] == 2
    assert issue["available"] == 1


async def test_validate_checkout_sums_lines_of_one_need(client, seed, test_db, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)
    cart = (await fetch(select(Cart)))[0]
    test_db.add(CartContent(
        cart_id=cart.id, item_id=seed.coat.id, drive_id=seed.drive.id, quantity=2,
        source_drive_item_id=seed.coat_need.id, marketplace="SHOPIFY", rye_item_id="v-coat-blue",
    ))
    await test_db.commit()

    res = await client.post("/api/v1/cart/validate-checkout", headers=ACCOUNT)

    assert res.status_code == 400
    [issue] = res.json()["issues"]
    assert issue["need_ref"] == f"drive_item:{seed.coat_need.id}"
    assert issue["requested"] == 4
    assert issue["available"] == 3


async def test_validate_checkout_reports_deactivated_need(client, seed, test_db):
    await client.post("/api/v1/cart/add", json=crayon_body(seed, 1), headers=ACCOUNT)
    seed.crayon_need.is_active = False
    await test_db.commit()

    res = await client.post("/api/v1/cart/validate-checkout", headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["issues"][0]["available"] == 0


async def test_validate_without_cart_is_404(client, seed):
    res = await client.post("/api/v1/cart/validate-checkout", headers=ACCOUNT)
    assert res.status_code == 404


async def test_buyer_identity_ships_to_organization(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    res = await client.post("/api/v1/cart/buyer-identity", json={}, headers=ACCOUNT)

    assert res.status_code == 200
    identity = fake_rye.buyer_identities[(await fetch(select(Cart)))[0].rye_cart_id]
    assert identity["phone"] == "+12175550100"
    assert identity["address1"] == "1 Main St"
    assert identity["firstName"] == "Hope Shelter"
    assert identity["email"] == f"receipt+org{seed.org.id}@giftdrive.org"


async def test_buyer_identity_uses_donor_name(client, seed, fake_rye, fetch):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)

    await client.post(
        "/api/v1/cart/buyer-identity",
        json={"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"},
        headers=ACCOUNT,
    )

    identity = fake_rye.buyer_identities[(await fetch(select(Cart)))[0].rye_cart_id]
    assert (identity["firstName"], identity["lastName"]) == ("Ada", "Lovelace")
    assert identity["city"] == "Springfield"


async def test_buyer_identity_rejects_bad_org_phone(client, seed, fake_rye, test_db):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    seed.org.phone = "555-0100"
    await test_db.commit()

    res = await client.post("/api/v1/cart/buyer-identity", json={}, headers=ACCOUNT)

    assert res.status_code == 400
    assert "update_buyer_identity" not in fake_rye.calls


async def test_buyer_identity_remote_rejection_keeps_code(client, seed, fake_rye):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 1), headers=ACCOUNT)
    fake_rye.failures["update_buyer_identity"] = RyeAPIError(
        "bad address", "BUYER_IDENTITY_INVALID_ADDRESS", 400,
    )

    res = await client.post("/api/v1/cart/buyer-identity", json={}, headers=ACCOUNT)

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "BUYER_IDENTITY_INVALID_ADDRESS"
