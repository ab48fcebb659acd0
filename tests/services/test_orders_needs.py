"""Order history, order details, need availability and drive progress."""

from sqlalchemy import select

from app.models import Cart
from tests.services.fake_rye import ACCOUNT, OTHER_ACCOUNT, coat_body, record_order


async def _finalized(client, seed, fetch, order_ids=("ord-1",)):
    await client.post("/api/v1/cart/add", json=coat_body(seed, 2), headers=ACCOUNT)
    cart = (await fetch(select(Cart)))[0]
    res = await client.post(
        "/api/v1/orders/finalize",
        json={
            "rye_cart_id": cart.rye_cart_id, "rye_order_ids": list(order_ids),
            "amount_in_cents": 5000, "currency": "USD",
        },
        headers=ACCOUNT,
    )
    assert res.status_code == 201
    return res.json()


# ─── Orders ───────────────────────────────────────────────────

async def test_guest_has_no_order_history(client, seed):
    res = await client.get("/api/v1/orders")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "NOT_AUTHENTICATED"


async def test_order_history_lists_own_orders(client, seed, fetch):
    finalized = await _finalized(client, seed, fetch)

    res = await client.get("/api/v1/orders", headers=ACCOUNT)

    [order] = res.json()["orders"]
    assert order["id"] == finalized["order_id"]
    assert order["items"][0]["item_name"] == "Rain Coat"
    assert order["items"][0]["quantity"] == 2

    other = await client.get("/api/v1/orders", headers=OTHER_ACCOUNT)
    assert other.json() == {"orders": []}


async def test_order_details_fetches_remote_order(client, seed, fake_rye, fetch):
    await _finalized(client, seed, fetch, ("ord-1", "ord-2"))
    fake_rye.orders["ord-2"] = {"id": "ord-2", "status": "PLACED"}

    res = await client.post("/api/v1/orders/details", json={"rye_order_id": "ord-2"}, headers=ACCOUNT)

    assert res.status_code == 200
    assert res.json()["rye_order"] == {"id": "ord-2", "status": "PLACED"}


async def test_order_details_of_someone_else_is_404(client, seed, fake_rye, fetch):
    await _finalized(client, seed, fetch)
    fake_rye.orders["ord-1"] = {"id": "ord-1"}

    res = await client.post("/api/v1/orders/details", json={"rye_order_id": "ord-1"}, headers=OTHER_ACCOUNT)

    assert res.status_code == 404
    assert "get_order" not in fake_rye.calls


async def test_order_details_missing_remotely_is_404(client, seed, fetch):
    await _finalized(client, seed, fetch)

    res = await client.post("/api/v1/orders/details", json={"rye_order_id": "ord-1"}, headers=ACCOUNT)

    assert res.status_code == 404


# ─── Needs ────────────────────────────────────────────────────

async def test_need_availability(client, seed, test_db):
    await record_order(test_db, seed, quantity=1)

    res = await client.get(f"/api/v1/needs/drive_item/{seed.coat_need.id}")

    assert res.status_code == 200
    body = res.json()
    assert body["item_name"] == "Rain Coat"
    assert (body["needed"], body["purchased"], body["available"]) == (3, 1, 2)


async def test_need_availability_counts_per_need(client, seed, test_db):
    await record_order(test_db, seed, need="child", quantity=2)

    drive = await client.get(f"/api/v1/needs/drive_item/{seed.coat_need.id}")
    child = await client.get(f"/api/v1/needs/child_item/{seed.child_coat_need.id}")

    assert drive.json()["available"] == 3
    assert child.json()["available"] == 0


async def test_unknown_need_is_404(client, seed):
    res = await client.get(f"/api/v1/needs/drive_item/{seed.drive.id}")
    assert res.status_code == 404


async def test_drive_aggregate(client, seed, test_db):
    await record_order(test_db, seed, quantity=2)
    await record_order(test_db, seed, quantity=1, status="refunded", rye_order_id="prior-2")

    res = await client.get(f"/api/v1/drives/{seed.drive.id}/aggregate")

    assert res.status_code == 200
    assert res.json() == {
        "drive_id": str(seed.drive.id),
        "name": "Winter Drive",
        "total_needed": 10,
        "total_purchased": 2,
        "total_donors": 1,
    }


async def test_unknown_drive_is_404(client, seed):
    res = await client.get(f"/api/v1/drives/{seed.coat_need.id}/aggregate")
    assert res.status_code == 404
