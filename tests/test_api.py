async def _create_item(client, name, on_hand=0):
    resp = await client.post("/items/", json={"name": name, "on_hand": on_hand})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["id"]


async def _create_order(client, *lines):
    resp = await client.post(
        "/sales-orders/",
        json={"items": [{"description": d, "ordered_quantity": q} for d, q in lines]},
        headers={"X-Actor": "alice"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


async def test_health(client):
    resp = await client.get("/")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_request_id_is_echoed_or_generated(client):
    given = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert given.headers["X-Request-ID"] == "abc123"

    generated = await client.get("/")
    assert len(generated.headers["X-Request-ID"]) == 12


async def test_order_to_receipt_flow(client):
    bolt = await _create_item(client, "Bolt", on_hand=5)
    so = await _create_order(client, ("Bolt", 8))
    assert so["created_by"] == "alice"

    check = await client.get(f"/sales-orders/{so['id']}/stock-check")
    assert check.json()["data"][0]["shortfall"] == 3

    confirm = await client.post(f"/sales-orders/{so['id']}/confirm")
    body = confirm.json()
    assert confirm.status_code == 200
    assert body["success"] is True
    assert body["data"]["total_backordered"] == 3

    backlog = (await client.get("/backlog/")).json()["data"]
    assert [b["backordered_quantity"] for b in backlog] == [3]

    po = await client.post(
        "/purchase-orders/from-backlog",
        json={"items": [{"sales_order_item_id": backlog[0]["id"]}]},
    )
    po_id = po.json()["data"]["id"]

    receipt = await client.post(f"/purchase-orders/{po_id}/receive")
    assert receipt.status_code == 200
    assert receipt.json()["data"]["cleared_backorders"] == 1

    item = (await client.get(f"/items/{bolt}")).json()["data"]
    assert item["on_hand"] == 0

    again = await client.post(f"/purchase-orders/{po_id}/receive")
    assert again.status_code == 409
    assert again.json()["error_code"] == "INVALID_TRANSITION"

    movements = (await client.get(f"/items/{bolt}/movements")).json()["data"]
    assert [m["movement_type"] for m in movements["items"]] == [
        "ADJUSTMENT",
        "RESERVE",
        "RECEIPT",
        "RESERVE",
    ]


async def test_delivery_quantity_violation_is_reported(client):
    await _create_item(client, "Bolt", on_hand=8)
    so = await _create_order(client, ("Bolt", 8))
    line_id = so["items"][0]["id"]
    await client.post(f"/sales-orders/{so['id']}/confirm")

    first = await client.post(
        "/delivery-orders/",
        json={"sales_order_id": so["id"], "items": [{"sales_order_item_id": line_id, "quantity": 5}]},
    )
    assert first.status_code == 200

    lines = (await client.get(f"/sales-orders/{so['id']}/deliverable-lines")).json()["data"]
    assert lines[0]["remaining_quantity"] == 3

    second = await client.post(
        "/delivery-orders/",
        json={"sales_order_id": so["id"], "items": [{"sales_order_item_id": line_id, "quantity": 4}]},
    )
    assert second.status_code == 422
    assert second.json()["error_code"] == "QUANTITY_VIOLATION"
    assert second.json()["details"]["remaining"] == 3


async def test_revert_then_cancel(client):
    bolt = await _create_item(client, "Bolt", on_hand=5)
    so = await _create_order(client, ("Bolt", 8))
    await client.post(f"/sales-orders/{so['id']}/confirm")

    blocked = await client.post(f"/sales-orders/{so['id']}/cancel")
    assert blocked.status_code == 409

    revert = await client.post(f"/sales-orders/{so['id']}/revert")
    assert revert.json()["data"]["restored_quantity"] == 5

    cancel = await client.post(f"/sales-orders/{so['id']}/cancel")
    assert cancel.json()["data"]["status"] == "cancelled"

    item = (await client.get(f"/items/{bolt}")).json()["data"]
    assert item["on_hand"] == 5


async def test_not_found_and_validation_errors(client):
    missing = await client.get("/sales-orders/999")
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "SALES_ORDER_NOT_FOUND"

    invalid = await client.post("/sales-orders/", json={"items": [{"description": "x", "ordered_quantity": 0}]})
    assert invalid.status_code == 422
    assert invalid.json()["error_code"] == "VALIDATION_ERROR"


async def test_activity_log_records_actor(client):
    await client.post("/items/", json={"name": "Bolt"}, headers={"X-Actor": "bob"})

    resp = await client.get("/activities/", params={"actor": "bob", "code": "create_item"})

    data = resp.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["message"] == "bob created goods item Bolt"


async def test_activity_log_filters_by_document(client):
    await _create_item(client, "Bolt", on_hand=5)
    so = await _create_order(client, ("Bolt", 2))
    other = await _create_order(client, ("Bolt", 1))

    await client.post(f"/sales-orders/{so['id']}/confirm", headers={"X-Actor": "carol"})

    resp = await client.get(
        "/activities/",
        params={"reference": so["order_number"], "sort_order": "asc"},
    )

    data = resp.json()["data"]
    assert [a["code"] for a in data["items"]] == ["CREATE_SALES_ORDER", "CONFIRM_SALES_ORDER"]
    assert data["items"][1]["actor"] == "carol"
    assert all(a["reference"] != other["order_number"] for a in data["items"])
