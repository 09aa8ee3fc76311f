from datetime import date
from decimal import Decimal

from helpers import auth_headers, lock_lot, make_lot, raw_lot_payload


def _raw_body(catalog, quantity="100", **overrides):
    body = {
        "inventory_type": "raw_material",
        "name": "Teak planks",
        "tag_ids": [catalog["teak"]],
        "quantity_received": quantity,
        "unit_id": catalog["pcs"],
    }
    body.update(overrides)
    return body


async def test_health_check(client):
    res = await client.get("/")
    assert res.status_code == 200, res.text
    assert res.json()["status"] == "ok"


async def test_requests_without_token_are_rejected(client, catalog):
    res = await client.get("/lots/")
    assert res.status_code == 401, res.text
    assert res.json()["success"] is False
    assert res.json()["error_code"] == "UNAUTHORIZED"


async def test_viewer_cannot_write(client, users, catalog):
    res = await client.post(
        "/lots/",
        json=_raw_body(catalog),
        headers=auth_headers(users["viewer"]),
    )
    assert res.status_code == 403, res.text

    res = await client.get("/lots/", headers=auth_headers(users["viewer"]))
    assert res.status_code == 200, res.text


async def test_create_and_fetch_lot(client, users, catalog):
    headers = auth_headers(users["inventory"])

    res = await client.post("/lots/", json=_raw_body(catalog, "40"), headers=headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    lot = body["data"]
    assert lot["lot_code"] == "LOT-RM-000"
    assert Decimal(str(lot["quantity_available"])) == Decimal("40")
    assert lot["usable"] is True

    res = await client.get(f"/lots/{lot['id']}", headers=headers)
    assert res.status_code == 200, res.text
    assert res.json()["data"]["lot_code"] == "LOT-RM-000"


async def test_create_rejects_unknown_inventory_type(client, users, catalog):
    res = await client.post(
        "/lots/",
        json=_raw_body(catalog, inventory_type="furniture"),
        headers=auth_headers(users["inventory"]),
    )
    assert res.status_code == 422, res.text
    assert res.json()["error_code"] == "VALIDATION_ERROR"


async def test_fractional_quantity_on_whole_unit_is_400(client, users, catalog):
    res = await client.post(
        "/lots/",
        json=_raw_body(catalog, "2.5"),
        headers=auth_headers(users["inventory"]),
    )
    assert res.status_code == 400, res.text
    assert res.json()["error_code"] == "VALIDATION_ERROR"


async def test_patch_cannot_touch_quantities(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "10"))

    res = await client.patch(
        f"/lots/{lot.id}",
        json={"quantity_available": "50"},
        headers=auth_headers(users["inventory"]),
    )
    assert res.status_code == 422, res.text


async def test_locked_lot_reports_batches(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "3"))
    batch_id = await lock_lot(session_factory, lot.id, "B-100")
    headers = auth_headers(users["inventory"])

    res = await client.post(f"/lots/{lot.id}/archive", headers=headers)
    assert res.status_code == 409, res.text
    body = res.json()
    assert body["error_code"] == "LOT_LOCKED"
    assert body["details"]["batch_ids"] == [batch_id]

    res = await client.get(f"/lots/{lot.id}/lock", headers=headers)
    assert res.status_code == 200, res.text
    assert res.json()["data"]["locked"] is True


async def test_archive_above_threshold_is_400(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "6"))

    res = await client.post(f"/lots/{lot.id}/archive", headers=auth_headers(users["inventory"]))
    assert res.status_code == 400, res.text
    assert res.json()["error_code"] == "VALIDATION_ERROR"


async def test_movement_endpoints(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "10"))
    headers = auth_headers(users["inventory"])

    res = await client.post(
        f"/lots/{lot.id}/movements",
        json={"kind": "CONSUMPTION", "quantity": "4"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert Decimal(str(data["lot"]["quantity_available"])) == Decimal("6")
    assert data["movement"]["kind"] == "CONSUMPTION"

    res = await client.post(
        f"/lots/{lot.id}/movements",
        json={"kind": "WASTE", "quantity": "7"},
        headers=headers,
    )
    assert res.status_code == 409, res.text
    body = res.json()
    assert body["error_code"] == "INSUFFICIENT_QUANTITY"
    assert Decimal(body["details"]["available"]) == Decimal("6")

    res = await client.get(f"/lots/{lot.id}/movements", headers=headers)
    assert res.status_code == 200, res.text
    items = res.json()["data"]["items"]
    assert len(items) == 1
    assert Decimal(str(items[0]["running_balance"])) == Decimal("6")


async def test_delete_lot_endpoint(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "10"))
    headers = auth_headers(users["inventory"])

    res = await client.delete(f"/lots/{lot.id}", headers=headers)
    assert res.status_code == 200, res.text
    assert res.json()["data"] == {"lot_id": lot.id}

    res = await client.get(f"/lots/{lot.id}", headers=headers)
    assert res.status_code == 404, res.text


async def test_analytics_endpoints(client, users, catalog, session_factory):
    lot = await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "8"))
    headers = auth_headers(users["viewer"])

    res = await client.get(
        "/analytics/inventory/current",
        params={"inventory_type": "raw_material"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    teak = [r for r in res.json()["data"] if r["tag_id"] == catalog["teak"]]
    assert Decimal(str(teak[0]["current_balance"])) == Decimal("8")

    res = await client.get("/analytics/inventory/current", headers=headers)
    assert res.status_code == 400, res.text

    res = await client.get(
        "/analytics/inventory/low-stock",
        params={"inventory_type": "raw_material"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    assert [r["tag_id"] for r in res.json()["data"]] == [catalog["teak"]]

    res = await client.get(
        "/analytics/inventory/consumption",
        params={"inventory_type": "raw_material"},
        headers=headers,
    )
    assert res.status_code == 400, res.text

    this_month = date.today().strftime("%Y-%m")
    res = await client.get(
        "/analytics/inventory/consumption",
        params={"inventory_type": "raw_material", "month": this_month},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"] == []

    res = await client.get(
        "/analytics/inventory/metrics",
        params={"month": "bad"},
        headers=headers,
    )
    assert res.status_code == 400, res.text

    res = await client.get(
        "/analytics/inventory/metrics",
        params={"inventory_type": "raw_material"},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    assert res.json()["data"]["low_stock_count"] == 1
    assert lot.id


async def test_threshold_endpoints(client, users, catalog):
    res = await client.put(
        f"/analytics/inventory/thresholds/{catalog['teak']}",
        json={"threshold_quantity": "25"},
        headers=auth_headers(users["viewer"]),
    )
    assert res.status_code == 403, res.text

    res = await client.put(
        f"/analytics/inventory/thresholds/{catalog['teak']}",
        json={"threshold_quantity": "25"},
        headers=auth_headers(users["inventory"]),
    )
    assert res.status_code == 200, res.text
    assert Decimal(str(res.json()["data"]["threshold_quantity"])) == Decimal("25")

    res = await client.get(
        "/analytics/inventory/thresholds",
        headers=auth_headers(users["viewer"]),
    )
    assert res.status_code == 200, res.text
    assert len(res.json()["data"]) == 1


async def test_activities_are_admin_only(client, users, catalog, session_factory):
    await make_lot(session_factory, users["inventory"], raw_lot_payload(catalog, "10"))

    res = await client.get("/activities/", headers=auth_headers(users["inventory"]))
    assert res.status_code == 403, res.text

    res = await client.get(
        "/activities/",
        params={"code": "create_lot"},
        headers=auth_headers(users["admin"]),
    )
    assert res.status_code == 200, res.text
    data = res.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["username_snapshot"] == "stores@example.com"
