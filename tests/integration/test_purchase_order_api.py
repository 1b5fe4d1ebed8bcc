from decimal import Decimal

PO_URL = "/api/v1/purchase/purchase-order"


async def create_order(client, catalog, headers, lines=None, **extra):
    payload = {
        "supplier_id": catalog.acme_id,
        "warehouse_id": catalog.main_id,
        "order_date": "2026-10-01",
        "items": lines or [{"product_id": catalog.widget_id, "quantity_ordered": 100, "unit_price": "2.50"}],
    }
    payload.update(extra)
    response = await client.post(f"{PO_URL}/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def move(client, po_id, status, headers, notes=None):
    return await client.patch(f"{PO_URL}/{po_id}/status", json={"status": status, "notes": notes}, headers=headers)


async def test_purchase_order_lifecycle(client, catalog, staff_headers, manager_headers):
    order = await create_order(client, catalog, staff_headers)
    po_id = order["id"]
    item_id = order["items"][0]["id"]
    assert order["status"] == "DRAFT"
    assert order["po_number"] == "PO-20261001-001"
    assert Decimal(order["total_amount"]) == Decimal("250.00")
    assert order["supplier"]["supplier_code"] == "ACME"

    for status in ("SUBMITTED", "APPROVED", "ORDERED"):
        response = await move(client, po_id, status, manager_headers)
        assert response.status_code == 200, response.text
    assert response.json()["approved_by"] == 2

    response = await client.post(
        f"{PO_URL}/{po_id}/receive",
        json={"received_items": [{"item_id": item_id, "quantity_received": 40}], "receipt_reference": "GRN-1"},
        headers=staff_headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "PARTIALLY_RECEIVED"
    assert body["items"][0]["quantity_received"] == 40
    assert body["items"][0]["remaining_quantity"] == 60
    assert body["items"][0]["partially_received"] is True

    response = await client.post(
        f"{PO_URL}/{po_id}/receive",
        json={"received_items": [{"item_id": item_id, "quantity_received": 60}], "receipt_reference": "GRN-2"},
        headers=staff_headers,
    )
    assert response.json()["status"] == "FULLY_RECEIVED"

    response = await client.post(
        f"{PO_URL}/{po_id}/receive",
        json={"received_items": [{"item_id": item_id, "quantity_received": 1}], "receipt_reference": "GRN-3"},
        headers=staff_headers,
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "over_receipt"
    assert response.json()["retryable"] is False

    response = await client.post(f"{PO_URL}/{po_id}/close", params={"notes": "Invoice matched"}, headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "CLOSED"
    assert response.json()["closed_at"] is not None

    response = await client.get(
        f"/api/v1/inventory/stock-level/product/{catalog.widget_id}/warehouse/{catalog.main_id}",
        headers=staff_headers,
    )
    assert response.json()["quantity_on_hand"] == 100
    assert response.json()["stock_status"] == "IN_STOCK"


async def test_staff_cannot_approve_or_submit(client, catalog, staff_headers):
    order = await create_order(client, catalog, staff_headers)

    response = await move(client, order["id"], "SUBMITTED", staff_headers)

    assert response.status_code == 403
    assert response.json()["error_code"] == "permission_denied"


async def test_viewer_cannot_create(client, catalog, viewer_headers):
    response = await client.post(
        f"{PO_URL}/",
        json={
            "supplier_id": catalog.acme_id,
            "warehouse_id": catalog.main_id,
            "items": [{"product_id": catalog.widget_id, "quantity_ordered": 1, "unit_price": "1.00"}],
        },
        headers=viewer_headers,
    )
    assert response.status_code == 403


async def test_illegal_transition_is_a_conflict(client, catalog, staff_headers, manager_headers):
    order = await create_order(client, catalog, staff_headers)

    response = await move(client, order["id"], "ORDERED", manager_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "invalid_transition"
    assert "DRAFT" in body["detail"]
    assert body["retryable"] is False


async def test_receiving_a_draft_is_rejected(client, catalog, staff_headers):
    order = await create_order(client, catalog, staff_headers)

    response = await client.post(
        f"{PO_URL}/{order['id']}/receive",
        json={
            "received_items": [{"item_id": order["items"][0]["id"], "quantity_received": 5}],
            "receipt_reference": "GRN-1",
        },
        headers=staff_headers,
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "invalid_transition"


async def test_receive_needs_a_reference_and_retries_are_safe(client, catalog, staff_headers, manager_headers):
    order = await create_order(client, catalog, staff_headers)
    po_id = order["id"]
    item_id = order["items"][0]["id"]
    for status in ("SUBMITTED", "APPROVED", "ORDERED"):
        await move(client, po_id, status, manager_headers)

    response = await client.post(
        f"{PO_URL}/{po_id}/receive",
        json={"received_items": [{"item_id": item_id, "quantity_received": 40}]},
        headers=staff_headers,
    )
    assert response.status_code == 422

    payload = {"received_items": [{"item_id": item_id, "quantity_received": 40}], "receipt_reference": "GRN-5"}
    for _ in range(2):
        response = await client.post(f"{PO_URL}/{po_id}/receive", json=payload, headers=staff_headers)
        assert response.status_code == 200, response.text
        assert response.json()["items"][0]["quantity_received"] == 40

    response = await client.get(
        f"/api/v1/inventory/stock-level/product/{catalog.widget_id}/warehouse/{catalog.main_id}",
        headers=staff_headers,
    )
    assert response.json()["quantity_on_hand"] == 40


async def test_request_validation(client, catalog, staff_headers):
    response = await client.post(
        f"{PO_URL}/",
        json={"supplier_id": catalog.acme_id, "warehouse_id": catalog.main_id, "items": []},
        headers=staff_headers,
    )
    assert response.status_code == 422

    response = await client.post(
        f"{PO_URL}/",
        json={
            "supplier_id": catalog.acme_id,
            "warehouse_id": catalog.main_id,
            "items": [{"product_id": catalog.widget_id, "quantity_ordered": 0, "unit_price": "1.00"}],
        },
        headers=staff_headers,
    )
    assert response.status_code == 422


async def test_unknown_order_is_not_found(client, catalog, staff_headers):
    response = await client.get(f"{PO_URL}/9999", headers=staff_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"


async def test_update_draft(client, catalog, staff_headers):
    order = await create_order(client, catalog, staff_headers)

    response = await client.put(
        f"{PO_URL}/{order['id']}",
        json={
            "notes": "Switch to gadgets",
            "items": [{"product_id": catalog.gadget_id, "quantity_ordered": 3, "unit_price": "8.00"}],
        },
        headers=staff_headers,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert [item["product_id"] for item in body["items"]] == [catalog.gadget_id]
    assert Decimal(body["total_amount"]) == Decimal("24.00")


async def test_list_lookup_and_summary(client, catalog, staff_headers, manager_headers):
    first = await create_order(client, catalog, staff_headers)
    await create_order(
        client, catalog, staff_headers,
        lines=[{"product_id": catalog.gadget_id, "quantity_ordered": 2, "unit_price": "8.00"}],
        supplier_id=catalog.beta_id,
    )
    await move(client, first["id"], "CANCELLED", manager_headers, notes="Duplicate")

    response = await client.get(f"{PO_URL}/", params={"status": "DRAFT"}, headers=staff_headers)
    assert response.status_code == 200
    page = response.json()
    assert page["count"] == 1
    assert page["data"][0]["supplier_id"] == catalog.beta_id

    response = await client.get(f"{PO_URL}/number/{first['po_number']}", headers=staff_headers)
    assert response.json()["status"] == "CANCELLED"
    assert response.json()["notes"].endswith("[CANCELLED] Duplicate")

    response = await client.get(f"{PO_URL}/summary", headers=staff_headers)
    summary = response.json()
    assert summary["total_orders"] == 2
    assert summary["open_orders"] == 1
    assert summary["status_counts"]["CANCELLED"] == 1
    assert Decimal(summary["open_order_value"]) == Decimal("16.00")
