from decimal import Decimal


async def test_catalog_setup_flow(client, manager_headers, staff_headers):
    response = await client.post("/api/v1/inventory/category/", json={"name": "Fasteners"}, headers=manager_headers)
    assert response.status_code == 201, response.text
    category_id = response.json()["id"]

    response = await client.post(
        "/api/v1/inventory/product/",
        json={"sku": "scr-010", "name": "Screw", "category_id": category_id, "reorder_point": 100, "reorder_quantity": 500},
        headers=manager_headers,
    )
    assert response.status_code == 201, response.text
    product = response.json()
    assert product["sku"] == "SCR-010"

    response = await client.post(
        "/api/v1/organization/warehouse/", json={"name": "North", "code": "nrt"}, headers=manager_headers
    )
    assert response.status_code == 201, response.text
    assert response.json()["code"] == "NRT"

    response = await client.post(
        "/api/v1/purchase/supplier/", json={"supplier_code": "FAST", "name": "Fastenal"}, headers=manager_headers
    )
    assert response.status_code == 201, response.text
    supplier_id = response.json()["id"]

    response = await client.put(
        f"/api/v1/purchase/supplier/{supplier_id}/prices",
        json={"product_id": product["id"], "unit_cost": "0.05", "lead_time_days": 2},
        headers=manager_headers,
    )
    assert response.status_code == 200, response.text
    assert Decimal(response.json()["unit_cost"]) == Decimal("0.05")

    response = await client.put(
        f"/api/v1/purchase/supplier/{supplier_id}/prices",
        json={"product_id": product["id"], "unit_cost": "0.04"},
        headers=manager_headers,
    )
    response = await client.get(f"/api/v1/purchase/supplier/{supplier_id}/prices", headers=staff_headers)
    page = response.json()
    assert page["count"] == 1
    assert Decimal(page["data"][0]["unit_cost"]) == Decimal("0.04")

    response = await client.get("/api/v1/inventory/product/sku/SCR-010", headers=staff_headers)
    assert response.json()["id"] == product["id"]


async def test_duplicate_sku_is_a_conflict(client, catalog, manager_headers):
    response = await client.post(
        "/api/v1/inventory/product/", json={"sku": "WID-001", "name": "Another widget"}, headers=manager_headers
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "conflict"


async def test_staff_cannot_edit_catalog(client, catalog, staff_headers):
    response = await client.put(
        f"/api/v1/inventory/product/{catalog.widget_id}", json={"reorder_point": 3}, headers=staff_headers
    )

    assert response.status_code == 403


async def test_product_search(client, catalog, viewer_headers):
    response = await client.get("/api/v1/inventory/product/", params={"search": "gad"}, headers=viewer_headers)

    assert response.status_code == 200
    assert [p["sku"] for p in response.json()["data"]] == ["GAD-001"]


async def test_category_with_products_cannot_be_deleted(client, catalog, manager_headers):
    response = await client.delete(f"/api/v1/inventory/category/{catalog.category_id}", headers=manager_headers)
    assert response.status_code == 409

    response = await client.post("/api/v1/inventory/category/", json={"name": "Empty"}, headers=manager_headers)
    response = await client.delete(f"/api/v1/inventory/category/{response.json()['id']}", headers=manager_headers)
    assert response.status_code == 200
