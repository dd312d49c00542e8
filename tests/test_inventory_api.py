import pytest

BRAND = "brand-1"


def make_part(client, code="SCR-1", msl=5, max_level=50, **extra):
    payload = {"brandId": BRAND, "code": code, "name": f"Part {code}", "minStockLevel": msl,
               "maxStockLevel": max_level, "costPrice": 10.0, **extra}
    r = client.post("/parts", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def make_location(client, code="WH-1"):
    r = client.post("/brand/inventory/locations", json={"brandId": BRAND, "code": code, "name": f"Warehouse {code}"})
    assert r.status_code == 201, r.text
    return r.json()


def make_item(client, part, location, on_hand):
    r = client.post("/brand/inventory/items", json={
        "partId": part["id"], "locationId": location["id"], "onHandQuantity": on_hand,
    })
    assert r.status_code == 201, r.text
    return r.json()


class TestParts:
    def test_create_and_list(self, inventory_client):
        part = make_part(inventory_client)
        assert part["approvalStatus"] == "PENDING"
        assert part["minStockLevel"] == 5
        listed = inventory_client.get("/parts", params={"brandId": BRAND}).json()
        assert [p["code"] for p in listed] == ["SCR-1"]
        assert inventory_client.get("/parts", params={"brandId": "other"}).json() == []

    def test_duplicate_code_conflicts(self, inventory_client):
        make_part(inventory_client)
        r = inventory_client.post("/parts", json={"brandId": BRAND, "code": "SCR-1", "name": "dup"})
        assert r.status_code == 409

    def test_update(self, inventory_client):
        part = make_part(inventory_client)
        r = inventory_client.put(f"/parts/{part['id']}", json={"price": 99.5, "isActive": False})
        assert r.json()["price"] == 99.5
        assert r.json()["isActive"] is False
        assert inventory_client.put("/parts/missing", json={"price": 1}).status_code == 404

    def test_update_with_nulls_keeps_required_fields(self, inventory_client):
        part = make_part(inventory_client, description="OEM screen")
        r = inventory_client.put(f"/parts/{part['id']}", json={
            "name": None, "price": None, "minStockLevel": None, "isActive": None, "description": None,
        })
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["name"] == part["name"]
        assert body["minStockLevel"] == 5
        assert body["isActive"] is True
        assert body["description"] is None

    def test_empty_update_changes_nothing(self, inventory_client):
        part = make_part(inventory_client)
        r = inventory_client.put(f"/parts/{part['id']}", json={})
        assert r.status_code == 200
        assert {k: v for k, v in r.json().items() if k != "createdAt"} == {
            k: v for k, v in part.items() if k != "createdAt"
        }


class TestPartApprovals:
    def test_approve_records_history_without_touching_description(self, inventory_client):
        part = make_part(inventory_client, description="OEM screen")
        r = inventory_client.put("/admin/part-approvals", json={"partId": part["id"], "action": "approve", "actor": "admin-1"})
        assert r.status_code == 200
        assert r.json()["approvalStatus"] == "APPROVED"
        assert r.json()["description"] == "OEM screen"

        history = inventory_client.get(f"/admin/part-approvals/{part['id']}/history").json()
        assert [(e["fromStatus"], e["toStatus"], e["actor"]) for e in history] == [("PENDING", "APPROVED", "admin-1")]

    def test_reject_defaults_reason(self, inventory_client):
        part = make_part(inventory_client)
        inventory_client.put("/admin/part-approvals", json={"partId": part["id"], "action": "review"})
        inventory_client.put("/admin/part-approvals", json={"partId": part["id"], "action": "reject"})
        history = inventory_client.get(f"/admin/part-approvals/{part['id']}/history").json()
        assert [e["toStatus"] for e in history] == ["UNDER_REVIEW", "REJECTED"]
        assert history[-1]["reason"] == "No reason provided"

    def test_same_status_conflicts(self, inventory_client):
        part = make_part(inventory_client)
        body = {"partId": part["id"], "action": "approve"}
        inventory_client.put("/admin/part-approvals", json=body)
        assert inventory_client.put("/admin/part-approvals", json=body).status_code == 409

    @pytest.mark.parametrize("body,code", [
        ({"action": "approve"}, 400),
        ({"partId": "x"}, 400),
        ({"partId": "x", "action": "explode"}, 400),
        ({"partId": "missing", "action": "approve"}, 404),
    ])
    def test_bad_requests(self, inventory_client, body, code):
        assert inventory_client.put("/admin/part-approvals", json=body).status_code == code

    def test_list_filters_by_status_and_counts_usage(self, inventory_client):
        approved = make_part(inventory_client, code="A")
        make_part(inventory_client, code="B")
        make_item(inventory_client, approved, make_location(inventory_client), 4)
        inventory_client.put("/admin/part-approvals", json={"partId": approved["id"], "action": "approve"})

        listed = inventory_client.get("/admin/part-approvals", params={"status": "approved"}).json()
        assert [(p["code"], p["usageCount"]) for p in listed] == [("A", 1)]
        assert len(inventory_client.get("/admin/part-approvals").json()) == 2


class TestLocationsAndSuppliers:
    def test_location_crud(self, inventory_client):
        loc = make_location(inventory_client)
        assert loc["type"] == "WAREHOUSE"
        r = inventory_client.put(f"/brand/inventory/locations/{loc['id']}", json={"type": "QUARANTINE", "capacity": 100})
        assert r.json()["type"] == "QUARANTINE"
        assert r.json()["capacity"] == 100
        dup = inventory_client.post("/brand/inventory/locations", json={"brandId": BRAND, "code": "WH-1", "name": "again"})
        assert dup.status_code == 409
        bad = inventory_client.post("/brand/inventory/locations", json={"brandId": BRAND, "code": "X", "name": "x", "type": "CAVE"})
        assert bad.status_code == 422

    def test_supplier_certifications_from_string(self, inventory_client):
        r = inventory_client.post("/brand/inventory/suppliers", json={
            "brandId": BRAND, "code": "SUP-1", "name": "Acme", "certifications": " ISO9001, ,CE ",
        })
        assert r.status_code == 201, r.text
        sup = r.json()
        assert sup["certifications"] == ["ISO9001", "CE"]

        r = inventory_client.put(f"/brand/inventory/suppliers/{sup['id']}", json={"certifications": ["RoHS"], "rating": 4.5})
        assert r.json()["certifications"] == ["RoHS"]
        assert r.json()["rating"] == 4.5
        listed = inventory_client.get("/brand/inventory/suppliers", params={"brandId": BRAND}).json()
        assert [s["code"] for s in listed] == ["SUP-1"]

    def test_location_update_with_nulls(self, inventory_client):
        loc = make_location(inventory_client)
        inventory_client.put(f"/brand/inventory/locations/{loc['id']}", json={"zone": "A"})
        r = inventory_client.put(f"/brand/inventory/locations/{loc['id']}", json={
            "name": None, "type": None, "active": None, "zone": None,
        })
        assert r.status_code == 200, r.text
        assert r.json()["name"] == loc["name"]
        assert r.json()["type"] == "WAREHOUSE"
        assert r.json()["active"] is True
        assert r.json()["zone"] is None
        assert inventory_client.put(f"/brand/inventory/locations/{loc['id']}", json={}).json() == r.json()

    def test_supplier_update_with_nulls_keeps_list_readable(self, inventory_client):
        r = inventory_client.post("/brand/inventory/suppliers", json={
            "brandId": BRAND, "code": "SUP-1", "name": "Acme", "certifications": ["ISO9001"], "rating": 4,
        })
        sup = r.json()
        r = inventory_client.put(f"/brand/inventory/suppliers/{sup['id']}", json={
            "certifications": None, "rating": None, "leadTime": None, "type": None, "contactEmail": None,
        })
        assert r.status_code == 200, r.text
        assert r.json()["certifications"] == ["ISO9001"]
        assert r.json()["rating"] == 4
        assert r.json()["type"] == "MANUFACTURER"

        listed = inventory_client.get("/brand/inventory/suppliers", params={"brandId": BRAND})
        assert listed.status_code == 200
        assert listed.json()[0]["certifications"] == ["ISO9001"]


class TestStock:
    def test_status_and_adjustments(self, inventory_client):
        part = make_part(inventory_client, msl=5, max_level=20)
        item = make_item(inventory_client, part, make_location(inventory_client), 3)
        assert item["stockStatus"] == "low_stock"
        assert item["availableQuantity"] == 3

        r = inventory_client.post(f"/brand/inventory/items/{item['id']}/adjust", json={"quantity": 10, "reason": "restock"})
        assert r.json()["onHandQuantity"] == 13
        assert r.json()["stockStatus"] == "in_stock"
        assert r.json()["lastRestocked"] is not None

        r = inventory_client.post(f"/brand/inventory/items/{item['id']}/adjust", json={"quantity": 7})
        assert r.json()["stockStatus"] == "overstock"

        assert inventory_client.post(f"/brand/inventory/items/{item['id']}/adjust", json={"quantity": -21}).status_code == 400
        assert inventory_client.post(f"/brand/inventory/items/{item['id']}/adjust", json={"quantity": 0}).status_code == 400

        r = inventory_client.post(f"/brand/inventory/items/{item['id']}/adjust", json={"quantity": -20})
        assert r.json()["stockStatus"] == "out_of_stock"
        assert r.json()["lastIssued"] is not None

    def test_duplicate_item_conflicts(self, inventory_client):
        part = make_part(inventory_client)
        loc = make_location(inventory_client)
        make_item(inventory_client, part, loc, 1)
        r = inventory_client.post("/brand/inventory/items", json={"partId": part["id"], "locationId": loc["id"]})
        assert r.status_code == 409

    def test_filter_and_summary(self, inventory_client):
        loc = make_location(inventory_client)
        make_item(inventory_client, make_part(inventory_client, code="A", msl=5), loc, 0)
        make_item(inventory_client, make_part(inventory_client, code="B", msl=5), loc, 2)
        make_item(inventory_client, make_part(inventory_client, code="C", msl=5), loc, 10)

        low = inventory_client.get("/brand/inventory/items", params={"brandId": BRAND, "stockStatus": "low_stock"}).json()
        assert [i["part"]["code"] for i in low] == ["B"]

        summary = inventory_client.get("/brand/inventory/summary", params={"brandId": BRAND}).json()
        assert summary == {
            "totalItems": 3, "outOfStock": 1, "lowStock": 1, "overstock": 0, "inStock": 1,
            "totalValue": 120.0,
        }


class TestRestockAlerts:
    def test_generate_from_forecasts(self, inventory_client):
        part = make_part(inventory_client, msl=10)
        calm = make_part(inventory_client, code="CALM", msl=10)
        body = {"brandId": BRAND, "district": "Pune", "forecasts": [
            {"partId": part["id"], "projectedDemand": 30},
            {"partId": calm["id"], "projectedDemand": 5},
            {"partId": "ghost", "projectedDemand": 50},
        ]}
        results = inventory_client.post("/brand/restock-alerts/generate", json=body).json()
        assert [r["action"] for r in results] == ["alert_created", "no_action_needed", "part_not_found"]
        assert results[0]["recommendedQuantity"] == 24

        again = inventory_client.post("/brand/restock-alerts/generate", json=body).json()
        assert again[0]["action"] == "already_pending"
        assert again[0]["alertId"] == results[0]["alertId"]

    def test_create_list_and_decide(self, inventory_client):
        part = make_part(inventory_client)
        make_item(inventory_client, part, make_location(inventory_client), 7)
        r = inventory_client.post("/brand/restock-alerts", json={
            "partId": part["id"], "district": "Delhi", "forecastedDemand": 200, "recommendedQuantity": 150,
        })
        assert r.status_code == 201
        alert = r.json()
        assert alert["availableStock"] == 7

        listed = inventory_client.get("/brand/restock-alerts", params={"brandId": BRAND}).json()
        assert listed["summary"] == {"total": 1, "critical": 1, "pending": 1, "approved": 0}

        r = inventory_client.put(f"/brand/restock-alerts/{alert['id']}", json={"action": "approve"})
        assert r.json()["status"] == "APPROVED"
        assert inventory_client.put(f"/brand/restock-alerts/{alert['id']}", json={"action": "reject"}).status_code == 409
        assert inventory_client.put(f"/brand/restock-alerts/{alert['id']}", json={"action": "maybe"}).status_code == 400

        approved = inventory_client.get("/brand/restock-alerts", params={"status": "APPROVED"}).json()
        assert approved["summary"]["approved"] == 1

    def test_create_requires_fields(self, inventory_client):
        assert inventory_client.post("/brand/restock-alerts", json={"district": "Pune"}).status_code == 400
        r = inventory_client.post("/brand/restock-alerts", json={
            "partId": "ghost", "district": "Pune", "forecastedDemand": 5, "recommendedQuantity": 5,
        })
        assert r.status_code == 404


class TestShipmentEvents:
    def test_created_then_deleted(self, inventory_client, inventory_app):
        part = make_part(inventory_client, msl=0, max_level=None)
        big = make_item(inventory_client, part, make_location(inventory_client, "WH-1"), 5)
        small = make_item(inventory_client, part, make_location(inventory_client, "WH-2"), 3)
        event = {"shipment": {"id": "sh-1", "brandId": BRAND, "parts": [{"partId": part["id"], "quantity": 6}]}}

        inventory_app.process_event({"type": "shipment.created", **event})
        on_hand = {i["id"]: i["onHandQuantity"] for i in inventory_client.get("/brand/inventory/items").json()}
        assert on_hand == {big["id"]: 0, small["id"]: 2}

        inventory_app.process_event({"type": "shipment.deleted", **event})
        on_hand = {i["id"]: i["onHandQuantity"] for i in inventory_client.get("/brand/inventory/items").json()}
        assert on_hand == {big["id"]: 0, small["id"]: 8}

    def test_other_brands_and_events_ignored(self, inventory_client, inventory_app):
        part = make_part(inventory_client)
        item = make_item(inventory_client, part, make_location(inventory_client), 5)
        parts = [{"partId": part["id"], "quantity": 2}]
        inventory_app.process_event({"type": "order.created", "shipment": {"id": "x", "brandId": BRAND, "parts": parts}})
        inventory_app.process_event({"type": "shipment.created", "shipment": {"id": "x", "brandId": "other", "parts": parts}})
        assert inventory_client.get("/brand/inventory/items").json()[0]["onHandQuantity"] == item["onHandQuantity"]
