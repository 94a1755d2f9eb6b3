import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session


def _create_item(client: TestClient, headers, **overrides):
    payload = {
        "name": "Reactive Red 195",
        "category": "dye",
        "unit": "kg",
        "currentStock": 20,
        "minStock": 10,
        "maxStock": 100,
        "unitPrice": 12.5,
        "supplier": "Huntsman",
    }
    payload.update(overrides)
    response = client.post("/items", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_and_vocabulary_are_public(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}

    vocabulary = client.get("/vocabulary").json()
    assert {"value": "dye", "label": "Dyes"} in vocabulary["categories"]
    assert "kg" in vocabulary["units"]
    assert vocabulary["reasons"]["out"] == ["Sale", "Usage", "Transfer Out", "Waste", "Expired", "Other"]


def test_inventory_requires_a_token(client: TestClient) -> None:
    assert client.get("/items").status_code == 401
    assert client.get("/items", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_item_transaction_alert_flow(client: TestClient, auth_headers) -> None:
    item = _create_item(client, auth_headers)
    assert item["sku"].startswith("DYE-REAC-")
    assert item["status"] == "In Stock"
    assert item["version"] == 1

    # receipt
    response = client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "in", "quantity": 5, "reason": "Purchase", "reference": "PO-7"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text
    result = response.json()
    assert result["newStock"] == 25
    assert result["transaction"]["itemId"] == item["id"]
    assert result["transaction"]["type"] == "in"

    # over-withdrawal
    response = client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "out", "quantity": 30, "reason": "Usage"},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert "25 kg" in response.json()["errors"]["quantity"]

    # withdrawal down to low stock
    response = client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "out", "quantity": 20, "reason": "Usage"},
        headers=auth_headers,
    )
    assert response.status_code == 201, response.text

    detail = client.get(f"/items/{item['id']}", headers=auth_headers).json()
    assert detail["currentStock"] == 5
    assert detail["status"] == "Low Stock"

    alerts = client.get("/alerts", headers=auth_headers).json()
    assert alerts == [
        {"itemId": item["id"], "itemName": "Reactive Red 195", "currentStock": 5, "minStock": 10, "severity": "low"}
    ]

    stats = client.get("/stats", headers=auth_headers).json()
    assert stats == {"totalItems": 1, "totalValue": 62.5, "lowStockCount": 1, "outOfStockCount": 0}

    history = client.get("/transactions", params={"item_id": item["id"]}, headers=auth_headers).json()
    assert [entry["quantity"] for entry in history] == [20, 5]

    receipts = client.get("/transactions", params={"type": "in"}, headers=auth_headers).json()
    assert [(entry["type"], entry["quantity"]) for entry in receipts] == [("in", 5)]
    assert client.get("/transactions", params={"type": "transfer"}, headers=auth_headers).status_code == 422


def test_item_validation_errors_are_field_keyed(client: TestClient, auth_headers) -> None:
    response = client.post(
        "/items",
        json={"name": "", "minStock": 10, "maxStock": 5},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"name", "max_stock"}


def test_update_and_delete_item(client: TestClient, auth_headers) -> None:
    item = _create_item(client, auth_headers)

    response = client.put(
        f"/items/{item['id']}", json={"location": "Dye kitchen", "unitPrice": 13}, headers=auth_headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["location"] == "Dye kitchen"
    assert response.json()["version"] == 2

    response = client.put(f"/items/{item['id']}", json={"currentStock": 0}, headers=auth_headers)
    assert response.status_code == 422

    response = client.put(
        f"/items/{item['id']}", json={"notes": "late", "expectedVersion": 1}, headers=auth_headers
    )
    assert response.status_code == 409

    client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "adjustment", "quantity": 0, "reason": "Physical Count"},
        headers=auth_headers,
    )
    assert client.delete(f"/items/{item['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/items/{item['id']}", headers=auth_headers).status_code == 404

    response = client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "in", "quantity": 1, "reason": "Return"},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert len(client.get("/transactions", headers=auth_headers).json()) == 1


def test_list_items_filters(client: TestClient, auth_headers) -> None:
    _create_item(client, auth_headers)
    _create_item(
        client, auth_headers, name="Caustic Soda", category="chemical", supplier="Solvay", currentStock=1
    )

    names = [item["name"] for item in client.get("/items", headers=auth_headers).json()]
    assert names == ["Caustic Soda", "Reactive Red 195"]

    low = client.get("/items", params={"low_stock": True}, headers=auth_headers).json()
    assert [item["name"] for item in low] == ["Caustic Soda"]

    dyes = client.get("/items", params={"category": "dye"}, headers=auth_headers).json()
    assert [item["name"] for item in dyes] == ["Reactive Red 195"]

    found = client.get("/items", params={"search": "solvay"}, headers=auth_headers).json()
    assert [item["name"] for item in found] == ["Caustic Soda"]


@pytest.mark.parametrize("quantity", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_quantities_are_rejected(client: TestClient, auth_headers, quantity) -> None:
    item = _create_item(client, auth_headers)

    response = client.post(
        f"/items/{item['id']}/transactions",
        content=f'{{"type": "in", "quantity": {quantity}, "reason": "Purchase"}}',
        headers={**auth_headers, "Content-Type": "application/json"},
    )

    assert response.status_code == 422
    assert client.get(f"/items/{item['id']}", headers=auth_headers).json()["currentStock"] == 20
    assert client.get("/transactions", headers=auth_headers).json() == []


def test_storage_failure_is_reported_without_partial_writes(
    client: TestClient, auth_headers, monkeypatch
) -> None:
    item = _create_item(client, auth_headers)
    flush = Session.flush

    def failing_flush(self, *args, **kwargs):
        if self.new:
            raise OperationalError("INSERT INTO stock_transactions", {}, Exception("database is locked"))
        return flush(self, *args, **kwargs)

    monkeypatch.setattr(Session, "flush", failing_flush)
    response = client.post(
        f"/items/{item['id']}/transactions",
        json={"type": "in", "quantity": 5, "reason": "Purchase"},
        headers=auth_headers,
    )
    monkeypatch.undo()

    assert response.status_code == 503
    assert response.json() == {"detail": "Could not record stock transaction"}
    detail = client.get(f"/items/{item['id']}", headers=auth_headers).json()
    assert (detail["currentStock"], detail["version"]) == (20, 1)
    assert client.get("/transactions", headers=auth_headers).json() == []
