"""Integration tests for Order API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sales.api.routes import invoice_router, order_router


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(invoice_router)
    return TestClient(app)


def _create_order(client, **overrides):
    """Helper: POST /orders and return the order_id."""
    body = {
        "client_id": "client-api-001",
        "billing_address": "12 rue de la Paix, 75002 Paris",
        "discount_rate": 0.0,
        "shipping_cost": 0.0,
    }
    body.update(overrides)
    response = client.post("/orders", json=body)
    assert response.status_code == 201
    return response.json()["order_id"]


def _add_item(client, order_id, **overrides):
    body = {"product_id": "prod-001", "quantity": 3, "unit_price": 100.0, "discount_rate": 10.0, "vat_rate": 20.0}
    body.update(overrides)
    return client.post(f"/orders/{order_id}/items", json=body)


class TestCreateOrder:
    def test_create_and_get(self, client):
        order_id = _create_order(client, discount_rate=5.0, shipping_cost=10.0)

        response = client.get(f"/orders/{order_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Draft"
        assert data["order_number"].startswith("CMD-")
        assert data["net_total"] == 0.0
        assert data["grand_total"] == 10.0
        assert data["can_be_modified"] is True
        assert set(data["allowed_transitions"]) == {"Confirmed", "Pending", "Cancelled"}

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/does-not-exist")
        assert response.status_code == 404


class TestOrderItems:
    def test_add_item(self, client):
        order_id = _create_order(client)
        response = _add_item(client, order_id)
        assert response.status_code == 201
        item_id = response.json()["item_id"]

        data = client.get(f"/orders/{order_id}").json()
        assert data["items"][0]["item_id"] == item_id
        assert data["items"][0]["net_amount"] == 270.0
        assert data["items"][0]["tax_amount"] == 54.0
        assert data["grand_total"] == 324.0

    def test_update_and_remove_item(self, client):
        order_id = _create_order(client)
        item_id = _add_item(client, order_id).json()["item_id"]

        response = client.put(f"/orders/{order_id}/items/{item_id}", json={"quantity": 1})
        assert response.status_code == 200
        assert client.get(f"/orders/{order_id}").json()["grand_total"] == 108.0

        response = client.delete(f"/orders/{order_id}/items/{item_id}")
        assert response.status_code == 200
        assert client.get(f"/orders/{order_id}").json()["items"] == []

    def test_invalid_quantity_is_400(self, client):
        order_id = _create_order(client)
        response = _add_item(client, order_id, quantity=0)
        assert response.status_code == 400
        assert "quantity" in response.json()["detail"]

    def test_non_positive_price_is_400(self, client):
        order_id = _create_order(client)
        response = _add_item(client, order_id, unit_price=0.0)
        assert response.status_code == 400

    def test_adjust_pricing(self, client):
        order_id = _create_order(client)
        _add_item(client, order_id)
        response = client.put(f"/orders/{order_id}/pricing", json={"discount_rate": 5.0, "shipping_cost": 10.0})
        assert response.status_code == 200
        assert client.get(f"/orders/{order_id}").json()["grand_total"] == 320.5

    def test_add_item_to_unknown_order_is_404(self, client):
        response = _add_item(client, "does-not-exist")
        assert response.status_code == 404


class TestOrderStatus:
    def test_confirm(self, client):
        order_id = _create_order(client)
        response = client.put(f"/orders/{order_id}/status", json={"status": "Confirmed"})
        assert response.status_code == 200
        assert client.get(f"/orders/{order_id}").json()["status"] == "Confirmed"

    def test_invalid_transition_is_409(self, client):
        order_id = _create_order(client)
        response = client.put(f"/orders/{order_id}/status", json={"status": "Delivered"})
        assert response.status_code == 409

    def test_unknown_status_is_400(self, client):
        order_id = _create_order(client)
        response = client.put(f"/orders/{order_id}/status", json={"status": "Archived"})
        assert response.status_code == 400

    def test_modifying_processing_order_is_400(self, client):
        order_id = _create_order(client)
        client.put(f"/orders/{order_id}/status", json={"status": "Confirmed"})
        client.put(f"/orders/{order_id}/status", json={"status": "Processing"})
        response = _add_item(client, order_id)
        assert response.status_code == 400


class TestDuplicateOrder:
    def test_duplicate(self, client):
        order_id = _create_order(client)
        _add_item(client, order_id)

        response = client.post(f"/orders/{order_id}/duplicate")
        assert response.status_code == 201
        copy_id = response.json()["order_id"]

        source = client.get(f"/orders/{order_id}").json()
        copy = client.get(f"/orders/{copy_id}").json()
        assert copy["order_number"] != source["order_number"]
        assert copy["grand_total"] == source["grand_total"]
        assert copy["status"] == "Draft"


class TestDeleteOrder:
    def test_delete_draft_order(self, client):
        order_id = _create_order(client)
        _add_item(client, order_id)

        response = client.delete(f"/orders/{order_id}")
        assert response.status_code == 200
        assert client.get(f"/orders/{order_id}").status_code == 404

    def test_confirmed_order_is_409(self, client):
        order_id = _create_order(client)
        client.put(f"/orders/{order_id}/status", json={"status": "Confirmed"})

        response = client.delete(f"/orders/{order_id}")
        assert response.status_code == 409
        assert client.get(f"/orders/{order_id}").json()["can_be_deleted"] is False

    def test_unknown_order_is_404(self, client):
        response = client.delete("/orders/does-not-exist")
        assert response.status_code == 404

    def test_invoiced_order_is_409(self, client):
        order_id = _create_order(client)
        _add_item(client, order_id)
        client.put(f"/orders/{order_id}/status", json={"status": "Confirmed"})
        assert client.post(f"/orders/{order_id}/invoice", json={}).status_code == 201

        response = client.delete(f"/orders/{order_id}")
        assert response.status_code == 409
