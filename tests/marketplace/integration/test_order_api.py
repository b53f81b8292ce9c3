"""Integration tests for the customer order endpoints via TestClient."""

import pytest

from marketplace.catalogue.product import ProductVariant
from marketplace.order.store import OrderStore


@pytest.fixture()
def catalogue(seed):
    seed.product("prod-1", title="School Shirt", base_price=450.0)
    seed.variant("var-1", "prod-1", price=499.0, stock=10)
    return seed


def _create_order(client, **overrides):
    payload = {
        "userId": "user-1",
        "items": [{"productId": "prod-1", "variantId": "var-1", "quantity": 2, "warehouseId": "wh-1"}],
        "shippingAddress": {"name": "Asha Rao", "city": "Pune", "pincode": "411001"},
        "contactEmail": "asha@example.com",
        "contactPhone": "9000000000",
    }
    payload.update(overrides)
    return client.post("/orders", json=payload)


class TestCreateOrderAPI:
    def test_create_returns_201_with_envelope(self, client, catalogue):
        response = _create_order(client)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Order created successfully"
        assert body["data"]["totalAmount"] == 998.0
        assert body["data"]["items"][0]["variant"]["price"] == 499.0

    def test_snake_case_body_is_accepted(self, client, catalogue):
        response = client.post(
            "/orders",
            json={
                "user_id": "user-1",
                "items": [{"product_id": "prod-1", "quantity": 1}],
                "shipping_address": {"name": "Asha Rao"},
            },
        )
        assert response.status_code == 201

    def test_price_in_the_body_is_ignored(self, client, catalogue):
        response = _create_order(
            client,
            items=[{"productId": "prod-1", "variantId": "var-1", "quantity": 2, "unitPrice": 0.01}],
        )

        assert response.status_code == 201
        assert response.json()["data"]["totalAmount"] == 998.0
        assert response.json()["data"]["items"][0]["unitPrice"] == 499.0

    def test_empty_items_is_rejected(self, client, catalogue):
        assert _create_order(client, items=[]).status_code == 422

    def test_missing_product_is_not_found(self, client, catalogue):
        response = _create_order(client, items=[{"productId": "prod-missing", "quantity": 1}])

        assert response.status_code == 404
        error = response.json()["error"]
        assert response.json()["success"] is False
        assert error["kind"] == "not_found"
        assert "order_id" in error["details"]

    def test_insufficient_stock_is_a_validation_error(self, client, catalogue, store):
        response = _create_order(client, items=[{"productId": "prod-1", "variantId": "var-1", "quantity": 11}])

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "validation"
        assert store.get(ProductVariant, "var-1").stock == 10


class TestReadOrdersAPI:
    def test_get_order(self, client, catalogue):
        order_id = _create_order(client).json()["data"]["id"]

        response = client.get(f"/orders/{order_id}", params={"userId": "user-1"})
        assert response.status_code == 200
        assert response.json()["data"]["events"][0]["note"] == "Order created"

    def test_get_someone_elses_order(self, client, catalogue):
        order_id = _create_order(client).json()["data"]["id"]
        assert client.get(f"/orders/{order_id}", params={"userId": "user-2"}).status_code == 404

    def test_list_by_user(self, client, catalogue):
        _create_order(client)
        _create_order(client)

        response = client.get("/orders", params={"userId": "user-1", "limit": 1})
        data = response.json()["data"]
        assert len(data["orders"]) == 1
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["hasNext"] is True

    def test_list_requires_user(self, client):
        assert client.get("/orders").status_code == 422

    def test_limit_above_maximum(self, client):
        assert client.get("/orders", params={"userId": "user-1", "limit": 500}).status_code == 422


class TestOrderChangesAPI:
    def test_payment_update_auto_processes(self, client, catalogue):
        order_id = _create_order(client).json()["data"]["id"]

        response = client.put(f"/orders/{order_id}/payment", json={"paymentStatus": "paid"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "processed"

    def test_invalid_payment_status(self, client, catalogue):
        order_id = _create_order(client).json()["data"]["id"]
        response = client.put(f"/orders/{order_id}/payment", json={"paymentStatus": "settled"})
        assert response.status_code == 400

    def test_cancel(self, client, catalogue, store):
        order_id = _create_order(client).json()["data"]["id"]

        response = client.post(f"/orders/{order_id}/cancel", json={"userId": "user-1", "reason": "Changed my mind"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"
        assert store.get(ProductVariant, "var-1").stock == 10


class TestOrderHistoryAPI:
    def test_order_stats(self, client, catalogue):
        _create_order(client)
        _create_order(client, userId="user-2", items=[{"productId": "prod-1", "quantity": 1}])

        response = client.get("/orders/stats", params={"userId": "user-1"})

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["summary"] == {
            "totalOrders": 1,
            "totalRevenue": 998.0,
            "averageOrderValue": 998.0,
            "uniqueCustomers": 1,
        }
        assert stats["byPaymentMethod"] == {"cod": {"count": 1, "revenue": 998.0}}

    def test_item_events(self, client, catalogue, store):
        order = _create_order(client).json()["data"]
        item_id = order["items"][0]["id"]
        OrderStore(store).update_item_status(order["id"], item_id, "processed", changed_by="ret-1")

        response = client.get(f"/orders/{order['id']}/items/{item_id}/events", params={"userId": "user-1"})

        assert response.status_code == 200
        assert [event["newStatus"] for event in response.json()["data"]] == ["processed"]

    def test_item_events_of_someone_elses_order(self, client, catalogue):
        order = _create_order(client).json()["data"]
        item_id = order["items"][0]["id"]

        response = client.get(f"/orders/{order['id']}/items/{item_id}/events", params={"userId": "user-2"})
        assert response.status_code == 404
