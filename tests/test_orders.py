"""Tests for order placement and the order status machine."""

import pytest

import database
from auth import create_token
from conftest import make_product
from errors import StockException, ValidationException
from orders import allowed_next_statuses, place_order, reserve_stock, update_order_status
from schemas import OrderItem, OrderRequest, OrderStatus

ADDRESS = {"street": "1 Main St", "city": "Pune", "state": "MH", "pincode": "411001"}


def stock_of(product):
    return database.get_document("product", product["_id"])["stock"]


class TestPlaceOrderEndpoint:
    def test_valid_order_creates_one_record_and_decrements_stock(self, client, user, user_headers, milk, cheese):
        response = client.post("/api/order", headers=user_headers, json={
            "items": [
                {"productId": str(milk["_id"]), "quantity": 3},
                {"productId": str(cheese["_id"]), "quantity": 1},
            ],
            "shippingAddress": ADDRESS,
        })

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["totalAmount"] == 17.5
        assert order["status"] == "pending"
        assert order["orderDate"]

        assert database.count_documents("order") == 1
        stored = database.get_document("order", order["id"])
        assert stored["userId"] == str(user["_id"])
        assert stored["paymentMethod"] == "cod"
        assert stored["shippingAddress"] == ADDRESS
        assert stored["deliveredDate"] is None
        assert [(i["productId"], i["name"], i["price"], i["quantity"]) for i in stored["items"]] == [
            (str(milk["_id"]), "Whole Milk", 2.5, 3),
            (str(cheese["_id"]), "Cheddar", 10.0, 1),
        ]

        assert stock_of(milk) == 7
        assert stock_of(cheese) == 2

    def test_quantity_above_stock_rejects_whole_request(self, client, user_headers, milk, cheese):
        response = client.post("/api/order", headers=user_headers, json={
            "items": [
                {"productId": str(milk["_id"]), "quantity": 2},
                {"productId": str(cheese["_id"]), "quantity": 4},
            ],
        })

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Insufficient stock for Cheddar"
        assert body["productId"] == str(cheese["_id"])
        assert stock_of(milk) == 10
        assert stock_of(cheese) == 3
        assert database.count_documents("order") == 0

    def test_missing_product_is_rejected(self, client, user_headers, milk):
        missing = "64b000000000000000000000"
        response = client.post("/api/order", headers=user_headers, json={
            "items": [{"productId": str(milk["_id"]), "quantity": 1}, {"productId": missing, "quantity": 1}],
        })

        assert response.status_code == 400
        assert response.json()["message"] == f"Product {missing} not found"
        assert stock_of(milk) == 10

    def test_malformed_product_id_is_not_found(self, client, user_headers):
        response = client.post("/api/order", headers=user_headers, json={
            "items": [{"productId": "nope", "quantity": 1}],
        })
        assert response.status_code == 400
        assert response.json()["code"] == "STOCK_ERROR"

    def test_empty_items_rejected(self, client, user_headers):
        response = client.post("/api/order", headers=user_headers, json={"items": []})
        assert response.status_code == 400
        assert response.json()["message"] == "No items in order"

    def test_zero_quantity_is_a_validation_error(self, client, user_headers, milk):
        response = client.post("/api/order", headers=user_headers, json={
            "items": [{"productId": str(milk["_id"]), "quantity": 0}],
        })
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_requires_credential(self, client, milk):
        response = client.post("/api/order", json={"items": [{"productId": str(milk["_id"]), "quantity": 1}]})
        assert response.status_code == 401

    def test_rejects_bad_credential(self, client, milk):
        response = client.post(
            "/api/order",
            headers={"Authorization": "Bearer not-a-token"},
            json={"items": [{"productId": str(milk["_id"]), "quantity": 1}]},
        )
        assert response.status_code == 403

    def test_admin_token_cannot_place_orders(self, client, admin_headers, milk):
        response = client.post("/api/order", headers=admin_headers, json={
            "items": [{"productId": str(milk["_id"]), "quantity": 1}],
        })
        assert response.status_code == 403

    def test_snapshot_survives_product_edit(self, client, user_headers, milk):
        response = client.post("/api/order", headers=user_headers, json={
            "items": [{"productId": str(milk["_id"]), "quantity": 1}],
        })
        order_id = response.json()["order"]["id"]

        database.update_document("product", milk["_id"], {"name": "Skimmed Milk", "price": 9.99})
        database.delete_document("product", milk["_id"])

        item = database.get_document("order", order_id)["items"][0]
        assert (item["name"], item["price"]) == ("Whole Milk", 2.5)


class TestUserOrders:
    def test_newest_first_and_only_own(self, client, user, user_headers, milk, db):
        for qty in (1, 2, 3):
            client.post("/api/order", headers=user_headers, json={
                "items": [{"productId": str(milk["_id"]), "quantity": qty}],
            })
        database.create_document("order", {"userId": "someone-else", "items": [], "totalAmount": 0})

        response = client.get("/api/user/orders", headers=user_headers)

        assert response.status_code == 200
        orders = response.json()
        assert [o["totalAmount"] for o in orders] == [7.5, 5.0, 2.5]
        assert all(o["userId"] == str(user["_id"]) for o in orders)


class TestPlacementService:
    def test_duplicate_lines_cannot_oversell(self, db, cheese):
        request = OrderRequest(items=[
            {"productId": str(cheese["_id"]), "quantity": 2},
            {"productId": str(cheese["_id"]), "quantity": 2},
        ])

        with pytest.raises(StockException):
            place_order("u1", request)

        assert stock_of(cheese) == 3
        assert database.count_documents("order") == 0

    def test_reserve_stock_restores_earlier_lines_when_later_line_runs_out(self, db, category):
        apples = make_product(category, name="Apples", stock=5)
        pears = make_product(category, name="Pears", stock=1)
        items = [
            OrderItem(product_id=str(apples["_id"]), name="Apples", price=1.0, quantity=4),
            OrderItem(product_id=str(pears["_id"]), name="Pears", price=1.0, quantity=2),
        ]

        with pytest.raises(StockException) as exc_info:
            reserve_stock(items)

        assert exc_info.value.product_id == str(pears["_id"])
        assert stock_of(apples) == 5
        assert stock_of(pears) == 1

    def test_empty_request(self, db):
        with pytest.raises(ValidationException):
            place_order("u1", OrderRequest(items=[]))

    def test_payment_method_is_recorded(self, db, milk):
        result = place_order("u1", OrderRequest(
            items=[{"productId": str(milk["_id"]), "quantity": 1}],
            paymentMethod="online",
        ))
        assert database.get_document("order", result["id"])["paymentMethod"] == "online"


class TestStatusMachine:
    def test_pending_offers_everything(self):
        assert allowed_next_statuses("pending") == list(OrderStatus)

    def test_forward_progression_plus_cancel(self):
        assert allowed_next_statuses(OrderStatus.PROCESSING) == [
            OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED,
        ]
        assert allowed_next_statuses("shipped") == [
            OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED,
        ]

    @pytest.mark.parametrize("status", ["delivered", "cancelled"])
    def test_terminal_statuses(self, status):
        assert allowed_next_statuses(status) == [OrderStatus(status)]

    def test_delivered_stamps_delivered_date(self, db, milk):
        order_id = place_order("u1", OrderRequest(items=[{"productId": str(milk["_id"]), "quantity": 1}]))["id"]

        shipped = update_order_status(order_id, "shipped")
        assert shipped["status"] == "shipped"
        assert shipped["deliveredDate"] is None

        delivered = update_order_status(order_id, OrderStatus.DELIVERED)
        assert delivered["status"] == "delivered"
        assert delivered["deliveredDate"] is not None


def test_expired_user_token_is_rejected(client, user, milk):
    from datetime import timedelta

    token = create_token({"userId": str(user["_id"]), "email": user["email"]}, expires_in=timedelta(seconds=-10))
    response = client.get("/api/user/orders", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["message"] == "Token expired"
