"""Tests for the FastAPI surface."""

import asyncio

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from database import get_broadcaster, get_store
from helpers import fund, user_doc, wallet
from main import app
from utils.jwt import create_access_token


@pytest.fixture
def client(store, broadcaster):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


def order_payload(market, **overrides):
    payload = {
        "customer_name": "Maria",
        "customer_phone": "+258840000000",
        "region_id": 1,
        "address": "Av. Julius Nyerere 100, Maputo",
        "items": [
            {"id": str(market.phone), "quantity": 2, "price": 1000},
            {"id": str(market.rice), "quantity": 1, "price": 1250},
        ],
        "total_amount": 3250,
    }
    payload.update(overrides)
    return payload


def create_order(client, market, **overrides):
    response = client.post("/api/orders", json=order_payload(market, **overrides))
    assert response.status_code == 200, response.text
    return response.json()["orderId"]


class TestHealthCheck:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestOrders:
    def test_create_and_read_back(self, client, market):
        response = client.post("/api/orders", json=order_payload(market))
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True

        response = client.get(f"/api/orders/{data['orderId']}")
        assert response.status_code == 200
        order = response.json()["order"]
        assert order["id"] == data["orderId"]
        assert order["status"] == "pending"
        assert sum(i["price"] * i["quantity"] for i in order["items"]) == order["total_amount"]
        assert {i["product_name"] for i in order["items"]} == {
            "Smartphone Android X1",
            "Saco de Arroz 25kg",
        }

    def test_decimal_prices(self, client, market):
        order_id = create_order(
            client,
            market,
            items=[{"id": str(market.case), "quantity": 2, "price": "25.50"}],
            total_amount="51.00",
        )

        order = client.get(f"/api/orders/{order_id}").json()["order"]
        assert order["total_amount"] == 51.0

    def test_empty_items_is_a_client_error(self, client, market):
        response = client.post("/api/orders", json=order_payload(market, items=[], total_amount=0))
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_total_mismatch(self, client, market):
        response = client.post("/api/orders", json=order_payload(market, total_amount=3000))
        assert response.status_code == 400
        assert "total_amount" in response.json()["error"]

    def test_oversell_conflicts_and_keeps_stock(self, client, store, market):
        response = client.post(
            "/api/orders",
            json=order_payload(
                market,
                items=[{"id": str(market.case), "quantity": 6, "price": 25.5}],
                total_amount=153,
            ),
        )
        assert response.status_code == 409
        assert store.snapshot("products")[market.case]["stock"] == 5
        assert store.snapshot("orders") == {}

    def test_unknown_order(self, client, market):
        response = client.get(f"/api/orders/{market.missing}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": f"Order {market.missing} not found"}

    def test_invalid_order_id(self, client):
        response = client.get("/api/orders/123")
        assert response.status_code == 400


class TestBuyerIdentity:
    def test_signed_in_buyer_is_recorded_and_earns_points(self, client, store, market):
        response = client.post("/api/orders", json=order_payload(market), headers=auth(market.buyer, "buyer"))
        assert response.status_code == 200
        order_id = response.json()["orderId"]
        assert store.snapshot("orders")[ObjectId(order_id)]["buyer_id"] == market.buyer

        response = client.patch(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "delivered"},
            headers=auth(market.admin, "admin"),
        )
        assert response.status_code == 200

        # 3250.00 MT at one point per 100 MT
        assert user_doc(store, market.buyer)["loyalty_points"] == 32

    def test_guest_orders_have_no_buyer(self, client, store, market):
        order_id = create_order(client, market)

        assert store.snapshot("orders")[ObjectId(order_id)]["buyer_id"] is None

    def test_guest_cannot_claim_a_buyer(self, client, store, market):
        response = client.post("/api/orders", json=order_payload(market, buyer_id=str(market.seller_b)))

        assert response.status_code == 401
        assert response.json()["success"] is False
        assert store.snapshot("orders") == {}

    def test_buyer_id_must_match_the_token(self, client, store, market):
        response = client.post(
            "/api/orders",
            json=order_payload(market, buyer_id=str(market.seller_b)),
            headers=auth(market.buyer, "buyer"),
        )

        assert response.status_code == 403
        assert store.snapshot("orders") == {}
        assert user_doc(store, market.seller_b)["loyalty_points"] == 0

    def test_matching_buyer_id_is_accepted(self, client, store, market):
        response = client.post(
            "/api/orders",
            json=order_payload(market, buyer_id=str(market.buyer)),
            headers=auth(market.buyer, "buyer"),
        )

        assert response.status_code == 200
        order_id = ObjectId(response.json()["orderId"])
        assert store.snapshot("orders")[order_id]["buyer_id"] == market.buyer

    def test_bad_token_is_rejected(self, client, store, market):
        response = client.post(
            "/api/orders",
            json=order_payload(market),
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert store.snapshot("orders") == {}


class TestStatusTransition:
    def test_requires_admin(self, client, market):
        order_id = create_order(client, market)

        response = client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "delivered"})
        assert response.status_code in (401, 403)

        response = client.patch(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "delivered"},
            headers=auth(market.seller_a, "seller"),
        )
        assert response.status_code == 403

    def test_delivery_settles_seller_once(self, client, store, market):
        order_id = create_order(client, market)
        admin = auth(market.admin, "admin")

        for _ in range(2):
            response = client.patch(
                f"/api/admin/orders/{order_id}/status",
                json={"status": "delivered"},
                headers=admin,
            )
            assert response.status_code == 200
            assert response.json()["success"] is True

        assert wallet(store, market.seller_a) == 180000

        response = client.get(f"/api/seller/wallet/{market.seller_a}", headers=auth(market.seller_a, "seller"))
        assert response.status_code == 200
        assert response.json()["wallet_balance"] == 1800

    def test_unknown_status(self, client, market):
        order_id = create_order(client, market)
        response = client.patch(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "lost"},
            headers=auth(market.admin, "admin"),
        )
        assert response.status_code == 400

    def test_missing_order(self, client, market):
        response = client.patch(
            f"/api/admin/orders/{market.missing}/status",
            json={"status": "delivered"},
            headers=auth(market.admin, "admin"),
        )
        assert response.status_code == 404

    def test_illegal_transition(self, client, market):
        order_id = create_order(client, market)
        admin = auth(market.admin, "admin")
        client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin)

        response = client.patch(f"/api/admin/orders/{order_id}/status", json={"status": "delivered"}, headers=admin)
        assert response.status_code == 409

    def test_admin_order_list_newest_first(self, client, market):
        first = create_order(client, market)
        second = create_order(client, market)

        response = client.get("/api/admin/orders", headers=auth(market.admin, "admin"))
        assert [o["id"] for o in response.json()["orders"]] == [second, first]


class TestPayouts:
    def test_insufficient_funds(self, client, store, market):
        asyncio.run(fund(store, market.seller_a, 30000))

        response = client.post(
            "/api/seller/payouts",
            json={"sellerId": str(market.seller_a), "amount": 500, "method": "mpesa"},
            headers=auth(market.seller_a, "seller"),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Insufficient funds"}
        assert wallet(store, market.seller_a) == 30000

    def test_request_list_and_reject(self, client, store, market):
        asyncio.run(fund(store, market.seller_a, 100000))
        seller = auth(market.seller_a, "seller")

        response = client.post(
            "/api/seller/payouts",
            json={"sellerId": str(market.seller_a), "amount": 400, "method": "emola"},
            headers=seller,
        )
        assert response.status_code == 200
        payout_id = response.json()["payoutId"]
        assert wallet(store, market.seller_a) == 60000

        payouts = client.get(f"/api/seller/payouts/{market.seller_a}", headers=seller).json()["payouts"]
        assert [(p["id"], p["status"], p["amount"]) for p in payouts] == [(payout_id, "pending", 400)]

        response = client.post(
            f"/api/admin/payout-requests/{payout_id}/decision",
            json={"action": "reject", "reason": "Wrong number"},
            headers=auth(market.admin, "admin"),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert wallet(store, market.seller_a) == 100000

        pending = client.get(
            "/api/admin/payout-requests?status=pending",
            headers=auth(market.admin, "admin"),
        ).json()
        assert pending["count"] == 0

    def test_seller_cannot_withdraw_for_another_seller(self, client, market):
        response = client.post(
            "/api/seller/payouts",
            json={"sellerId": str(market.seller_b), "amount": 1, "method": "mpesa"},
            headers=auth(market.seller_a, "seller"),
        )
        assert response.status_code == 403

    def test_buyer_cannot_request_payouts(self, client, market):
        response = client.post(
            "/api/seller/payouts",
            json={"sellerId": str(market.buyer), "amount": 1, "method": "mpesa"},
            headers=auth(market.buyer, "buyer"),
        )
        assert response.status_code == 403


class TestNotifications:
    def test_list_and_mark_read(self, client, market):
        order_id = create_order(client, market)
        client.patch(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "delivered"},
            headers=auth(market.admin, "admin"),
        )
        seller = auth(market.seller_a, "seller")

        notes = client.get(f"/api/notifications/{market.seller_a}", headers=seller).json()["notifications"]
        assert len(notes) == 1
        assert notes[0]["is_read"] is False

        response = client.patch(f"/api/notifications/{notes[0]['id']}/read", headers=seller)
        assert response.status_code == 200

        notes = client.get(f"/api/notifications/{market.seller_a}", headers=seller).json()["notifications"]
        assert notes[0]["is_read"] is True

    def test_other_users_cannot_read(self, client, market):
        response = client.get(f"/api/notifications/{market.seller_a}", headers=auth(market.seller_b, "seller"))
        assert response.status_code == 403


class TestEventStream:
    def test_new_order_is_pushed_to_listeners(self, client, market):
        with client.websocket_connect("/ws?topics=new_order") as ws:
            order_id = create_order(client, market)
            event = ws.receive_json()

        assert event == {"event": "new_order", "data": {"id": order_id, "status": "pending"}}

    def test_disconnect_releases_the_subscription(self, client, broadcaster):
        with client.websocket_connect("/ws"):
            pass

        assert broadcaster.subscriber_count == 0


class TestSellerAnalytics:
    def test_delivered_sales_and_top_products(self, client, market):
        order_id = create_order(client, market)
        client.patch(
            f"/api/admin/orders/{order_id}/status",
            json={"status": "delivered"},
            headers=auth(market.admin, "admin"),
        )

        response = client.get(f"/api/seller/analytics/{market.seller_a}", headers=auth(market.seller_a, "seller"))

        assert response.status_code == 200
        data = response.json()
        assert data["seller_id"] == str(market.seller_a)
        assert len(data["sales"]) == 1
        assert data["sales"][0]["total"] == 2000
        assert data["top_products"] == [
            {"product_id": str(market.phone), "name": "Smartphone Android X1", "count": 2},
        ]

    def test_other_sellers_cannot_read(self, client, market):
        response = client.get(f"/api/seller/analytics/{market.seller_a}", headers=auth(market.seller_b, "seller"))
        assert response.status_code == 403
