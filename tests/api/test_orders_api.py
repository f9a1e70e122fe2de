"""
Tests for order and gift API endpoints.

These test the HTTP layer: authentication, status codes and
the result envelope. Business logic is tested in
test_order_service.py.
"""

import pytest

from topup_store.api.deps import get_engine
from topup_store.main import app
from topup_store.services.engine import StorefrontEngine


DELIVERY = {"game_user_id": "12345678", "zone_id": "2001"}


@pytest.fixture
def shop(make_account, make_product):
    make_account("alice", balance=10000, display_name="Alice")
    make_account("bob", display_name="Bob")
    make_product("diamonds-86", price=1500)


@pytest.fixture
def clocked_client(client, db_session, clock):
    """Client whose engine runs on the test clock."""
    app.dependency_overrides[get_engine] = lambda: StorefrontEngine(db_session, clock=clock)
    return client


def send_gift(client, auth_headers):
    response = client.post("/orders", headers=auth_headers("alice"), json={
        "product_id": "diamonds-86", "is_gift": True, "recipient_id": "bob",
    })
    assert response.status_code == 201
    return response.json()["data"]["order"]["id"]


class TestAuthentication:

    def test_missing_token_returns_401(self, client, shop):
        response = client.post("/orders", json={"product_id": "diamonds-86"})
        assert response.status_code == 401

    def test_bad_token_returns_401(self, client, shop):
        response = client.post(
            "/orders",
            headers={"Authorization": "Bearer not-a-jwt"},
            json={"product_id": "diamonds-86"},
        )
        assert response.status_code == 401


class TestCreateOrder:

    def test_create_order_returns_201(self, client, shop, auth_headers):
        response = client.post("/orders", headers=auth_headers("alice"), json={
            "product_id": "diamonds-86", "quantity": 2,
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["order"]["final_amount_paid"] == 3500
        assert body["data"]["order"]["reference_code"].startswith("ORD-")

    def test_insufficient_balance_returns_402(self, client, shop, auth_headers):
        response = client.post("/orders", headers=auth_headers("bob"), json={
            "product_id": "diamonds-86",
        })

        assert response.status_code == 402
        body = response.json()
        assert body["success"] is False
        assert body["error_kind"] == "InsufficientBalance"

    def test_invalid_payload_returns_400(self, client, shop, auth_headers):
        response = client.post("/orders", headers=auth_headers("alice"), json={
            "quantity": 1,
        })

        assert response.status_code == 400
        assert response.json()["error_kind"] == "ValidationError"

    def test_unknown_product_returns_404(self, client, shop, auth_headers):
        response = client.post("/orders", headers=auth_headers("alice"), json={
            "product_id": "missing",
        })
        assert response.status_code == 404

    def test_get_order(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)

        assert client.get(f"/orders/{order_id}", headers=auth_headers("bob")).status_code == 200
        assert client.get(f"/orders/{order_id}", headers=auth_headers("carol")).status_code == 404


class TestGiftFlow:

    def test_claim_returns_200(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)

        response = client.post(
            f"/gifts/{order_id}/claim",
            headers=auth_headers("bob"),
            json={"delivery_details": DELIVERY},
        )

        assert response.status_code == 200
        assert response.json()["data"]["order"]["status"] == "claimed"

    def test_second_claim_returns_409(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)
        client.post(
            f"/gifts/{order_id}/claim",
            headers=auth_headers("bob"),
            json={"delivery_details": DELIVERY},
        )

        response = client.post(
            f"/gifts/{order_id}/claim",
            headers=auth_headers("bob"),
            json={"delivery_details": DELIVERY},
        )

        assert response.status_code == 409
        assert response.json()["error_kind"] == "StateConflict"

    def test_claim_by_other_user_returns_403(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)

        response = client.post(
            f"/gifts/{order_id}/claim",
            headers=auth_headers("alice"),
            json={"delivery_details": DELIVERY},
        )
        assert response.status_code == 403

    def test_claim_without_details_returns_400(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)

        response = client.post(f"/gifts/{order_id}/claim", headers=auth_headers("bob"))
        assert response.status_code == 400

    def test_update_delivery(self, client, shop, auth_headers):
        order_id = send_gift(client, auth_headers)
        client.post(
            f"/gifts/{order_id}/claim",
            headers=auth_headers("bob"),
            json={"delivery_details": DELIVERY},
        )

        response = client.patch(
            f"/gifts/{order_id}/delivery",
            headers=auth_headers("bob"),
            json={"delivery_details": {"game_user_id": "999"}},
        )

        assert response.status_code == 200
        assert response.json()["data"]["order"]["delivery_details"] == {"game_user_id": "999"}

    def test_refund_before_expiry_returns_409(self, clocked_client, shop, auth_headers):
        order_id = send_gift(clocked_client, auth_headers)

        response = clocked_client.post(
            f"/gifts/{order_id}/refund", headers=auth_headers("alice"),
        )

        assert response.status_code == 409
        assert response.json()["reason"] == "NotExpired"

    def test_refund_after_expiry(self, clocked_client, shop, auth_headers, clock):
        order_id = send_gift(clocked_client, auth_headers)
        clock.advance(hours=73)

        response = clocked_client.post(
            f"/gifts/{order_id}/refund", headers=auth_headers("alice"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["refunded_amount"] == 1500
        me = clocked_client.get("/accounts/me", headers=auth_headers("alice")).json()
        assert me["balance"] == 9500
