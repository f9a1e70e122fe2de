"""
Tests for reward code API endpoints.
"""

import pytest

from topup_store.models.enums import RewardType
from topup_store.schemas.redemption import RewardCreate
from topup_store.services.redemption_service import RedemptionService


@pytest.fixture
def rewards(db_session, make_account):
    make_account("alice")
    service = RedemptionService(db_session)
    service.create_reward(RewardCreate(
        code="WELCOME", reward_type=RewardType.CHOICES, value=250,
    ))
    service.create_reward(RewardCreate(
        code="SECRET", reward_type=RewardType.REDEMPTION_KEY,
        redemption_key="open-sesame", secret_message="you found it",
    ))
    db_session.commit()


def test_check_hides_key(client, rewards, auth_headers):
    response = client.post(
        "/rewards/check", headers=auth_headers("alice"), json={"code": "secret"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["code"] == "SECRET"
    assert "redemption_key" not in data
    assert "secret_message" not in data


def test_check_unknown_returns_404(client, rewards, auth_headers):
    response = client.post(
        "/rewards/check", headers=auth_headers("alice"), json={"code": "NOPE"},
    )
    assert response.status_code == 404


def test_redeem_choices(client, rewards, auth_headers):
    response = client.post(
        "/rewards/redeem", headers=auth_headers("alice"), json={"code": "welcome"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["credited"] == 250
    me = client.get("/accounts/me", headers=auth_headers("alice")).json()
    assert me["balance"] == 250


def test_redeem_twice_returns_409(client, rewards, auth_headers):
    client.post("/rewards/redeem", headers=auth_headers("alice"), json={"code": "WELCOME"})

    response = client.post(
        "/rewards/redeem", headers=auth_headers("alice"), json={"code": "WELCOME"},
    )

    assert response.status_code == 409
    assert response.json()["reason"] == "AlreadyRedeemed"


def test_wrong_key_returns_400(client, rewards, auth_headers):
    response = client.post("/rewards/redeem", headers=auth_headers("alice"), json={
        "code": "SECRET", "payload": "guess",
    })

    assert response.status_code == 400
    assert response.json()["reason"] == "WrongKey"


def test_right_key_returns_secret(client, rewards, auth_headers):
    response = client.post("/rewards/redeem", headers=auth_headers("alice"), json={
        "code": "SECRET", "payload": "open-sesame",
    })

    assert response.json()["data"]["secret_message"] == "you found it"
