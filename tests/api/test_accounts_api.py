"""
Tests for account API endpoints.
"""


def test_open_account_returns_201(client, auth_headers):
    response = client.post(
        "/accounts/me",
        headers=auth_headers("alice", email="alice@test.com", name="Alice"),
        json={},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == "alice"
    assert data["email"] == "alice@test.com"
    assert data["display_name"] == "Alice"
    assert data["balance"] == 0


def test_open_account_is_idempotent(client, auth_headers):
    headers = auth_headers("alice", name="Alice")
    client.post("/accounts/me", headers=headers, json={})

    response = client.post("/accounts/me", headers=headers, json={"display_name": "Other"})

    assert response.status_code == 201
    assert response.json()["display_name"] == "Alice"


def test_get_unknown_account_returns_404(client, auth_headers):
    response = client.get("/accounts/me", headers=auth_headers("ghost"))
    assert response.status_code == 404


def test_ledger_newest_first(client, make_account, auth_headers, clock):
    make_account("alice", balance=500)
    clock.advance(minutes=1)
    make_account("alice", balance=200)

    response = client.get("/accounts/me/ledger", headers=auth_headers("alice"))

    assert response.status_code == 200
    amounts = [entry["amount"] for entry in response.json()]
    assert amounts == [200, 500]
    assert response.json()[0]["entry_type"] == "Receive"
