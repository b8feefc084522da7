"""Tests for normalized error responses."""


def test_validation_error_has_standard_shape(client, auth_headers):
    resp = client.put("/api/preferences/anonymization", json={"level": "paranoid"}, headers=auth_headers())
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["request_id"] == resp.headers["x-request-id"]
    assert body["detail"] == body["error"]["message"]


def test_missing_token_is_auth_required(client):
    resp = client.get("/api/credits/balance")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "auth_required"


def test_unknown_route_is_not_found(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_admin_route_forbidden_for_regular_user(client, auth_headers):
    resp = client.get("/api/admin/promo-codes", headers=auth_headers("user-1"))
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "forbidden"


def test_insufficient_credits_carries_balance(client, auth_headers, set_balance):
    set_balance("user-1", free=0, paid=0)
    resp = client.post(
        "/api/credits/consume",
        json={"tool": "reportcard", "action": "appreciation", "students_cost": 1},
        headers=auth_headers(),
    )
    assert resp.status_code == 402
    body = resp.json()
    assert body["error"]["code"] == "no_credits"
    assert body["balance"] == 0
