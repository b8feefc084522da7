from sqlalchemy.exc import OperationalError

import appreciations.api.health as health_api
from appreciations.core.database import get_db


def test_healthz_always_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_ok_when_tables_exist(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_readyz_reports_missing_tables(client, monkeypatch):
    monkeypatch.setattr(health_api, "required_tables", lambda: ["profiles", "does_not_exist"])
    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert "does_not_exist" in resp.json()["detail"]


def test_readyz_db_unreachable(client):
    class DownSession:
        def execute(self, statement):
            raise OperationalError("SELECT 1", {}, Exception("db down"))

    client.app.dependency_overrides[get_db] = lambda: DownSession()
    try:
        resp = client.get("/readyz")
    finally:
        client.app.dependency_overrides.clear()
    assert resp.status_code == 503
    assert resp.json() == {"status": "error", "detail": "database unreachable"}


def test_health_db_with_pinned_time(client):
    resp = client.get("/api/health/db", params={"now": "2026-01-15T12:00:00+00:00"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["computed_at"] == "2026-01-15T12:00:00+00:00"
    assert body["db"]["latency_ms"] is None
    assert "profiles" in body["db"]["tables_present"]
    assert "promo_codes" in body["db"]["tables_present"]
