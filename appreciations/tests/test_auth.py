import asyncio

import httpx
import pytest

from appreciations.core import auth
from appreciations.core.errors import AuthRequiredError
from appreciations.features.profiles.service import get_profile


def test_valid_token(make_token):
    user = auth.verify_supabase_jwt(make_token("user-9", "nine@example.fr"))
    assert user.id == "user-9"
    assert user.email == "nine@example.fr"


def test_expired_token(make_token):
    with pytest.raises(AuthRequiredError) as exc:
        auth.verify_supabase_jwt(make_token(expires_in=-60))
    assert "expirée" in exc.value.message


@pytest.mark.parametrize(
    "kwargs",
    [
        {"audience": "anon"},
        {"secret": "a-completely-different-secret-value-0000"},
    ],
)
def test_rejected_tokens(make_token, kwargs):
    with pytest.raises(AuthRequiredError):
        auth.verify_supabase_jwt(make_token(**kwargs))


def test_first_request_creates_profile(client, auth_headers):
    assert get_profile("brand-new") is None
    client.get("/api/credits/balance", headers=auth_headers("brand-new", "new@example.fr"))
    profile = get_profile("brand-new")
    assert profile.email == "new@example.fr"
    assert profile.free_students_remaining == 30


def test_malformed_authorization_header(client):
    resp = client.get("/api/credits/balance", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401


class TestSupabaseLookup:
    @pytest.fixture(autouse=True)
    def remote_auth(self, monkeypatch):
        monkeypatch.setattr(auth.settings, "SUPABASE_JWT_SECRET", None)
        monkeypatch.setattr(auth.settings, "SUPABASE_URL", "https://project.supabase.co")
        monkeypatch.setattr(auth.settings, "SUPABASE_ANON_KEY", "anon-key")

    def _mock_transport(self, monkeypatch, handler):
        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            auth.httpx,
            "AsyncClient",
            lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
        )

    def test_user_resolved_by_supabase(self, monkeypatch):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json={"id": "remote-1", "email": "remote@example.fr"})

        self._mock_transport(monkeypatch, handler)
        user = asyncio.run(auth.authenticate_token("opaque-token"))

        assert user.id == "remote-1"
        assert seen == {"url": "https://project.supabase.co/auth/v1/user", "apikey": "anon-key"}

    def test_rejected_by_supabase(self, monkeypatch):
        self._mock_transport(monkeypatch, lambda request: httpx.Response(401, json={"msg": "bad jwt"}))
        with pytest.raises(AuthRequiredError):
            asyncio.run(auth.authenticate_token("opaque-token"))
