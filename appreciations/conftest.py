# appreciations/conftest.py
import os
import time

import pytest

# Configure before anything reads settings
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("TEST_DATABASE_URL", None)
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-with-enough-bytes-for-hs256"
os.environ["ADMIN_USER_IDS"] = "admin-1"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["FREE_STUDENTS_ON_SIGNUP"] = "30"
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("STRIPE_WEBHOOK_SECRET", None)
os.environ.pop("GROQ_API_KEY", None)

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    """Create all tables once per session on the shared in-memory database."""
    from appreciations.core.database import create_all_tables, drop_all_tables

    create_all_tables()
    yield
    drop_all_tables()


@pytest.fixture(autouse=True)
def reset_db():
    """Every test starts and ends with empty tables."""
    from appreciations.core.database import truncate_all_tables

    truncate_all_tables()
    yield
    truncate_all_tables()


@pytest.fixture
def make_token():
    import jwt

    def _make(user_id="user-1", email="prof@example.fr", *, expires_in=3600, secret=JWT_SECRET, audience="authenticated"):
        now = int(time.time())
        payload = {"sub": user_id, "email": email, "aud": audience, "iat": now, "exp": now + expires_in}
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    def _headers(user_id="user-1", email="prof@example.fr"):
        return {"Authorization": f"Bearer {make_token(user_id, email)}"}

    return _headers


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from appreciations.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def set_balance():
    """Create or overwrite a profile with the given credit pools."""
    from sqlalchemy import update

    from appreciations.core.database import get_db_session, profiles
    from appreciations.features.profiles.service import ensure_profile

    def _set(user_id="user-1", free=0, paid=0, regenerations=None):
        ensure_profile(user_id, f"{user_id}@example.fr")
        with get_db_session() as session:
            session.execute(
                update(profiles)
                .where(profiles.c.id == user_id)
                .values(
                    free_students_remaining=free,
                    students_balance=paid,
                    free_regenerations_used=regenerations or {},
                )
            )

    return _set
