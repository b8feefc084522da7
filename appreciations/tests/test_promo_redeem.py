"""Promo code redemption: status order, crediting and the compensating rollback."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import insert, select, update
from sqlalchemy.exc import OperationalError

from appreciations.core.database import get_db_session, profiles, promo_code_redemptions, promo_codes
from appreciations.features.profiles.service import get_profile
from appreciations.features.promo.service import redeem_promo_code
from appreciations.models.promo import RedemptionStatus


def add_code(code="BIENVENUE", **values):
    row = dict(code=code, type="free_credits", value=20, max_uses=None, is_active=True)
    row.update(values)
    with get_db_session() as session:
        result = session.execute(insert(promo_codes).values(**row))
        return result.inserted_primary_key[0]


def current_uses(promo_id):
    with get_db_session() as session:
        return session.execute(select(promo_codes.c.current_uses).where(promo_codes.c.id == promo_id)).scalar()


@pytest.fixture
def user(set_balance):
    set_balance("user-1", free=30, paid=5)
    return "user-1"


def test_free_credits_code_adds_paid_students(user):
    promo_id = add_code()
    result = redeem_promo_code(user, "  bienvenue ")

    assert result.success is True
    assert result.status == RedemptionStatus.SUCCESS
    assert result.message == "🎉 +20 élèves ajoutés à votre compte !"
    assert result.credits_awarded == 20
    assert result.new_balance == 25
    assert get_profile(user).students_balance == 25
    assert current_uses(promo_id) == 1


def test_discount_code_awards_nothing(user):
    add_code("RENTREE10", type="discount", value=10)
    result = redeem_promo_code(user, "rentree10")
    assert result.success
    assert result.message == "🎉 Réduction de 10% appliquée !"
    assert result.credits_awarded == 0
    assert get_profile(user).students_balance == 5


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_code(user, raw):
    result = redeem_promo_code(user, raw)
    assert result.status == RedemptionStatus.INVALID
    assert result.http_status == 400
    assert result.message == "Veuillez entrer un code promo valide."


def test_unknown_code(user):
    result = redeem_promo_code(user, "NOPE")
    assert result.status == RedemptionStatus.INVALID
    assert result.http_status == 404


def test_inactive_code(user):
    add_code(is_active=False)
    result = redeem_promo_code(user, "BIENVENUE")
    assert result.status == RedemptionStatus.INVALID
    assert result.message == "Ce code promo n'est plus actif."


def test_not_yet_valid_code(user):
    add_code(valid_from=datetime.now(timezone.utc) + timedelta(days=2))
    result = redeem_promo_code(user, "BIENVENUE")
    assert result.status == RedemptionStatus.INVALID
    assert "pas encore valide" in result.message


def test_expired_code(user):
    add_code(valid_until=datetime.now(timezone.utc) - timedelta(days=1))
    result = redeem_promo_code(user, "BIENVENUE")
    assert result.status == RedemptionStatus.EXPIRED
    assert result.http_status == 400


def test_exhausted_code(user):
    add_code(max_uses=2, current_uses=2)
    assert redeem_promo_code(user, "BIENVENUE").status == RedemptionStatus.EXHAUSTED


def test_inactive_wins_over_expired(user):
    add_code(is_active=False, valid_until=datetime.now(timezone.utc) - timedelta(days=1))
    assert redeem_promo_code(user, "BIENVENUE").status == RedemptionStatus.INVALID


def test_second_redemption_is_refused(user):
    add_code()
    assert redeem_promo_code(user, "BIENVENUE").success
    again = redeem_promo_code(user, "BIENVENUE")
    assert again.status == RedemptionStatus.ALREADY_USED
    assert get_profile(user).students_balance == 25


def test_failed_redemption_record_takes_credit_back(user):
    add_code()
    with patch(
        "appreciations.features.promo.service._record_redemption",
        side_effect=OperationalError("INSERT", {}, Exception("disk full")),
    ):
        result = redeem_promo_code(user, "BIENVENUE")

    assert result.status == RedemptionStatus.ERROR
    assert result.http_status == 500
    assert get_profile(user).students_balance == 5
    with get_db_session() as session:
        assert session.execute(select(promo_code_redemptions)).fetchall() == []


def test_rollback_keeps_balance_changes_made_meanwhile(user):
    add_code()

    def purchase_then_fail(*args):
        with get_db_session() as session:
            session.execute(
                update(profiles).where(profiles.c.id == user).values(students_balance=profiles.c.students_balance + 35)
            )
        raise OperationalError("INSERT", {}, Exception("disk full"))

    with patch("appreciations.features.promo.service._record_redemption", side_effect=purchase_then_fail):
        result = redeem_promo_code(user, "BIENVENUE")

    assert result.status == RedemptionStatus.ERROR
    assert get_profile(user).students_balance == 5 + 35


def test_failed_use_counter_keeps_redemption(user):
    promo_id = add_code()
    with patch(
        "appreciations.features.promo.service._increment_uses",
        side_effect=OperationalError("UPDATE", {}, Exception("locked")),
    ):
        result = redeem_promo_code(user, "BIENVENUE")

    assert result.success
    assert current_uses(promo_id) == 0
    assert get_profile(user).students_balance == 25


def test_redeem_endpoint_requires_auth(client):
    resp = client.post("/api/promo/redeem", json={"code": "BIENVENUE"})
    assert resp.status_code == 401
    assert resp.json() == {
        "success": False,
        "status": "AUTH_REQUIRED",
        "message": "Connexion requise pour utiliser un code promo.",
    }


def test_redeem_endpoint_rejects_bad_token(client, make_token):
    token = make_token(secret="another-secret-of-sufficient-length-123")
    resp = client.post("/api/promo/redeem", json={"code": "X"}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Session invalide. Veuillez vous reconnecter."


def test_redeem_endpoint_wire_format(client, auth_headers):
    add_code()
    resp = client.post("/api/promo/redeem", json={"code": "bienvenue"}, headers=auth_headers("user-2"))
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "status": "SUCCESS",
        "message": "🎉 +20 élèves ajoutés à votre compte !",
        "creditsAwarded": 20,
        "newBalance": 20,
    }


def test_redeem_endpoint_handles_missing_body(client, auth_headers):
    resp = client.post("/api/promo/redeem", content=b"not json", headers=auth_headers())
    assert resp.status_code == 400
    assert resp.json()["status"] == "INVALID"
