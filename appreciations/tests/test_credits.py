"""Credit consumption: pools, limits, free regenerations and the audit trail."""

import pytest
from sqlalchemy import select

from appreciations.core.database import generations, get_db_session
from appreciations.core.errors import InsufficientCreditsError, NotFoundError
from appreciations.features.credits.service import consume_credits, get_balance
from appreciations.features.profiles.service import ensure_profile, get_profile
from appreciations.models.credits import ConsumeCreditsRequest


def _req(cost=1, **kwargs):
    values = dict(tool="reportcard", action="appreciation", students_cost=cost)
    values.update(kwargs)
    return ConsumeCreditsRequest(**values)


def _generation_rows(user_id):
    with get_db_session() as session:
        return session.execute(select(generations).where(generations.c.user_id == user_id)).fetchall()


def test_new_profile_gets_signup_allowance():
    profile = ensure_profile("fresh", "fresh@example.fr")
    assert profile.free_students_remaining == 30
    assert profile.students_balance == 0
    assert ensure_profile("fresh").free_students_remaining == 30


def test_free_pool_is_spent_first(set_balance):
    set_balance(free=2, paid=10)
    result = consume_credits("user-1", _req(cost=3))

    assert result.credits_used == 3
    assert result.new_balance.free_remaining == 0
    assert result.new_balance.paid_remaining == 9
    assert result.new_balance.total == 9

    rows = _generation_rows("user-1")
    assert len(rows) == 1
    assert rows[0].students_used == 3
    assert rows[0].is_free is True


def test_zero_balance_is_rejected(set_balance):
    set_balance(free=0, paid=0)
    with pytest.raises(InsufficientCreditsError) as exc:
        consume_credits("user-1", _req())
    assert exc.value.message == "Crédits insuffisants"
    assert exc.value.balance == 0


def test_small_overdraft_allowed(set_balance):
    set_balance(free=1, paid=0)
    result = consume_credits("user-1", _req(cost=6))
    assert result.new_balance.total == -5


def test_overdraft_beyond_limit_rejected(set_balance):
    set_balance(free=1, paid=0)
    with pytest.raises(InsufficientCreditsError) as exc:
        consume_credits("user-1", _req(cost=7))
    assert "limite" in exc.value.message
    assert get_profile("user-1").free_students_remaining == 1


def test_free_regenerations_per_class(set_balance):
    set_balance(free=5, paid=0)
    regen = _req(is_regeneration=True, regeneration_type="appreciation", class_id="3A")

    for _ in range(3):
        result = consume_credits("user-1", regen)
        assert result.was_free_regeneration is True
        assert result.credits_used == 0

    fourth = consume_credits("user-1", regen)
    assert fourth.was_free_regeneration is False
    assert fourth.new_balance.total == 4

    # Another class has its own allowance
    assert consume_credits("user-1", regen.model_copy(update={"class_id": "4B"})).was_free_regeneration

    profile = get_profile("user-1")
    assert profile.free_regenerations_used == {"3A_appreciations": 3, "4B_appreciations": 1}

    free_rows = [r for r in _generation_rows("user-1") if r.is_free_regeneration]
    assert len(free_rows) == 4
    assert free_rows[0].action == "regeneration"
    assert free_rows[0].metadata == {"type": "appreciation", "freeRegenNumber": 1}


def test_bilan_has_a_single_free_regeneration(set_balance):
    set_balance(free=5, paid=0)
    regen = _req(action="bilan", is_regeneration=True, regeneration_type="bilan", class_id="3A")
    assert consume_credits("user-1", regen).was_free_regeneration
    assert not consume_credits("user-1", regen).was_free_regeneration


def test_balance_reports_regenerations_for_class(set_balance):
    set_balance(free=3, paid=7, regenerations={"3A_appreciations": 2})
    balance = get_balance("user-1", "3A")
    assert balance.total == 10
    assert balance.free_regenerations_remaining == {"appreciation": 1, "bilan": 1}
    assert get_balance("user-1").free_regenerations_remaining is None


def test_unknown_profile():
    with pytest.raises(NotFoundError):
        consume_credits("ghost", _req())


def test_balance_endpoint_creates_profile(client, auth_headers):
    resp = client.get("/api/credits/balance", headers=auth_headers("newcomer"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["free_remaining"] == 30
    assert body["total"] == 30
    assert body["plan"] is None


def test_consume_endpoint(client, auth_headers, set_balance):
    set_balance(free=0, paid=4)
    resp = client.post(
        "/api/credits/consume",
        json={"tool": "classcouncil", "action": "batch", "students_cost": 3, "class_id": "5C"},
        headers=auth_headers(),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["new_balance"] == {"free_remaining": 0, "paid_remaining": 1, "total": 1}


def test_consume_endpoint_validates_body(client, auth_headers):
    resp = client.post(
        "/api/credits/consume",
        json={"tool": "reportcard", "action": "appreciation", "students_cost": -1},
        headers=auth_headers(),
    )
    assert resp.status_code == 422
