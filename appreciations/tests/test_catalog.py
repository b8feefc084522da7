import pytest

from appreciations.core.errors import ValidationError
from appreciations.models.catalog import (
    ANONYMIZATION_LEVELS,
    ATTRIBUTION_CONFIG,
    AnonymizationLevel,
    AppreciationTone,
    Attribution,
    ConductLevel,
    STRIPE_PLANS,
    StripePlanKey,
    TONE_CONFIG,
    WorkLevel,
    find_plan_by_price,
    get_attribution_config,
    get_plan,
    get_tone_config,
    suggest_attribution,
)


def test_every_member_has_a_display_record():
    assert set(ATTRIBUTION_CONFIG) == set(Attribution)
    assert set(TONE_CONFIG) == set(AppreciationTone)
    assert set(ANONYMIZATION_LEVELS) == set(AnonymizationLevel)
    assert set(STRIPE_PLANS) == set(StripePlanKey)


def test_only_warnings_are_negative():
    negatives = {key for key, config in ATTRIBUTION_CONFIG.items() if config.is_negative}
    assert negatives == {Attribution.WARNING_WORK, Attribution.WARNING_CONDUCT, Attribution.WARNING_BOTH}


def test_lookup_accepts_raw_strings():
    assert get_attribution_config("honor").label == "Tableau d'honneur"
    assert get_tone_config("encourageant").label == "Bienveillant"


def test_unknown_key_raises_validation_error():
    with pytest.raises(ValidationError) as exc:
        get_tone_config("sarcastic")
    assert "sarcastic" in exc.value.message
    assert exc.value.status_code == 400


def test_plans_by_key_and_price():
    plan = get_plan("four_classes")
    assert plan.students == 140
    assert plan.price == 1499
    assert find_plan_by_price(plan.price_id) == plan
    assert find_plan_by_price("price_unknown") is None


@pytest.mark.parametrize(
    "work, conduct, expected",
    [
        (WorkLevel.EXCELLENT, ConductLevel.GOOD, Attribution.CONGRATULATIONS),
        (WorkLevel.GOOD, ConductLevel.GOOD, Attribution.HONOR),
        (WorkLevel.AVERAGE, ConductLevel.GOOD, Attribution.ENCOURAGEMENT),
        (WorkLevel.INSUFFICIENT, ConductLevel.GOOD, Attribution.WARNING_WORK),
        (WorkLevel.EXCELLENT, ConductLevel.PROBLEMATIC, Attribution.WARNING_CONDUCT),
        (WorkLevel.INSUFFICIENT, ConductLevel.PROBLEMATIC, Attribution.WARNING_BOTH),
    ],
)
def test_suggest_attribution(work, conduct, expected):
    assert suggest_attribution(work, conduct) == expected


def test_catalog_endpoints_are_public(client):
    tones = client.get("/api/catalog/tones").json()
    assert tones["default"] == "standard"
    assert [t["key"] for t in tones["tones"]] == ["severe", "standard", "encourageant", "elogieux"]
    assert "instruction" in tones["tones"][0]

    levels = client.get("/api/catalog/anonymization-levels").json()
    assert levels["default"] == "standard"
    assert {lvl["key"] for lvl in levels["levels"]} == {"standard", "maximal"}

    attributions = client.get("/api/catalog/attributions").json()
    assert len(attributions["attributions"]) == 6
    assert attributions["conduct_levels"] == ["good", "problematic"]

    plans = client.get("/api/catalog/plans").json()["plans"]
    assert [p["key"] for p in plans] == ["one_class", "four_classes", "year", "all_classes"]


def test_suggest_endpoint(client):
    resp = client.get("/api/catalog/attributions/suggest", params={"work_level": "good", "conduct_level": "problematic"})
    assert resp.status_code == 200
    assert resp.json()["attribution"] == "warning_conduct"
    assert resp.json()["is_negative"] is True

    bad = client.get("/api/catalog/attributions/suggest", params={"work_level": "superb", "conduct_level": "good"})
    assert bad.status_code == 400
