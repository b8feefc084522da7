from appreciations.features.preferences import service
from appreciations.models.catalog import AnonymizationLevel
from appreciations.models.preferences import ConsentApp, Theme


def test_theme_follows_system_until_chosen():
    assert service.get_theme("u1", system_prefers_dark=True).dark is True
    assert service.get_theme("u1").theme is None

    service.set_dark_mode("u1", False)
    state = service.get_theme("u1", system_prefers_dark=True)
    assert state.theme == Theme.LIGHT
    assert state.dark is False


def test_toggle_starts_from_system_preference():
    assert service.toggle_dark_mode("u1", system_prefers_dark=True).dark is False
    assert service.toggle_dark_mode("u1", system_prefers_dark=True).dark is True
    assert service.get_preference("u1", service.THEME_KEY) == "dark"


def test_anonymization_level_defaults_and_ignores_garbage():
    assert service.get_anonymization_level("u1") == AnonymizationLevel.STANDARD

    service.set_preference("u1", service.ANONYMIZATION_KEY, "bogus")
    assert service.get_anonymization_level("u1") == AnonymizationLevel.STANDARD

    service.set_anonymization_level("u1", "maximal")
    assert service.get_anonymization_level("u1") == AnonymizationLevel.MAXIMAL


def test_consent_lifecycle_is_per_app():
    status = service.get_consent("u1", ConsentApp.REPORTCARD)
    assert status.has_accepted is False
    assert status.show_modal is True

    accepted = service.accept_consent("u1", ConsentApp.REPORTCARD)
    assert accepted.has_accepted and accepted.accepted_date

    stored = service.get_consent("u1", ConsentApp.REPORTCARD)
    assert stored.accepted_date == accepted.accepted_date
    assert service.get_consent("u1", ConsentApp.QUIZMASTER).has_accepted is False

    service.revoke_consent("u1", ConsentApp.REPORTCARD)
    assert service.get_consent("u1", ConsentApp.REPORTCARD).show_modal is True
    assert service.get_all_preferences("u1") == {}


def test_preferences_are_isolated_per_user():
    service.set_dark_mode("u1", True)
    assert service.get_theme("u2").theme is None


def test_preferences_api_round_trip(client, auth_headers):
    headers = auth_headers()

    initial = client.get("/api/preferences", headers=headers).json()
    assert initial["theme"] is None
    assert initial["anonymization_level"] == "standard"
    assert set(initial["consents"]) == {"classcouncil", "reportcard", "quizmaster"}

    assert client.put("/api/preferences/theme", json={"dark": True}, headers=headers).json() == {
        "theme": "dark",
        "dark": True,
    }
    toggled = client.post("/api/preferences/theme/toggle", json={}, headers=headers).json()
    assert toggled == {"theme": "light", "dark": False}

    resp = client.put("/api/preferences/anonymization", json={"level": "maximal"}, headers=headers)
    assert resp.json() == {"anonymization_level": "maximal"}

    accepted = client.post("/api/preferences/consent/classcouncil/accept", headers=headers).json()
    assert accepted["has_accepted"] is True

    final = client.get("/api/preferences", headers=headers).json()
    assert final["theme"] == "light"
    assert final["anonymization_level"] == "maximal"
    assert final["consents"]["classcouncil"]["has_accepted"] is True
    assert final["consents"]["reportcard"]["show_modal"] is True

    revoked = client.delete("/api/preferences/consent/classcouncil", headers=headers).json()
    assert revoked["show_modal"] is True


def test_unknown_consent_app(client, auth_headers):
    resp = client.get("/api/preferences/consent/chess", headers=auth_headers())
    assert resp.status_code == 400
