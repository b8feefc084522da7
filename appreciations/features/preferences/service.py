"""
User preferences stored as key/value rows.

Keys: theme, anonymizationLevel, <app>_rgpd_accepted, <app>_rgpd_accepted_date.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select, insert, update, delete

from appreciations.core.database import get_db_session, user_preferences
from appreciations.models.catalog import (
    AnonymizationLevel,
    DEFAULT_ANONYMIZATION_LEVEL,
    parse_enum,
)
from appreciations.models.preferences import (
    ConsentApp,
    ConsentStatus,
    PreferencesResponse,
    Theme,
    ThemeState,
)

logger = logging.getLogger("appreciations")

THEME_KEY = "theme"
ANONYMIZATION_KEY = "anonymizationLevel"


def consent_key(app: ConsentApp) -> str:
    return f"{app.value}_rgpd_accepted"


def consent_date_key(app: ConsentApp) -> str:
    return f"{app.value}_rgpd_accepted_date"


def get_preference(user_id: str, key: str) -> Optional[str]:
    with get_db_session() as session:
        row = session.execute(
            select(user_preferences.c.value).where(
                user_preferences.c.user_id == user_id,
                user_preferences.c.key == key,
            )
        ).first()
        return row.value if row else None


def get_all_preferences(user_id: str) -> Dict[str, str]:
    with get_db_session() as session:
        rows = session.execute(
            select(user_preferences.c.key, user_preferences.c.value).where(
                user_preferences.c.user_id == user_id
            )
        ).fetchall()
        return {r.key: r.value for r in rows}


def set_preference(user_id: str, key: str, value: str) -> None:
    now = datetime.now(timezone.utc)
    with get_db_session() as session:
        result = session.execute(
            update(user_preferences)
            .where(user_preferences.c.user_id == user_id, user_preferences.c.key == key)
            .values(value=value, updated_at=now)
        )
        if result.rowcount == 0:
            session.execute(
                insert(user_preferences).values(user_id=user_id, key=key, value=value, updated_at=now)
            )


def remove_preference(user_id: str, *keys: str) -> None:
    with get_db_session() as session:
        session.execute(
            delete(user_preferences).where(
                user_preferences.c.user_id == user_id,
                user_preferences.c.key.in_(keys),
            )
        )


# Theme

def get_theme(user_id: str, system_prefers_dark: bool = False) -> ThemeState:
    stored = get_preference(user_id, THEME_KEY)
    if stored in (Theme.DARK.value, Theme.LIGHT.value):
        theme = Theme(stored)
        return ThemeState(theme=theme, dark=theme == Theme.DARK)
    return ThemeState(theme=None, dark=system_prefers_dark)


def set_dark_mode(user_id: str, dark: bool) -> ThemeState:
    theme = Theme.DARK if dark else Theme.LIGHT
    set_preference(user_id, THEME_KEY, theme.value)
    return ThemeState(theme=theme, dark=dark)


def toggle_dark_mode(user_id: str, system_prefers_dark: bool = False) -> ThemeState:
    current = get_theme(user_id, system_prefers_dark)
    return set_dark_mode(user_id, not current.dark)


# Anonymization level

def get_anonymization_level(user_id: str) -> AnonymizationLevel:
    stored = get_preference(user_id, ANONYMIZATION_KEY)
    try:
        return AnonymizationLevel(stored)
    except ValueError:
        return DEFAULT_ANONYMIZATION_LEVEL


def set_anonymization_level(user_id: str, level) -> AnonymizationLevel:
    parsed = parse_enum(AnonymizationLevel, level, "anonymization level")
    set_preference(user_id, ANONYMIZATION_KEY, parsed.value)
    return parsed


# RGPD consent

def _consent_from(values: Dict[str, str], app: ConsentApp) -> ConsentStatus:
    accepted = values.get(consent_key(app)) == "true"
    return ConsentStatus(
        has_accepted=accepted,
        accepted_date=values.get(consent_date_key(app)) if accepted else None,
        show_modal=not accepted,
    )


def get_consent(user_id: str, app: ConsentApp) -> ConsentStatus:
    return _consent_from(get_all_preferences(user_id), app)


def accept_consent(user_id: str, app: ConsentApp) -> ConsentStatus:
    now = datetime.now(timezone.utc).isoformat()
    set_preference(user_id, consent_key(app), "true")
    set_preference(user_id, consent_date_key(app), now)
    logger.info("consent.accepted", extra={"user_id": user_id, "event_type": "consent", "app": app.value})
    return ConsentStatus(has_accepted=True, accepted_date=now, show_modal=False)


def revoke_consent(user_id: str, app: ConsentApp) -> ConsentStatus:
    remove_preference(user_id, consent_key(app), consent_date_key(app))
    logger.info("consent.revoked", extra={"user_id": user_id, "event_type": "consent", "app": app.value})
    return ConsentStatus(has_accepted=False, accepted_date=None, show_modal=True)


def get_preferences(user_id: str) -> PreferencesResponse:
    values = get_all_preferences(user_id)
    stored_theme = values.get(THEME_KEY)
    try:
        level = AnonymizationLevel(values.get(ANONYMIZATION_KEY))
    except ValueError:
        level = DEFAULT_ANONYMIZATION_LEVEL
    return PreferencesResponse(
        theme=Theme(stored_theme) if stored_theme in (Theme.DARK.value, Theme.LIGHT.value) else None,
        anonymization_level=level,
        consents={app.value: _consent_from(values, app) for app in ConsentApp},
    )
