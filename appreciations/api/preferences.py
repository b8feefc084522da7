"""
User preferences API: theme, anonymization level and per-app consent.
"""

from fastapi import APIRouter, Depends

from appreciations.core.auth import get_current_user
from appreciations.features.preferences import service
from appreciations.models.catalog import parse_enum
from appreciations.models.preferences import (
    ConsentApp,
    ConsentStatus,
    PreferencesResponse,
    SetAnonymizationRequest,
    SetThemeRequest,
    ThemeState,
    ToggleThemeRequest,
)
from appreciations.models.profile import AuthenticatedUser

router = APIRouter(prefix="/api/preferences", tags=["preferences"])


@router.get("", response_model=PreferencesResponse)
def get_preferences(user: AuthenticatedUser = Depends(get_current_user)):
    return service.get_preferences(user.id)


@router.get("/theme", response_model=ThemeState)
def get_theme(system_prefers_dark: bool = False, user: AuthenticatedUser = Depends(get_current_user)):
    return service.get_theme(user.id, system_prefers_dark)


@router.put("/theme", response_model=ThemeState)
def set_theme(body: SetThemeRequest, user: AuthenticatedUser = Depends(get_current_user)):
    return service.set_dark_mode(user.id, body.dark)


@router.post("/theme/toggle", response_model=ThemeState)
def toggle_theme(body: ToggleThemeRequest, user: AuthenticatedUser = Depends(get_current_user)):
    return service.toggle_dark_mode(user.id, body.system_prefers_dark)


@router.put("/anonymization")
def set_anonymization(body: SetAnonymizationRequest, user: AuthenticatedUser = Depends(get_current_user)):
    level = service.set_anonymization_level(user.id, body.level)
    return {"anonymization_level": level.value}


@router.get("/consent/{app}", response_model=ConsentStatus)
def get_consent(app: str, user: AuthenticatedUser = Depends(get_current_user)):
    return service.get_consent(user.id, parse_enum(ConsentApp, app, "app"))


@router.post("/consent/{app}/accept", response_model=ConsentStatus)
def accept_consent(app: str, user: AuthenticatedUser = Depends(get_current_user)):
    return service.accept_consent(user.id, parse_enum(ConsentApp, app, "app"))


@router.delete("/consent/{app}", response_model=ConsentStatus)
def revoke_consent(app: str, user: AuthenticatedUser = Depends(get_current_user)):
    return service.revoke_consent(user.id, parse_enum(ConsentApp, app, "app"))
