"""
appreciations/models/preferences.py
Per-user preferences: theme, RGPD consent per app, anonymization level.
"""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from appreciations.models.catalog import AnonymizationLevel


class ConsentApp(str, Enum):
    CLASSCOUNCIL = "classcouncil"
    REPORTCARD = "reportcard"
    QUIZMASTER = "quizmaster"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class ConsentStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_accepted: bool
    accepted_date: Optional[str] = Field(default=None, description="ISO8601, set when accepted")
    show_modal: bool


class ThemeState(BaseModel):
    model_config = ConfigDict(frozen=True)

    theme: Optional[Theme] = Field(default=None, description="None until the user picks one")
    dark: bool


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    theme: Optional[Theme] = None
    anonymization_level: AnonymizationLevel
    consents: Dict[str, ConsentStatus]


class SetThemeRequest(BaseModel):
    dark: bool


class ToggleThemeRequest(BaseModel):
    system_prefers_dark: bool = False


class SetAnonymizationRequest(BaseModel):
    level: str
