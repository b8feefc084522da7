"""
Static catalog API: attributions, tones, anonymization levels and plans.

Public, no auth. Values come from appreciations.models.catalog.
"""

from fastapi import APIRouter, Query

from appreciations.models.catalog import (
    ANONYMIZATION_LEVELS,
    ATTRIBUTION_CONFIG,
    ConductLevel,
    DEFAULT_ANONYMIZATION_LEVEL,
    DEFAULT_TONE,
    STRIPE_PLANS,
    TONE_CONFIG,
    WorkLevel,
    get_attribution_config,
    suggest_attribution,
)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def _keyed(configs) -> list:
    return [{"key": key.value, **config.model_dump()} for key, config in configs.items()]


@router.get("/attributions")
def list_attributions():
    return {
        "attributions": _keyed(ATTRIBUTION_CONFIG),
        "work_levels": [level.value for level in WorkLevel],
        "conduct_levels": [level.value for level in ConductLevel],
    }


@router.get("/attributions/suggest")
def suggest(work_level: str = Query(...), conduct_level: str = Query(...)):
    attribution = suggest_attribution(work_level, conduct_level)
    return {"attribution": attribution.value, **get_attribution_config(attribution).model_dump()}


@router.get("/tones")
def list_tones():
    return {"tones": _keyed(TONE_CONFIG), "default": DEFAULT_TONE.value}


@router.get("/anonymization-levels")
def list_anonymization_levels():
    return {"levels": _keyed(ANONYMIZATION_LEVELS), "default": DEFAULT_ANONYMIZATION_LEVEL.value}


@router.get("/plans")
def list_plans():
    return {"plans": [plan.model_dump() for plan in STRIPE_PLANS.values()]}
