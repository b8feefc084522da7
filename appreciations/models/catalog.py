"""
Static catalog of report-card vocabulary and pricing.

Each enum has exactly one display record per member; lookups raise
ValidationError on unknown keys so API callers get a 400.
"""

from enum import Enum
from typing import Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict

from appreciations.core.errors import ValidationError


class Attribution(str, Enum):
    WARNING_WORK = "warning_work"
    WARNING_CONDUCT = "warning_conduct"
    WARNING_BOTH = "warning_both"
    ENCOURAGEMENT = "encouragement"
    HONOR = "honor"
    CONGRATULATIONS = "congratulations"


class WorkLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    INSUFFICIENT = "insufficient"


class ConductLevel(str, Enum):
    GOOD = "good"
    PROBLEMATIC = "problematic"


class AppreciationTone(str, Enum):
    SEVERE = "severe"
    STANDARD = "standard"
    ENCOURAGEANT = "encourageant"
    ELOGIEUX = "elogieux"


class AnonymizationLevel(str, Enum):
    STANDARD = "standard"
    MAXIMAL = "maximal"


class StripePlanKey(str, Enum):
    ONE_CLASS = "one_class"
    FOUR_CLASSES = "four_classes"
    YEAR = "year"
    ALL_CLASSES = "all_classes"


DEFAULT_TONE = AppreciationTone.STANDARD
DEFAULT_ANONYMIZATION_LEVEL = AnonymizationLevel.STANDARD
FIRST_NAME_PLACEHOLDER = "{prénom}"


class AttributionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    short_label: str
    color: str
    bg_color: str
    border_color: str
    icon: str
    is_negative: bool


class ToneConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    icon: str
    color: str
    bg_color: str
    border_color: str
    instruction: str  # prompt fragment sent to the AI provider


class AnonymizationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    short_label: str
    description: str
    icon: str
    recommended: bool


class StripePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    price_id: str
    name: str
    students: int
    price: int  # cents, EUR


ATTRIBUTION_CONFIG: Dict[Attribution, AttributionConfig] = {
    Attribution.WARNING_WORK: AttributionConfig(
        label="Avertissement Travail",
        short_label="Avert. Travail",
        color="hsl(24, 95%, 53%)",
        bg_color="bg-orange-500",
        border_color="border-orange-500",
        icon="AlertTriangle",
        is_negative=True,
    ),
    Attribution.WARNING_CONDUCT: AttributionConfig(
        label="Avertissement Conduite",
        short_label="Avert. Conduite",
        color="hsl(0, 84%, 60%)",
        bg_color="bg-red-500",
        border_color="border-red-500",
        icon="AlertCircle",
        is_negative=True,
    ),
    Attribution.WARNING_BOTH: AttributionConfig(
        label="Avertissement Travail & Conduite",
        short_label="Avert. Travail & Conduite",
        color="hsl(0, 72%, 51%)",
        bg_color="bg-red-600",
        border_color="border-red-600",
        icon="XCircle",
        is_negative=True,
    ),
    Attribution.ENCOURAGEMENT: AttributionConfig(
        label="Encouragements",
        short_label="Encouragements",
        color="hsl(217, 91%, 60%)",
        bg_color="bg-blue-500",
        border_color="border-blue-500",
        icon="ThumbsUp",
        is_negative=False,
    ),
    Attribution.HONOR: AttributionConfig(
        label="Tableau d'honneur",
        short_label="Tableau d'honneur",
        color="hsl(160, 84%, 39%)",
        bg_color="bg-emerald-500",
        border_color="border-emerald-500",
        icon="Star",
        is_negative=False,
    ),
    Attribution.CONGRATULATIONS: AttributionConfig(
        label="Félicitations",
        short_label="Félicitations",
        color="hsl(258, 90%, 66%)",
        bg_color="bg-violet-500",
        border_color="border-violet-500",
        icon="Trophy",
        is_negative=False,
    ),
}

TONE_CONFIG: Dict[AppreciationTone, ToneConfig] = {
    AppreciationTone.SEVERE: ToneConfig(
        label="Sévère",
        icon="AlertTriangle",
        color="text-destructive",
        bg_color="bg-destructive",
        border_color="border-destructive",
        instruction=(
            "Adopte un ton SÉVÈRE et DIRECT : constate les difficultés, les lacunes et les problèmes "
            "de comportement sans détour. Utilise un vocabulaire ferme : 'insuffisant', 'préoccupant', "
            "'des efforts impératifs sont attendus'."
        ),
    ),
    AppreciationTone.STANDARD: ToneConfig(
        label="Standard",
        icon="Minus",
        color="text-muted-foreground",
        bg_color="bg-secondary",
        border_color="border-secondary",
        instruction=(
            "Adopte un ton FACTUEL et OBJECTIF : équilibre entre constats positifs et axes "
            "d'amélioration. Formulations institutionnelles : 'globalement satisfaisant', "
            "'des efforts à poursuivre'."
        ),
    ),
    AppreciationTone.ENCOURAGEANT: ToneConfig(
        label="Bienveillant",
        icon="Heart",
        color="text-success",
        bg_color="bg-success",
        border_color="border-success",
        instruction=(
            "Adopte un ton BIENVEILLANT et MOTIVANT : valorise les efforts, formule les critiques "
            "comme des conseils constructifs. Utilise : 'en progression', 'des efforts remarqués'."
        ),
    ),
    AppreciationTone.ELOGIEUX: ToneConfig(
        label="Élogieux",
        icon="Trophy",
        color="text-warning",
        bg_color="bg-warning",
        border_color="border-warning",
        instruction=(
            "Adopte un ton ÉLOGIEUX et ENTHOUSIASTE : célèbre les réussites. Utilise : "
            "'félicitations', 'excellent', 'remarquable'."
        ),
    ),
}

ANONYMIZATION_LEVELS: Dict[AnonymizationLevel, AnonymizationConfig] = {
    AnonymizationLevel.STANDARD: AnonymizationConfig(
        id="standard",
        label="Standard",
        short_label="Standard",
        description=(
            f"Le prénom est remplacé par {FIRST_NAME_PLACEHOLDER} avant l'envoi, "
            "puis réinjecté automatiquement."
        ),
        icon="Shield",
        recommended=True,
    ),
    AnonymizationLevel.MAXIMAL: AnonymizationConfig(
        id="maximal",
        label="Maximal",
        short_label="Maximal",
        description=(
            f"Le prénom reste affiché comme {FIRST_NAME_PLACEHOLDER}. "
            "Vous le remplacerez manuellement."
        ),
        icon="ShieldCheck",
        recommended=False,
    ),
}

STRIPE_PLANS: Dict[StripePlanKey, StripePlan] = {
    StripePlanKey.ONE_CLASS: StripePlan(
        key="one_class",
        price_id="price_1SywRVB5EuLkf750L4xWLKUe",
        name="1 Classe",
        students=35,
        price=499,
    ),
    StripePlanKey.FOUR_CLASSES: StripePlan(
        key="four_classes",
        price_id="price_1SyzG8B5EuLkf750DHPT9R1J",
        name="4 Classes",
        students=140,
        price=1499,
    ),
    StripePlanKey.YEAR: StripePlan(
        key="year",
        price_id="price_1SyzIAB5EuLkf750dqAkLNap",
        name="Année complète",
        students=500,
        price=2999,
    ),
    StripePlanKey.ALL_CLASSES: StripePlan(
        key="all_classes",
        price_id="price_1SyzIfB5EuLkf750CJrSragW",
        name="Toutes les classes",
        students=2000,
        price=3999,
    ),
}

# (work, conduct) -> suggested award; conduct problems always win
_ATTRIBUTION_RULES: Dict[tuple, Attribution] = {
    (WorkLevel.EXCELLENT, ConductLevel.GOOD): Attribution.CONGRATULATIONS,
    (WorkLevel.GOOD, ConductLevel.GOOD): Attribution.HONOR,
    (WorkLevel.AVERAGE, ConductLevel.GOOD): Attribution.ENCOURAGEMENT,
    (WorkLevel.INSUFFICIENT, ConductLevel.GOOD): Attribution.WARNING_WORK,
    (WorkLevel.EXCELLENT, ConductLevel.PROBLEMATIC): Attribution.WARNING_CONDUCT,
    (WorkLevel.GOOD, ConductLevel.PROBLEMATIC): Attribution.WARNING_CONDUCT,
    (WorkLevel.AVERAGE, ConductLevel.PROBLEMATIC): Attribution.WARNING_CONDUCT,
    (WorkLevel.INSUFFICIENT, ConductLevel.PROBLEMATIC): Attribution.WARNING_BOTH,
}

E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: Type[E], value, field: str) -> E:
    """Coerce a raw value into enum_cls or raise ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field}: {value!r} (allowed: {allowed})")


def get_attribution_config(key) -> AttributionConfig:
    return ATTRIBUTION_CONFIG[parse_enum(Attribution, key, "attribution")]


def get_tone_config(key) -> ToneConfig:
    return TONE_CONFIG[parse_enum(AppreciationTone, key, "tone")]


def get_plan(key) -> StripePlan:
    return STRIPE_PLANS[parse_enum(StripePlanKey, key, "plan")]


def find_plan_by_price(price_id: str) -> Optional[StripePlan]:
    for plan in STRIPE_PLANS.values():
        if plan.price_id == price_id:
            return plan
    return None


def suggest_attribution(work_level, conduct_level) -> Attribution:
    work = parse_enum(WorkLevel, work_level, "work level")
    conduct = parse_enum(ConductLevel, conduct_level, "conduct level")
    return _ATTRIBUTION_RULES[(work, conduct)]
