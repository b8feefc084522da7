"""
appreciations/models/credits.py
Credit consumption request/response models.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class Tool(str, Enum):
    REPORTCARD = "reportcard"
    CLASSCOUNCIL = "classcouncil"
    QUIZMASTER = "quizmaster"


class CreditAction(str, Enum):
    APPRECIATION = "appreciation"
    BILAN = "bilan"
    BATCH = "batch"
    QUIZ = "quiz"
    REGENERATION = "regeneration"


class RegenerationType(str, Enum):
    APPRECIATION = "appreciation"
    BILAN = "bilan"


class ConsumeCreditsRequest(BaseModel):
    tool: Tool
    action: CreditAction
    students_cost: int = Field(ge=0)
    class_id: Optional[str] = None
    is_regeneration: bool = False
    regeneration_type: Optional[RegenerationType] = None
    metadata: Optional[Dict[str, Any]] = None


class CreditBalance(BaseModel):
    model_config = ConfigDict(frozen=True)

    free_remaining: int
    paid_remaining: int
    total: int


class ConsumeCreditsResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    credits_used: int
    was_free_regeneration: bool
    new_balance: CreditBalance


class BalanceResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    free_remaining: int
    paid_remaining: int
    total: int
    plan: Optional[str] = None
    plan_expires_at: Optional[str] = None
    free_regenerations_remaining: Optional[Dict[str, int]] = Field(
        default=None, description="Per regeneration type, for the requested class"
    )
