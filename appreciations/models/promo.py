"""
appreciations/models/promo.py
Promo code models: PromoCode, RedemptionResponse and the admin payloads.
Wire names for redemption keep the camelCase used by the web client.
"""

from enum import Enum
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class PromoCodeType(str, Enum):
    FREE_CREDITS = "free_credits"
    DISCOUNT = "discount"


class RedemptionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    INVALID = "INVALID"
    EXPIRED = "EXPIRED"
    EXHAUSTED = "EXHAUSTED"
    ALREADY_USED = "ALREADY_USED"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    ERROR = "ERROR"


class PromoCode(BaseModel):
    """A promo code as stored."""

    model_config = ConfigDict(frozen=True)

    id: int
    code: str = Field(description="Normalized code (trimmed, upper-case)")
    type: PromoCodeType
    value: int = Field(description="Students for free_credits, percent for discount")
    max_uses: Optional[int] = Field(default=None, description="None means unlimited")
    max_uses_per_user: int = 1
    current_uses: int = 0
    is_active: bool = True
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class RedemptionResponse(BaseModel):
    """Outcome of a redemption attempt, returned on every status code."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: bool
    status: RedemptionStatus
    message: str
    credits_awarded: Optional[int] = Field(default=None, alias="creditsAwarded")
    new_balance: Optional[int] = Field(default=None, alias="newBalance")
    http_status: int = Field(default=200, exclude=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PromoCodeCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    type: PromoCodeType = PromoCodeType.FREE_CREDITS
    value: int = Field(ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    max_uses_per_user: int = Field(default=1, ge=1)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    description: Optional[str] = None


class PromoCodeUpdate(BaseModel):
    code: Optional[str] = Field(default=None, min_length=1, max_length=64)
    type: Optional[PromoCodeType] = None
    value: Optional[int] = Field(default=None, ge=0)
    max_uses: Optional[int] = Field(default=None, ge=1)
    max_uses_per_user: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    description: Optional[str] = None


class PromoBatchRequest(BaseModel):
    prefix: str = ""
    count: int = Field(ge=1, le=500)
    value: int = Field(ge=0)
    type: PromoCodeType = PromoCodeType.FREE_CREDITS
    max_uses_per_user: int = Field(default=1, ge=1)
    valid_until: Optional[datetime] = None
    description: Optional[str] = None


class PromoBatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    codes: List[str]
    count: int
    failed: int


class PromoStats(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_codes: int = Field(alias="totalCodes")
    active_codes: int = Field(alias="activeCodes")
    total_redemptions: int = Field(alias="totalRedemptions")
    total_credits_awarded: int = Field(alias="totalCreditsAwarded")
    this_month_redemptions: int = Field(alias="thisMonthRedemptions")
