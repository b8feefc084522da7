from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    free_students_remaining: int = 0
    students_balance: int = 0
    free_regenerations_used: Dict[str, int] = Field(default_factory=dict)
    plan: Optional[str] = None
    plan_purchased_at: Optional[datetime] = None
    plan_expires_at: Optional[datetime] = None

    @property
    def total_balance(self) -> int:
        return self.free_students_remaining + self.students_balance


class AuthenticatedUser(BaseModel):
    """Identity extracted from a verified Supabase access token."""
    model_config = ConfigDict(frozen=True)

    id: str
    email: Optional[str] = None
