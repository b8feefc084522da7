"""Credit balance and consumption API."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from appreciations.core.auth import get_current_user
from appreciations.features.credits.service import consume_credits, get_balance
from appreciations.models.credits import BalanceResponse, ConsumeCreditsRequest, ConsumeCreditsResult
from appreciations.models.profile import AuthenticatedUser

logger = logging.getLogger("appreciations")

router = APIRouter(prefix="/api/credits", tags=["credits"])


@router.get("/balance", response_model=BalanceResponse)
def balance(
    class_id: Optional[str] = Query(None, description="Include free regenerations left for this class"),
    user: AuthenticatedUser = Depends(get_current_user),
):
    return get_balance(user.id, class_id)


@router.post("/consume", response_model=ConsumeCreditsResult)
def consume(body: ConsumeCreditsRequest, user: AuthenticatedUser = Depends(get_current_user)):
    """
    Deduct credits for one action.

    Errors:
        402: Balance too low ({"error": {...}, "balance": n})
        409: Concurrent update, retry
    """
    return consume_credits(user.id, body)
