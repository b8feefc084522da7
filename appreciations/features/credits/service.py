"""
Credit accounting.

Each profile holds two pools: free students granted at signup and paid
students bought with a plan or a promo code. A consumption spends the free
pool first. Regenerations within a class are free up to a per-type limit.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, insert, update

from appreciations.core.database import get_db_session, generations, profiles
from appreciations.core.errors import ConflictError, InsufficientCreditsError
from appreciations.features.profiles.service import require_profile
from appreciations.models.credits import (
    BalanceResponse,
    ConsumeCreditsRequest,
    ConsumeCreditsResult,
    CreditAction,
    CreditBalance,
    RegenerationType,
)
from appreciations.models.profile import Profile

logger = logging.getLogger("appreciations")

FREE_REGEN_LIMITS: Dict[RegenerationType, int] = {
    RegenerationType.APPRECIATION: 3,
    RegenerationType.BILAN: 1,
}

MIN_BALANCE_ALLOWED = -5


def regeneration_key(class_id: str, regeneration_type: RegenerationType) -> str:
    suffix = "appreciations" if regeneration_type == RegenerationType.APPRECIATION else "bilan"
    return f"{class_id}_{suffix}"


def free_regenerations_remaining(profile: Profile, class_id: str) -> Dict[str, int]:
    used = profile.free_regenerations_used
    return {
        rtype.value: max(0, limit - int(used.get(regeneration_key(class_id, rtype), 0)))
        for rtype, limit in FREE_REGEN_LIMITS.items()
    }


def _balance(free_remaining: int, paid_remaining: int) -> CreditBalance:
    return CreditBalance(
        free_remaining=free_remaining,
        paid_remaining=paid_remaining,
        total=free_remaining + paid_remaining,
    )


def _log_generation(session, user_id: str, **values) -> None:
    session.execute(insert(generations).values(user_id=user_id, **values))


def _use_free_regeneration(profile: Profile, req: ConsumeCreditsRequest) -> Optional[ConsumeCreditsResult]:
    key = regeneration_key(req.class_id, req.regeneration_type)
    used = int(profile.free_regenerations_used.get(key, 0))
    limit = FREE_REGEN_LIMITS[req.regeneration_type]
    if used >= limit:
        return None

    counters = dict(profile.free_regenerations_used)
    counters[key] = used + 1
    metadata: Dict[str, Any] = dict(req.metadata or {})
    metadata.update({"type": req.regeneration_type.value, "freeRegenNumber": used + 1})

    with get_db_session() as session:
        session.execute(
            update(profiles)
            .where(profiles.c.id == profile.id)
            .values(free_regenerations_used=counters)
        )
        _log_generation(
            session,
            profile.id,
            tool=req.tool.value,
            action=CreditAction.REGENERATION.value,
            students_used=0,
            is_free=False,
            is_free_regeneration=True,
            class_id=req.class_id,
            metadata=metadata,
        )

    logger.info(
        "credits.free_regeneration",
        extra={"user_id": profile.id, "event_type": "credits", "regen_key": key, "regen_used": used + 1},
    )
    return ConsumeCreditsResult(
        credits_used=0,
        was_free_regeneration=True,
        new_balance=_balance(profile.free_students_remaining, profile.students_balance),
    )


def consume_credits(user_id: str, req: ConsumeCreditsRequest) -> ConsumeCreditsResult:
    """
    Check and consume credits for a generation.

    Raises:
        NotFoundError: no profile for user_id
        InsufficientCreditsError: balance below 1, or projected below MIN_BALANCE_ALLOWED
        ConflictError: balances changed between read and write
    """
    profile = require_profile(user_id)

    if req.is_regeneration and req.regeneration_type and req.class_id:
        free = _use_free_regeneration(profile, req)
        if free:
            return free

    cost = req.students_cost
    free_remaining = profile.free_students_remaining
    paid_remaining = profile.students_balance
    total = free_remaining + paid_remaining

    # Allowed while at least 1 is left, even if cost exceeds it
    if total < 1:
        raise InsufficientCreditsError("Crédits insuffisants", balance=total)

    if total - cost < MIN_BALANCE_ALLOWED:
        raise InsufficientCreditsError(
            "Cette action dépasserait la limite de crédits autorisée", balance=total
        )

    free_deduction = min(max(free_remaining, 0), cost)
    paid_deduction = cost - free_deduction
    new_free = free_remaining - free_deduction
    new_paid = paid_remaining - paid_deduction

    with get_db_session() as session:
        result = session.execute(
            update(profiles)
            .where(
                profiles.c.id == user_id,
                profiles.c.free_students_remaining == free_remaining,
                profiles.c.students_balance == paid_remaining,
            )
            .values(free_students_remaining=new_free, students_balance=new_paid)
        )
        if result.rowcount == 0:
            logger.warning("credits.conflict", extra={"user_id": user_id, "event_type": "credits"})
            raise ConflictError("Veuillez réessayer (conflit de mise à jour)")

        _log_generation(
            session,
            user_id,
            tool=req.tool.value,
            action=req.action.value,
            students_used=cost,
            is_free=free_deduction > 0,
            is_free_regeneration=False,
            class_id=req.class_id,
            metadata=req.metadata,
        )

    logger.info(
        "credits.consumed",
        extra={
            "user_id": user_id,
            "event_type": "credits",
            "credits_used": cost,
            "free_deduction": free_deduction,
            "paid_deduction": paid_deduction,
        },
    )
    return ConsumeCreditsResult(
        credits_used=cost,
        was_free_regeneration=False,
        new_balance=_balance(new_free, new_paid),
    )


def get_balance(user_id: str, class_id: Optional[str] = None) -> BalanceResponse:
    profile = require_profile(user_id)
    return BalanceResponse(
        free_remaining=profile.free_students_remaining,
        paid_remaining=profile.students_balance,
        total=profile.total_balance,
        plan=profile.plan,
        plan_expires_at=profile.plan_expires_at.isoformat() if profile.plan_expires_at else None,
        free_regenerations_remaining=free_regenerations_remaining(profile, class_id) if class_id else None,
    )
