"""
Profile domain service.
- ensure_profile(user_id, email)
- get_profile(user_id)
"""

import logging
from typing import Optional
from sqlalchemy import select, insert
from sqlalchemy.exc import IntegrityError

from appreciations.core.config import settings
from appreciations.core.database import get_db_session, as_utc, profiles
from appreciations.core.errors import NotFoundError
from appreciations.models.profile import Profile

logger = logging.getLogger("appreciations")


def _row_to_profile(row) -> Profile:
    return Profile(
        id=row.id,
        email=row.email,
        display_name=row.display_name,
        free_students_remaining=row.free_students_remaining or 0,
        students_balance=row.students_balance or 0,
        free_regenerations_used=dict(row.free_regenerations_used or {}),
        plan=row.plan,
        plan_purchased_at=as_utc(row.plan_purchased_at),
        plan_expires_at=as_utc(row.plan_expires_at),
    )


def get_profile(user_id: str) -> Optional[Profile]:
    with get_db_session() as session:
        row = session.execute(select(profiles).where(profiles.c.id == user_id)).first()
        return _row_to_profile(row) if row else None


def require_profile(user_id: str) -> Profile:
    profile = get_profile(user_id)
    if not profile:
        raise NotFoundError("Profil utilisateur introuvable")
    return profile


def ensure_profile(user_id: str, email: Optional[str] = None) -> Profile:
    """Return the profile, creating it with the signup allowance on first sight."""
    existing = get_profile(user_id)
    if existing:
        return existing

    try:
        with get_db_session() as session:
            session.execute(
                insert(profiles).values(
                    id=user_id,
                    email=email,
                    free_students_remaining=settings.FREE_STUDENTS_ON_SIGNUP,
                    students_balance=0,
                    free_regenerations_used={},
                )
            )
        logger.info("profile.created", extra={"user_id": user_id})
    except IntegrityError:
        # Concurrent first request already created it
        pass

    return require_profile(user_id)
