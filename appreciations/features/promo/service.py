"""
Promo code redemption.

Checks run in a fixed order; the first failing check decides the status.
A free_credits code credits students_balance before the redemption row is
written; if that write fails the credit is taken back.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select, insert, update
from sqlalchemy.exc import SQLAlchemyError

from appreciations.core.database import (
    get_db_session,
    as_utc,
    profiles,
    promo_codes,
    promo_code_redemptions,
)
from appreciations.models.promo import (
    PromoCode,
    PromoCodeType,
    RedemptionResponse,
    RedemptionStatus,
)

logger = logging.getLogger("appreciations")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _row_to_promo(row) -> PromoCode:
    return PromoCode(
        id=row.id,
        code=row.code,
        type=PromoCodeType(row.type),
        value=row.value,
        max_uses=row.max_uses,
        max_uses_per_user=row.max_uses_per_user,
        current_uses=row.current_uses or 0,
        is_active=bool(row.is_active),
        valid_from=as_utc(row.valid_from),
        valid_until=as_utc(row.valid_until),
        description=row.description,
        created_at=as_utc(row.created_at),
    )


def get_promo_by_code(code: str) -> Optional[PromoCode]:
    with get_db_session() as session:
        row = session.execute(
            select(promo_codes).where(promo_codes.c.code == code)
        ).first()
        return _row_to_promo(row) if row else None


def _fail(status: RedemptionStatus, message: str, http_status: int = 400) -> RedemptionResponse:
    return RedemptionResponse(success=False, status=status, message=message, http_status=http_status)


def auth_required(message: str = "Connexion requise pour utiliser un code promo.") -> RedemptionResponse:
    return _fail(RedemptionStatus.AUTH_REQUIRED, message, 401)


def check_redeemable(promo: PromoCode, user_id: str, now: datetime) -> Optional[RedemptionResponse]:
    """Return the failure for this user and code, or None if it can be redeemed."""
    if not promo.is_active:
        return _fail(RedemptionStatus.INVALID, "Ce code promo n'est plus actif.")

    if promo.valid_from and promo.valid_from > now:
        return _fail(RedemptionStatus.INVALID, "Ce code promo n'est pas encore valide.")

    if promo.valid_until and promo.valid_until < now:
        return _fail(RedemptionStatus.EXPIRED, "Ce code promo a expiré.")

    if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
        return _fail(RedemptionStatus.EXHAUSTED, "Ce code promo a atteint sa limite d'utilisation.")

    with get_db_session() as session:
        already = session.execute(
            select(promo_code_redemptions.c.id).where(
                promo_code_redemptions.c.user_id == user_id,
                promo_code_redemptions.c.promo_code_id == promo.id,
            )
        ).first()
    if already:
        return _fail(RedemptionStatus.ALREADY_USED, "Vous avez déjà utilisé ce code promo.")

    return None


def _adjust_balance(user_id: str, delta: int) -> int:
    """Add delta to students_balance and return the new balance."""
    with get_db_session() as session:
        updated = session.execute(
            update(profiles)
            .where(profiles.c.id == user_id)
            .values(students_balance=func.coalesce(profiles.c.students_balance, 0) + delta)
        )
        if updated.rowcount == 0:
            raise LookupError(f"profile {user_id} not found")
        return session.execute(
            select(profiles.c.students_balance).where(profiles.c.id == user_id)
        ).scalar_one()


def _record_redemption(user_id: str, promo: PromoCode, credits_awarded: int) -> None:
    with get_db_session() as session:
        session.execute(
            insert(promo_code_redemptions).values(
                user_id=user_id,
                promo_code_id=promo.id,
                credits_awarded=credits_awarded,
                metadata={"code": promo.code, "type": promo.type.value, "value": promo.value},
            )
        )


def _increment_uses(promo_id: int) -> None:
    with get_db_session() as session:
        session.execute(
            update(promo_codes)
            .where(promo_codes.c.id == promo_id)
            .values(current_uses=promo_codes.c.current_uses + 1)
        )


def redeem_promo_code(user_id: str, raw_code: Optional[str]) -> RedemptionResponse:
    """
    Redeem a promo code for a user.

    Never raises for business failures: the outcome, including the HTTP
    status to answer with, is carried by the returned RedemptionResponse.
    """
    if not raw_code or not isinstance(raw_code, str) or not raw_code.strip():
        return _fail(RedemptionStatus.INVALID, "Veuillez entrer un code promo valide.")

    code = normalize_code(raw_code)
    error = _fail(RedemptionStatus.ERROR, "Une erreur est survenue.", 500)

    try:
        promo = get_promo_by_code(code)
        if promo is None:
            return _fail(RedemptionStatus.INVALID, "Ce code promo n'existe pas.", 404)

        now = datetime.now(timezone.utc)
        failure = check_redeemable(promo, user_id, now)
        if failure:
            logger.info(
                "promo.rejected",
                extra={"user_id": user_id, "event_type": "promo", "error_code": failure.status.value},
            )
            return failure

        credits_awarded = 0
        new_balance = 0
        if promo.type == PromoCodeType.FREE_CREDITS:
            credits_awarded = promo.value
            new_balance = _adjust_balance(user_id, credits_awarded)
    except (SQLAlchemyError, LookupError):
        logger.error("promo.redeem_failed", exc_info=True, extra={"user_id": user_id})
        return error

    try:
        _record_redemption(user_id, promo, credits_awarded)
    except SQLAlchemyError:
        logger.error("promo.redemption_record_failed", exc_info=True, extra={"user_id": user_id})
        if credits_awarded:
            try:
                _adjust_balance(user_id, -credits_awarded)
            except (SQLAlchemyError, LookupError):
                logger.critical(
                    "promo.rollback_failed",
                    exc_info=True,
                    extra={"user_id": user_id, "credits_awarded": credits_awarded},
                )
        return error

    try:
        _increment_uses(promo.id)
    except SQLAlchemyError:
        # The redemption itself stands
        logger.error("promo.increment_failed", exc_info=True, extra={"promo_code_id": promo.id})

    if promo.type == PromoCodeType.FREE_CREDITS:
        message = f"🎉 +{credits_awarded} élèves ajoutés à votre compte !"
    else:
        message = f"🎉 Réduction de {promo.value}% appliquée !"

    logger.info(
        "promo.redeemed",
        extra={"user_id": user_id, "event_type": "promo", "promo_code_id": promo.id, "credits_awarded": credits_awarded},
    )
    return RedemptionResponse(
        success=True,
        status=RedemptionStatus.SUCCESS,
        message=message,
        credits_awarded=credits_awarded,
        new_balance=new_balance,
    )
