"""
Promo code administration: list, create, update, delete, batch generation, stats.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.exc import IntegrityError

from appreciations.core.database import get_db_session, promo_codes, promo_code_redemptions
from appreciations.core.errors import NotFoundError, ValidationError
from appreciations.features.promo.service import _row_to_promo, normalize_code
from appreciations.models.promo import (
    PromoBatchRequest,
    PromoBatchResult,
    PromoCode,
    PromoCodeCreate,
    PromoCodeUpdate,
    PromoStats,
)

logger = logging.getLogger("appreciations")

# No 0/O, 1/I/L
SAFE_CHARS = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
RANDOM_CODE_LENGTH = 6


def generate_random_code(prefix: str, length: int = RANDOM_CODE_LENGTH) -> str:
    return prefix + "".join(secrets.choice(SAFE_CHARS) for _ in range(length))


def list_promo_codes() -> List[PromoCode]:
    with get_db_session() as session:
        rows = session.execute(
            select(promo_codes).order_by(promo_codes.c.created_at.desc(), promo_codes.c.id.desc())
        ).fetchall()
        return [_row_to_promo(r) for r in rows]


def get_promo_code(promo_id: int) -> PromoCode:
    with get_db_session() as session:
        row = session.execute(select(promo_codes).where(promo_codes.c.id == promo_id)).first()
    if not row:
        raise NotFoundError("Code promo introuvable")
    return _row_to_promo(row)


def create_promo_code(data: PromoCodeCreate) -> PromoCode:
    code = normalize_code(data.code)
    if not code:
        raise ValidationError("Code requis")

    try:
        with get_db_session() as session:
            existing = session.execute(
                select(promo_codes.c.id).where(promo_codes.c.code == code)
            ).first()
            if existing:
                raise ValidationError("Ce code existe déjà")
            result = session.execute(
                insert(promo_codes).values(
                    code=code,
                    type=data.type.value,
                    value=data.value,
                    max_uses=data.max_uses,
                    max_uses_per_user=data.max_uses_per_user,
                    valid_from=data.valid_from or datetime.now(timezone.utc),
                    valid_until=data.valid_until,
                    description=data.description,
                )
            )
            promo_id = result.inserted_primary_key[0]
    except IntegrityError:
        raise ValidationError("Ce code existe déjà")

    logger.info("promo.admin_created", extra={"promo_code_id": promo_id, "event_type": "promo_admin"})
    return get_promo_code(promo_id)


def update_promo_code(promo_id: int, data: PromoCodeUpdate) -> PromoCode:
    values = data.model_dump(exclude_unset=True)
    if "code" in values and values["code"] is not None:
        values["code"] = normalize_code(values["code"])
    if "type" in values and values["type"] is not None:
        values["type"] = values["type"].value

    get_promo_code(promo_id)
    if values:
        try:
            with get_db_session() as session:
                session.execute(
                    update(promo_codes).where(promo_codes.c.id == promo_id).values(**values)
                )
        except IntegrityError:
            raise ValidationError("Ce code existe déjà")

    return get_promo_code(promo_id)


def delete_promo_code(promo_id: int) -> None:
    with get_db_session() as session:
        session.execute(
            delete(promo_code_redemptions).where(promo_code_redemptions.c.promo_code_id == promo_id)
        )
        session.execute(delete(promo_codes).where(promo_codes.c.id == promo_id))
    logger.info("promo.admin_deleted", extra={"promo_code_id": promo_id, "event_type": "promo_admin"})


def generate_batch(data: PromoBatchRequest) -> PromoBatchResult:
    """Create `count` single-use codes `{PREFIX}XXXXXX`, retrying collisions up to count*3 times."""
    prefix = normalize_code(data.prefix)
    generated: List[str] = []
    failed: List[str] = []
    max_attempts = data.count * 3
    attempts = 0
    description = data.description or f"Batch: {prefix}"

    while len(generated) < data.count and attempts < max_attempts:
        attempts += 1
        code = generate_random_code(prefix)
        with get_db_session() as session:
            exists = session.execute(
                select(promo_codes.c.id).where(promo_codes.c.code == code)
            ).first()
        if exists:
            continue
        try:
            with get_db_session() as session:
                session.execute(
                    insert(promo_codes).values(
                        code=code,
                        type=data.type.value,
                        value=data.value,
                        max_uses=1,
                        max_uses_per_user=data.max_uses_per_user,
                        valid_from=datetime.now(timezone.utc),
                        valid_until=data.valid_until,
                        description=description,
                    )
                )
            generated.append(code)
        except IntegrityError:
            failed.append(code)

    logger.info(
        "promo.admin_batch",
        extra={"event_type": "promo_admin", "generated": len(generated), "failed_count": len(failed)},
    )
    return PromoBatchResult(codes=generated, count=len(generated), failed=len(failed))


def get_stats(now: Optional[datetime] = None) -> PromoStats:
    now = now or datetime.now(timezone.utc)
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    with get_db_session() as session:
        total_codes = session.execute(select(func.count()).select_from(promo_codes)).scalar() or 0
        active_codes = session.execute(
            select(func.count()).select_from(promo_codes).where(promo_codes.c.is_active.is_(True))
        ).scalar() or 0
        total_redemptions = session.execute(
            select(func.count()).select_from(promo_code_redemptions)
        ).scalar() or 0
        total_credits = session.execute(
            select(func.coalesce(func.sum(promo_code_redemptions.c.credits_awarded), 0))
        ).scalar() or 0
        this_month = session.execute(
            select(func.count())
            .select_from(promo_code_redemptions)
            .where(promo_code_redemptions.c.redeemed_at >= start_of_month)
        ).scalar() or 0

    return PromoStats(
        total_codes=total_codes,
        active_codes=active_codes,
        total_redemptions=total_redemptions,
        total_credits_awarded=int(total_credits),
        this_month_redemptions=this_month,
    )
