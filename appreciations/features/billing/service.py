"""
Billing service orchestrator.

Business logic that coordinates:
- One-time checkout sessions for the student packs
- Webhook processing (idempotent on the Stripe event id)
- Crediting purchased students to the profile

All Stripe-specific code is in stripe_provider.py.
"""
import os
import hashlib
import logging
from typing import Optional, Dict
from datetime import datetime, timezone
from sqlalchemy import func, select, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from appreciations.core.database import (
    get_db_session,
    billing_events,
    payments,
    profiles,
)
from appreciations.features.billing.provider import (
    BillingProvider,
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)
from appreciations.features.billing.stripe_provider import StripeProvider
from appreciations.models.catalog import STRIPE_PLANS, StripePlanKey

logger = logging.getLogger("appreciations")

CHECKOUT_COMPLETED = "checkout.session.completed"
ACADEMIC_YEAR_START_MONTH = 9


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(os.getenv("STRIPE_SECRET_KEY"))


def get_provider() -> Optional[BillingProvider]:
    """Get billing provider if billing is enabled."""
    if not billing_enabled():
        return None
    try:
        return StripeProvider()
    except BillingProviderError:
        return None


def academic_year_end(now: Optional[datetime] = None) -> datetime:
    """August 31st 23:59:59 UTC closing the academic year that contains `now`."""
    now = now or datetime.now(timezone.utc)
    year = now.year + 1 if now.month >= ACADEMIC_YEAR_START_MONTH else now.year
    return datetime(year, 8, 31, 23, 59, 59, tzinfo=timezone.utc)


def start_checkout(
    user_id: str,
    email: Optional[str],
    price_id: str,
    plan: StripePlanKey,
    origin: str,
) -> Optional[str]:
    """
    Start a one-time checkout session for a student pack.

    Returns:
        Checkout URL, or None if billing disabled

    Raises:
        BillingProviderError: If checkout creation fails
    """
    provider = get_provider()
    if not provider:
        return None

    origin = origin.rstrip("/")
    url = provider.create_checkout_session(
        price_id=price_id,
        customer_email=email,
        success_url=f"{origin}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/pricing",
        metadata={"user_id": user_id, "plan": plan.value},
    )
    logger.info(
        "billing.checkout_created",
        extra={"user_id": user_id, "event_type": "checkout", "plan": plan.value},
    )
    return url


def credit_plan_purchase(session: Session, result: BillingWebhookResult) -> bool:
    """
    Credit the purchased students and record the payment inside `session`.

    Returns:
        True if the profile was credited, False if the event was ignored
    """
    if not result.user_id or not result.plan:
        logger.error(
            "billing.webhook_missing_metadata",
            extra={"event_type": result.event_type, "stripe_event_id": result.event_id},
        )
        return False

    try:
        plan = STRIPE_PLANS[StripePlanKey(result.plan)]
    except ValueError:
        logger.error("billing.webhook_unknown_plan", extra={"plan": result.plan})
        return False

    now = datetime.now(timezone.utc)
    credited = session.execute(
        update(profiles)
        .where(profiles.c.id == result.user_id)
        .values(
            students_balance=func.coalesce(profiles.c.students_balance, 0) + plan.students,
            plan=plan.key,
            plan_purchased_at=now,
            plan_expires_at=academic_year_end(now),
            updated_at=now,
        )
    )
    if credited.rowcount == 0:
        logger.error("billing.webhook_profile_missing", extra={"user_id": result.user_id})
        return False

    session.execute(
        insert(payments).values(
            user_id=result.user_id,
            stripe_session_id=result.session_id or result.event_id,
            stripe_payment_intent=result.payment_intent,
            plan=plan.key,
            amount=result.amount_total,
            students_credited=plan.students,
            status="completed",
        )
    )
    new_balance = session.execute(
        select(profiles.c.students_balance).where(profiles.c.id == result.user_id)
    ).scalar_one()

    logger.info(
        "billing.plan_credited",
        extra={
            "user_id": result.user_id,
            "plan": plan.key,
            "students_credited": plan.students,
            "balance_after": new_balance,
        },
    )
    return True


def _claim_event(result: BillingWebhookResult, payload_hash: str) -> bool:
    """
    Record the event id. Returns False when the event was already processed.

    A stored event that never finished (the earlier delivery failed) is
    claimed again so a redelivery applies it.
    """
    try:
        with get_db_session() as session:
            session.execute(
                insert(billing_events).values(
                    stripe_event_id=result.event_id,
                    event_type=result.event_type,
                    payload_hash=payload_hash,
                    processed=False,
                )
            )
        return True
    except IntegrityError:
        pass

    with get_db_session() as session:
        processed = session.execute(
            select(billing_events.c.processed).where(billing_events.c.stripe_event_id == result.event_id)
        ).scalar()
    if processed:
        logger.info("billing.webhook_duplicate", extra={"stripe_event_id": result.event_id})
        return False

    logger.warning("billing.webhook_redelivered", extra={"stripe_event_id": result.event_id})
    return True


def process_webhook_event(headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
    """
    Process billing webhook event (idempotent).

    1. Verify signature
    2. Claim the event id (skip if already processed)
    3. Mark as processed and apply the purchase in one transaction

    Raises:
        BillingWebhookError: If billing is disabled or the signature is invalid
    """
    provider = get_provider()
    if not provider:
        raise BillingWebhookError("Billing not enabled")

    result = provider.handle_webhook(headers, body)
    payload_hash = hashlib.sha256(body).hexdigest()

    if not _claim_event(result, payload_hash):
        return result

    try:
        with get_db_session() as session:
            # Only one delivery can flip processed; a concurrent one sees no row
            marked = session.execute(
                update(billing_events)
                .where(
                    billing_events.c.stripe_event_id == result.event_id,
                    billing_events.c.processed.is_(False),
                )
                .values(processed=True, processed_at=datetime.now(timezone.utc), error=None)
            )
            if marked.rowcount == 0:
                logger.info("billing.webhook_duplicate", extra={"stripe_event_id": result.event_id})
                return result

            if result.event_type == CHECKOUT_COMPLETED:
                credit_plan_purchase(session, result)
            else:
                logger.info("billing.webhook_ignored", extra={"event_type": result.event_type})
    except Exception as e:
        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(error=str(e))
            )
        raise

    return result
