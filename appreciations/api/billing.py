"""
Billing API routes.

- POST /api/billing/checkout: Create a one-time checkout session for a student pack
- POST /api/billing/webhook: Handle Stripe webhooks
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from appreciations.core.auth import get_current_user
from appreciations.core.config import settings
from appreciations.core.errors import AppError, ValidationError
from appreciations.core.logging import log_event
from appreciations.features.billing.provider import BillingProviderError, BillingWebhookError
from appreciations.features.billing.service import (
    billing_enabled,
    process_webhook_event,
    start_checkout,
)
from appreciations.models.catalog import StripePlanKey, find_plan_by_price
from appreciations.models.profile import AuthenticatedUser

logger = logging.getLogger("appreciations")

router = APIRouter(prefix="/api/billing", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Fields are optional so a missing one answers 400, not 422."""
    price_id: Optional[str] = None
    plan: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str


class BillingDisabledError(AppError):
    code = "billing_disabled"
    status_code = 503


class CheckoutFailedError(AppError):
    code = "checkout_failed"
    status_code = 500


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(
    body: CheckoutRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
):
    """
    Create Stripe checkout session.

    Returns:
        {"url": "https://checkout.stripe.com/..."}

    Errors:
        401: Not authenticated
        400: Missing price_id/plan, plan not in the allow-list, or a price
             that does not belong to the plan
        500: Stripe API error
        503: Billing disabled (STRIPE_SECRET_KEY not set)
    """
    if not body.price_id or not body.plan:
        raise ValidationError("Missing price_id or plan")

    try:
        plan = StripePlanKey(body.plan)
    except ValueError:
        raise ValidationError("Invalid plan")

    matched = find_plan_by_price(body.price_id)
    if matched is None or matched.key != plan.value:
        raise ValidationError("Price does not match plan")

    if not billing_enabled():
        raise BillingDisabledError("Stripe is not configured. Set STRIPE_SECRET_KEY environment variable.")

    origin = request.headers.get("origin") or settings.APP_ORIGIN
    try:
        url = start_checkout(
            user_id=user.id,
            email=user.email,
            price_id=body.price_id,
            plan=plan,
            origin=origin,
        )
    except BillingProviderError as e:
        log_event(logging.ERROR, "billing.checkout_failed", user_id=user.id, error_code="checkout_failed", reason=str(e))
        raise CheckoutFailedError(str(e))

    if not url:
        raise BillingDisabledError("Billing disabled")
    return {"url": url}


@router.post("/webhook")
async def handle_webhook(request: Request):
    """
    Handle Stripe webhook events.

    Signature verification uses STRIPE_WEBHOOK_SECRET; deduplication uses the
    Stripe event id. Unknown plans or missing metadata are acknowledged.

    Errors:
        400: Invalid signature or payload
    """
    body = await request.body()
    headers = dict(request.headers)

    try:
        result = process_webhook_event(headers, body)
    except BillingWebhookError as e:
        log_event(
            logging.WARNING, "billing.webhook_rejected", error_code="webhook_error", event_type="billing_webhook", reason=str(e)
        )
        raise AppError(f"Webhook Error: {e}", code="webhook_error", status_code=400)

    return {"received": True, "event_id": result.event_id}
