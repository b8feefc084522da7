"""
Stripe billing provider implementation.

Implements BillingProvider protocol using Stripe API.
Handles webhook signature verification and event parsing.
"""
import json
import os
from typing import Dict, Any, Optional
import stripe

from appreciations.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
)

CHECKOUT_LOCALE = "fr"


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY env var)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET env var)
        """
        self.secret_key = secret_key or os.getenv("STRIPE_SECRET_KEY")
        self.webhook_secret = webhook_secret or os.getenv("STRIPE_WEBHOOK_SECRET")

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_checkout_session(
        self,
        price_id: str,
        customer_email: Optional[str],
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """Create Stripe checkout session for a one-time plan purchase."""
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [{"price": price_id, "quantity": 1}],
            "metadata": metadata or {},
            "success_url": success_url,
            "cancel_url": cancel_url,
            "locale": CHECKOUT_LOCALE,
            "allow_promotion_codes": True,
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(**params)
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(
                body, sig_header, self.webhook_secret
            )
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

        # Signature checked; parse the raw payload as plain dicts
        return self._parse_event(json.loads(body))

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        event_id = event["id"]
        data = event.get("data", {}).get("object", {}) or {}
        metadata = dict(data.get("metadata") or {})

        result = BillingWebhookResult(
            event_id=event_id,
            event_type=event_type,
            metadata=metadata,
        )

        if event_type == "checkout.session.completed":
            result.session_id = data.get("id")
            result.user_id = metadata.get("user_id")
            result.plan = metadata.get("plan")
            payment_intent = data.get("payment_intent")
            result.payment_intent = payment_intent if isinstance(payment_intent, str) else None
            result.amount_total = data.get("amount_total") or 0

        return result
