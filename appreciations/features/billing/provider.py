"""
Billing provider protocol.

Defines the interface for billing providers (Stripe, etc.).
This allows swapping providers without changing business logic.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class BillingWebhookResult:
    """Result of verifying and parsing a billing webhook."""
    event_id: str
    event_type: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    plan: Optional[str] = None
    payment_intent: Optional[str] = None
    amount_total: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must handle:
    - One-time checkout session creation
    - Webhook signature verification and parsing
    """

    def create_checkout_session(
        self,
        price_id: str,
        customer_email: Optional[str],
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Create a one-time payment checkout session.

        Args:
            price_id: Provider price ID (e.g., Stripe price ID)
            customer_email: Pre-filled customer email
            success_url: URL to redirect on success
            cancel_url: URL to redirect on cancellation
            metadata: Metadata echoed back in the completion webhook

        Returns:
            Checkout session URL

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """
        Verify webhook signature and parse event.

        Args:
            headers: HTTP headers (must include signature header)
            body: Raw webhook body (for signature verification)

        Returns:
            Parsed webhook result

        Raises:
            BillingWebhookError: If signature invalid or parsing fails
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook processing errors."""
    pass
