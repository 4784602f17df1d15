"""
Stripe Billing Integration

Webhook verification and decoding, plus the hosted checkout and billing
portal sessions used by the frontend.
"""

from typing import Any

import stripe
import structlog
from pydantic import BaseModel

from billrelay.config import Settings
from billrelay.core.errors import EventVerificationError, PaymentProviderError
from billrelay.core.events import MEMBER_ID_KEY, decode_event, parse_envelope
from billrelay.core.models import BillingPeriod, DecodedEvent

logger = structlog.get_logger()


# ══════════════════════════════════════════════════════════════
# Models
# ══════════════════════════════════════════════════════════════


class CheckoutSession(BaseModel):
    """Stripe checkout session data."""

    id: str
    url: str
    status: str | None = None


# ══════════════════════════════════════════════════════════════
# Plan Configuration
# ══════════════════════════════════════════════════════════════

PLAN_PERIODS = {
    "price_premium_monthly": BillingPeriod.MONTHLY,
    "price_studio_premium_monthly": BillingPeriod.MONTHLY,
    "price_premium_annual": BillingPeriod.ANNUAL,
    "price_studio_premium_annual": BillingPeriod.ANNUAL,
}


def resolve_billing_period(plan: str | None) -> BillingPeriod:
    """Map a plan token from the frontend to a billing period, monthly by default."""
    return PLAN_PERIODS.get(plan or "", BillingPeriod.MONTHLY)


# ══════════════════════════════════════════════════════════════
# Stripe Client
# ══════════════════════════════════════════════════════════════


class StripeClient:
    """
    Low-level Stripe API client.

    Handles direct Stripe API interactions. The API key is passed on every
    call rather than set on the stripe module.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    # ──────────────────────────────────────────────────────────
    # Webhooks
    # ──────────────────────────────────────────────────────────

    @staticmethod
    def verify_signature(
        payload: bytes,
        signature: str,
        secret: str,
        tolerance: int,
    ) -> None:
        """Check the Stripe-Signature header against the raw payload."""
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            signature,
            secret,
            tolerance=tolerance,
        )

    # ──────────────────────────────────────────────────────────
    # Invoice Operations
    # ──────────────────────────────────────────────────────────

    async def retrieve_invoice(self, invoice_id: str) -> stripe.Invoice:
        """Get invoice by ID."""
        return await stripe.Invoice.retrieve_async(invoice_id, api_key=self.api_key)

    # ──────────────────────────────────────────────────────────
    # Checkout & Portal
    # ──────────────────────────────────────────────────────────

    async def create_checkout_session(
        self,
        price_id: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutSession:
        """Create a checkout session for a subscription."""
        try:
            params: dict[str, Any] = {
                "mode": "subscription",
                "payment_method_types": ["card"],
                "line_items": [{"price": price_id, "quantity": 1}],
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
                "subscription_data": {"metadata": metadata or {}},
                "metadata": metadata or {},
            }

            session = await stripe.checkout.Session.create_async(api_key=self.api_key, **params)

            logger.info(
                "Created checkout session",
                session_id=session.id,
                price_id=price_id,
            )

            return CheckoutSession(
                id=session.id,
                url=session.url,
                status=session.status,
            )
        except stripe.StripeError as e:
            logger.error("Failed to create checkout session", error=str(e))
            raise

    async def create_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> str:
        """Create a billing portal session for self-service management."""
        session = await stripe.billing_portal.Session.create_async(
            customer=customer_id,
            return_url=return_url,
            api_key=self.api_key,
        )
        return session.url


# ══════════════════════════════════════════════════════════════
# Billing Service
# ══════════════════════════════════════════════════════════════


class BillingService:
    """
    High-level billing service.

    Verifies and decodes webhook events and creates checkout and portal
    sessions from the configured plans.
    """

    def __init__(self, settings: Settings, client: StripeClient | None = None):
        self.settings = settings
        self.client = client or StripeClient(settings.stripe_secret_key)

    # ──────────────────────────────────────────────────────────
    # Plans
    # ──────────────────────────────────────────────────────────

    def price_for_period(self, period: BillingPeriod) -> str:
        if period is BillingPeriod.ANNUAL:
            return self.settings.stripe_price_annual
        return self.settings.stripe_price_monthly

    def resolve_price(self, plan: str | None) -> str:
        """Map a plan token to the configured Stripe price ID."""
        return self.price_for_period(resolve_billing_period(plan))

    # ──────────────────────────────────────────────────────────
    # Checkout & Portal
    # ──────────────────────────────────────────────────────────

    async def create_member_checkout(
        self,
        member_id: str,
        email: str,
        plan: str | None,
    ) -> CheckoutSession:
        """Create a subscription checkout carrying the member id for the webhook path."""
        price_id = self.resolve_price(plan)
        metadata = {MEMBER_ID_KEY: member_id}
        if plan:
            metadata["tier"] = plan

        try:
            return await self.client.create_checkout_session(
                price_id=price_id,
                customer_email=email,
                success_url=self.settings.success_url,
                cancel_url=self.settings.dashboard_url,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            raise PaymentProviderError(str(e)) from e

    async def create_billing_portal(self, customer_id: str) -> str:
        """Create billing portal URL for self-service."""
        try:
            return await self.client.create_portal_session(
                customer_id=customer_id,
                return_url=self.settings.dashboard_url,
            )
        except stripe.StripeError as e:
            logger.error("Failed to create billing portal session", customer_id=customer_id, error=str(e))
            raise PaymentProviderError(str(e)) from e

    # ──────────────────────────────────────────────────────────
    # Webhook Processing
    # ──────────────────────────────────────────────────────────

    def verify_event(self, payload: bytes, signature: str) -> None:
        """Verify a webhook signature.

        Raises:
            EventVerificationError: signature invalid, expired or malformed.
        """
        if not self.settings.stripe_webhook_secret:
            raise EventVerificationError("Webhook signing secret is not configured")

        try:
            self.client.verify_signature(
                payload,
                signature,
                self.settings.stripe_webhook_secret,
                self.settings.stripe_webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature", error=str(e))
            raise EventVerificationError(str(e)) from e
        except UnicodeDecodeError as e:
            raise EventVerificationError("Payload is not valid UTF-8") from e

    async def construct_event(self, payload: bytes, signature: str) -> DecodedEvent:
        """Verify a webhook delivery and decode it into a typed event."""
        self.verify_event(payload, signature)
        envelope = parse_envelope(payload)

        logger.info("Processing webhook event", event_type=envelope.type, event_id=envelope.id)

        return await decode_event(envelope, self._latest_invoice_email)

    async def _latest_invoice_email(self, invoice_id: str) -> str | None:
        try:
            invoice = await self.client.retrieve_invoice(invoice_id)
        except stripe.StripeError as e:
            logger.error("Failed to retrieve invoice", invoice_id=invoice_id, error=str(e))
            raise PaymentProviderError(str(e)) from e
        return invoice.customer_email
