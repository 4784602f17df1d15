"""
Billing Event Decoding

Turns a verified Stripe webhook payload into one of the typed event variants.
Only the fields the reconciler needs are modelled; everything else is ignored.
"""

from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from billrelay.core.errors import EventVerificationError
from billrelay.core.models import (
    BillingEventKind,
    DecodedEvent,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionDeleted,
    UnhandledEvent,
)

# Metadata key the checkout session writes the member id under
MEMBER_ID_KEY = "userId"

InvoiceEmailLookup = Callable[[str], Awaitable[str | None]]


# ══════════════════════════════════════════════════════════════
# Stripe Payload Models
# ══════════════════════════════════════════════════════════════


class _StripeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _EventData(_StripeModel):
    object: dict[str, Any]


class StripeEventEnvelope(_StripeModel):
    """Top level of a Stripe event payload."""

    id: str
    type: str
    data: _EventData

    @property
    def kind(self) -> BillingEventKind:
        return BillingEventKind.from_event_type(self.type)


class _SubscriptionDetails(_StripeModel):
    metadata: dict[str, Any] | None = None


class _InvoiceParent(_StripeModel):
    subscription_details: _SubscriptionDetails | None = None


class InvoiceObject(_StripeModel):
    id: str | None = None
    customer: str | dict[str, Any] | None = None
    customer_email: str | None = None
    metadata: dict[str, Any] | None = None
    subscription_details: _SubscriptionDetails | None = None
    parent: _InvoiceParent | None = None

    @property
    def customer_id(self) -> str | None:
        return _object_id(self.customer)

    @property
    def member_id(self) -> str | None:
        """Member id from invoice metadata or the subscription details."""
        candidates = [self.metadata]
        if self.subscription_details:
            candidates.append(self.subscription_details.metadata)
        # Newer API versions nest subscription details under parent
        if self.parent and self.parent.subscription_details:
            candidates.append(self.parent.subscription_details.metadata)

        for metadata in candidates:
            value = _member_id_from(metadata)
            if value:
                return value
        return None


class SubscriptionObject(_StripeModel):
    id: str | None = None
    customer: str | dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    latest_invoice: str | dict[str, Any] | None = None

    @property
    def customer_id(self) -> str | None:
        return _object_id(self.customer)

    @property
    def member_id(self) -> str | None:
        return _member_id_from(self.metadata)

    @property
    def latest_invoice_id(self) -> str | None:
        return _object_id(self.latest_invoice)


def _object_id(value: str | dict[str, Any] | None) -> str | None:
    """Stripe references are ids, or full objects when expanded."""
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def _member_id_from(metadata: dict[str, Any] | None) -> str | None:
    if not metadata:
        return None
    value = metadata.get(MEMBER_ID_KEY)
    # Stripe metadata values are strings
    return value if isinstance(value, str) and value else None


# ══════════════════════════════════════════════════════════════
# Decoding
# ══════════════════════════════════════════════════════════════


def parse_envelope(payload: bytes | str) -> StripeEventEnvelope:
    """Parse the raw webhook body into an event envelope."""
    try:
        return StripeEventEnvelope.model_validate_json(payload)
    except ValidationError as e:
        raise EventVerificationError(f"Invalid event payload: {e.error_count()} error(s)") from e


async def decode_event(
    envelope: StripeEventEnvelope,
    invoice_email_lookup: InvoiceEmailLookup,
) -> DecodedEvent:
    """Decode an event envelope into its typed variant.

    Subscription payloads carry no email, so the email on the subscription's
    latest invoice is fetched through ``invoice_email_lookup``.
    """
    kind = envelope.kind
    obj = envelope.data.object

    if kind is BillingEventKind.PAYMENT_SUCCEEDED:
        invoice = _validate(InvoiceObject, obj, envelope)
        return PaymentSucceeded(
            event_id=envelope.id,
            event_type=envelope.type,
            invoice_id=invoice.id,
            customer_email=invoice.customer_email,
            member_id=invoice.member_id,
            customer_id=invoice.customer_id,
        )

    if kind is BillingEventKind.PAYMENT_FAILED:
        invoice = _validate(InvoiceObject, obj, envelope)
        return PaymentFailed(
            event_id=envelope.id,
            event_type=envelope.type,
            invoice_id=invoice.id,
            customer_email=invoice.customer_email,
            member_id=invoice.member_id,
            customer_id=invoice.customer_id,
        )

    if kind is BillingEventKind.SUBSCRIPTION_DELETED:
        subscription = _validate(SubscriptionObject, obj, envelope)
        email = None
        if subscription.latest_invoice_id:
            email = await invoice_email_lookup(subscription.latest_invoice_id)
        return SubscriptionDeleted(
            event_id=envelope.id,
            event_type=envelope.type,
            subscription_id=subscription.id,
            customer_email=email,
            member_id=subscription.member_id,
            customer_id=subscription.customer_id,
        )

    return UnhandledEvent(event_id=envelope.id, event_type=envelope.type)


def _validate(model: type[_StripeModel], obj: dict[str, Any], envelope: StripeEventEnvelope):
    try:
        return model.model_validate(obj)
    except ValidationError as e:
        raise EventVerificationError(
            f"Invalid {envelope.type} object: {e.error_count()} error(s)"
        ) from e
