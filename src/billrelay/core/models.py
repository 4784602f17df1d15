"""
billrelay Core Domain Models

Pydantic models for members, decoded billing events and reconciliation results.
"""

from datetime import datetime
from enum import Enum, IntEnum
from typing import Literal

from pydantic import BaseModel


# ══════════════════════════════════════════════════════════════
# Enums
# ══════════════════════════════════════════════════════════════


class SubscriptionTier(IntEnum):
    """Subscription tier stored on a member record."""

    NONE = 0
    RESERVED = 1  # never written by reconciliation
    PREMIUM = 2


class BillingEventKind(str, Enum):
    """Stripe event types the reconciler acts on."""

    PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    PAYMENT_FAILED = "invoice.payment_failed"
    OTHER = "other"

    @classmethod
    def from_event_type(cls, event_type: str) -> "BillingEventKind":
        try:
            kind = cls(event_type)
        except ValueError:
            return cls.OTHER
        return kind


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


# ══════════════════════════════════════════════════════════════
# Member
# ══════════════════════════════════════════════════════════════


class Member(BaseModel):
    """A member record as held by the store."""

    id: str
    auth_id: str | None = None
    email: str
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE
    payment_customer_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ══════════════════════════════════════════════════════════════
# Billing Events
# ══════════════════════════════════════════════════════════════


class BillingEvent(BaseModel):
    """Fields shared by every decoded billing event."""

    event_id: str
    event_type: str


class LifecycleEvent(BillingEvent):
    """A handled event that maps onto a member mutation.

    Email and member id are optional here; the reconciler rejects the
    event when either is missing.
    """

    customer_email: str | None = None
    member_id: str | None = None
    customer_id: str | None = None


class PaymentSucceeded(LifecycleEvent):
    kind: Literal[BillingEventKind.PAYMENT_SUCCEEDED] = BillingEventKind.PAYMENT_SUCCEEDED
    invoice_id: str | None = None


class SubscriptionDeleted(LifecycleEvent):
    kind: Literal[BillingEventKind.SUBSCRIPTION_DELETED] = BillingEventKind.SUBSCRIPTION_DELETED
    subscription_id: str | None = None


class PaymentFailed(LifecycleEvent):
    kind: Literal[BillingEventKind.PAYMENT_FAILED] = BillingEventKind.PAYMENT_FAILED
    invoice_id: str | None = None


class UnhandledEvent(BillingEvent):
    kind: Literal[BillingEventKind.OTHER] = BillingEventKind.OTHER


DecodedEvent = PaymentSucceeded | SubscriptionDeleted | PaymentFailed | UnhandledEvent


# ══════════════════════════════════════════════════════════════
# Reconciliation
# ══════════════════════════════════════════════════════════════


class ReconcileResult(BaseModel):
    """Outcome of reconciling one billing event."""

    status: Literal["processed", "ignored"]
    event_type: str
    action: str | None = None
    email: str | None = None
    member_id: str | None = None
    members_updated: int = 0
