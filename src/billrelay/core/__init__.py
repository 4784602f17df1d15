"""Core domain models and reconciliation logic."""

from .errors import (
    BillRelayError,
    EventVerificationError,
    MemberStoreError,
    MissingEventDataError,
    PaymentProviderError,
)
from .models import (
    BillingEventKind,
    BillingPeriod,
    Member,
    PaymentFailed,
    PaymentSucceeded,
    ReconcileResult,
    SubscriptionDeleted,
    SubscriptionTier,
    UnhandledEvent,
)

__all__ = [
    "BillRelayError",
    "EventVerificationError",
    "MemberStoreError",
    "MissingEventDataError",
    "PaymentProviderError",
    "BillingEventKind",
    "BillingPeriod",
    "Member",
    "PaymentFailed",
    "PaymentSucceeded",
    "ReconcileResult",
    "SubscriptionDeleted",
    "SubscriptionTier",
    "UnhandledEvent",
]
