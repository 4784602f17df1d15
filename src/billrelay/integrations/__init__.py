"""External service integrations."""

from .stripe import BillingService, StripeClient

__all__ = [
    "BillingService",
    "StripeClient",
]
