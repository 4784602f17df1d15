"""Error types raised by billrelay components."""


class BillRelayError(Exception):
    """Base class for billrelay errors."""


class EventVerificationError(BillRelayError):
    """Webhook payload failed signature verification or could not be parsed."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class MissingEventDataError(BillRelayError):
    """A handled event lacks the customer email or the member id."""

    def __init__(self, event_type: str, missing: list[str]):
        super().__init__(f"{event_type} is missing {', '.join(missing)}")
        self.event_type = event_type
        self.missing = missing


class MemberStoreError(BillRelayError):
    """A member store query or write failed."""


class PaymentProviderError(BillRelayError):
    """A call to the payment provider API failed."""
