"""
Pytest Configuration and Fixtures

Shared fixtures for unit and integration tests.
"""

import hashlib
import hmac
import json
import time
from typing import Any, Callable

import pytest

from billrelay.config import Settings
from billrelay.core.errors import MemberStoreError
from billrelay.core.models import Member, SubscriptionTier

WEBHOOK_SECRET = "whsec_test_secret"


# ══════════════════════════════════════════════════════════════
# Settings Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with mock configurations."""
    return Settings(
        app_env="development",
        debug=True,
        database_url="sqlite+aiosqlite:///./billrelay_test.db",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_price_monthly="price_monthly_test",
        stripe_price_annual="price_annual_test",
        frontend_url="https://app.example.com",
    )


# ══════════════════════════════════════════════════════════════
# Member Store Fixtures
# ══════════════════════════════════════════════════════════════


class InMemoryMemberStore:
    """MemberStore keeping members in a dict keyed by email."""

    def __init__(self, members: list[Member] | None = None):
        self.members: dict[str, Member] = {m.email: m for m in members or []}
        self.writes: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None

    def _check_failure(self) -> None:
        if self.fail_with:
            raise self.fail_with

    async def ping(self) -> None:
        self._check_failure()

    async def find_by_email(self, email: str) -> Member | None:
        self._check_failure()
        return self.members.get(email)

    async def create(self, member: Member) -> Member:
        self._check_failure()
        if member.email in self.members:
            raise MemberStoreError(f"duplicate email {member.email}")
        self.writes.append(("create", member.email))
        self.members[member.email] = member
        return member

    async def update_by_email(
        self,
        email: str,
        subscription_tier: SubscriptionTier,
        payment_customer_id: str | None,
        auth_id: str | None = None,
    ) -> int:
        self._check_failure()
        self.writes.append(("update", email))
        member = self.members.get(email)
        if member is None:
            return 0

        updates: dict[str, Any] = {
            "subscription_tier": subscription_tier,
            "payment_customer_id": payment_customer_id,
        }
        if auth_id is not None:
            updates["auth_id"] = auth_id
        self.members[email] = member.model_copy(update=updates)
        return 1


@pytest.fixture
def member_store() -> InMemoryMemberStore:
    return InMemoryMemberStore()


@pytest.fixture
def premium_member() -> Member:
    return Member(
        id="user_b",
        auth_id="user_b",
        email="b@y.com",
        subscription_tier=SubscriptionTier.PREMIUM,
        payment_customer_id="cus_old",
    )


# ══════════════════════════════════════════════════════════════
# Stripe Event Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def stripe_event() -> Callable[..., bytes]:
    """Build a raw Stripe event payload."""

    def _build(event_type: str, obj: dict[str, Any], event_id: str = "evt_test_123") -> bytes:
        return json.dumps(
            {
                "id": event_id,
                "object": "event",
                "type": event_type,
                "data": {"object": obj},
            }
        ).encode("utf-8")

    return _build


@pytest.fixture
def invoice_object() -> Callable[..., dict[str, Any]]:
    """Build an invoice object as sent with invoice.* events."""

    def _build(
        email: str | None = "a@x.com",
        user_id: str | None = "user_a",
        customer: str = "cus_123",
        on_invoice: bool = False,
    ) -> dict[str, Any]:
        metadata = {"userId": user_id, "tier": "price_premium_monthly"} if user_id else {}
        return {
            "id": "in_123",
            "object": "invoice",
            "customer": customer,
            "customer_email": email,
            "metadata": metadata if on_invoice else {},
            "subscription_details": {"metadata": {} if on_invoice else metadata},
        }

    return _build


@pytest.fixture
def sign() -> Callable[..., str]:
    """Compute a Stripe-Signature header for a payload."""

    def _sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
        timestamp = timestamp or int(time.time())
        signed_payload = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"

    return _sign
