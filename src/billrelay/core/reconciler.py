"""
Event Reconciler

Maps decoded billing events onto member subscription state.

Every transition is a single overwrite keyed by the customer email, so replays
and out-of-order deliveries converge on the last write. Email as the join key
is an assumption carried over from the checkout flow: if a member changes
email, or two rows ever share one, events stop reaching the right record.
"""

import asyncio
from typing import Awaitable, TypeVar

import structlog

from billrelay.core.errors import MemberStoreError, MissingEventDataError
from billrelay.core.models import (
    DecodedEvent,
    LifecycleEvent,
    Member,
    PaymentFailed,
    PaymentSucceeded,
    ReconcileResult,
    SubscriptionDeleted,
    SubscriptionTier,
)
from billrelay.db.store import MemberStore

logger = structlog.get_logger()

T = TypeVar("T")


class EventReconciler:
    """Applies one billing event to the member store."""

    def __init__(self, store: MemberStore, timeout: float | None = None):
        self.store = store
        self.timeout = timeout

    async def reconcile(self, event: DecodedEvent) -> ReconcileResult:
        """Reconcile a verified event.

        Raises:
            MissingEventDataError: email or member id absent, nothing written.
            MemberStoreError: the store lookup or write failed.
        """
        if isinstance(event, PaymentSucceeded):
            return await self._handle_payment_succeeded(event)
        if isinstance(event, SubscriptionDeleted):
            return await self._handle_deactivation(event, "subscription_canceled")
        if isinstance(event, PaymentFailed):
            return await self._handle_deactivation(event, "payment_failed")

        logger.info("Unhandled event type", event_type=event.event_type, event_id=event.event_id)
        return ReconcileResult(status="ignored", event_type=event.event_type)

    # ──────────────────────────────────────────────────────────
    # Transitions
    # ──────────────────────────────────────────────────────────

    async def _handle_payment_succeeded(self, event: PaymentSucceeded) -> ReconcileResult:
        email, member_id = self._require_identity(event)

        # Lookup by email is the only de-duplication for redelivered events
        existing = await self._call(self.store.find_by_email(email))

        if existing:
            updated = await self._call(
                self.store.update_by_email(
                    email,
                    subscription_tier=SubscriptionTier.PREMIUM,
                    payment_customer_id=event.customer_id,
                    auth_id=member_id,
                )
            )
            logger.info("Member updated", email=email, member_id=existing.id)
            return ReconcileResult(
                status="processed",
                event_type=event.event_type,
                action="member_updated",
                email=email,
                member_id=existing.id,
                members_updated=updated,
            )

        created = await self._call(
            self.store.create(
                Member(
                    id=member_id,
                    auth_id=member_id,
                    email=email,
                    subscription_tier=SubscriptionTier.PREMIUM,
                    payment_customer_id=event.customer_id,
                )
            )
        )
        logger.info("New member created", email=email, member_id=created.id)
        return ReconcileResult(
            status="processed",
            event_type=event.event_type,
            action="member_created",
            email=email,
            member_id=created.id,
            members_updated=1,
        )

    async def _handle_deactivation(self, event: LifecycleEvent, action: str) -> ReconcileResult:
        email, member_id = self._require_identity(event)

        updated = await self._call(
            self.store.update_by_email(
                email,
                subscription_tier=SubscriptionTier.NONE,
                payment_customer_id=event.customer_id,
            )
        )

        if updated == 0:
            # No member row for this email; reported as success
            logger.warning(
                "Deactivation matched no member",
                event_type=event.event_type,
                email=email,
                member_id=member_id,
            )
        else:
            logger.info("Premium reverted", event_type=event.event_type, email=email)

        return ReconcileResult(
            status="processed",
            event_type=event.event_type,
            action=action,
            email=email,
            member_id=member_id,
            members_updated=updated,
        )

    # ──────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────

    def _require_identity(self, event: LifecycleEvent) -> tuple[str, str]:
        missing = []
        if not event.customer_email:
            missing.append("customer_email")
        if not event.member_id:
            missing.append("member_id")

        if missing:
            logger.error(
                "Missing required metadata or customer email",
                event_type=event.event_type,
                event_id=event.event_id,
                missing=missing,
            )
            raise MissingEventDataError(event.event_type, missing)

        return event.customer_email, event.member_id

    async def _call(self, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise MemberStoreError(f"Member store call timed out after {self.timeout}s") from e
