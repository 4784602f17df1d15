"""
SQLAlchemy ORM Models

The members table holds one row per subscriber, keyed by email for reconciliation.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from billrelay.core.models import Member, SubscriptionTier
from billrelay.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin adding created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=_utcnow,
        nullable=True,
    )


class MemberModel(Base, TimestampMixin):
    """Member subscription state."""

    __tablename__ = "members"

    # Auth subject id at creation time, never rewritten
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    auth_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    subscription_tier: Mapped[int] = mapped_column(
        Integer,
        default=int(SubscriptionTier.NONE),
        nullable=False,
    )
    payment_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    def to_member(self) -> Member:
        return Member(
            id=self.id,
            auth_id=self.auth_id,
            email=self.email,
            subscription_tier=SubscriptionTier(self.subscription_tier),
            payment_customer_id=self.payment_customer_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<MemberModel id={self.id} email={self.email} tier={self.subscription_tier}>"
