"""
Member Store

Narrow persistence capability used by the reconciler. All lookups and writes
are keyed by email; the unique constraint on members.email is what makes that
safe, not this module.
"""

from typing import Protocol

from sqlalchemy import select, text, update
from sqlalchemy.exc import MultipleResultsFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from billrelay.core.errors import MemberStoreError
from billrelay.core.models import Member, SubscriptionTier
from billrelay.db import session_scope
from billrelay.db.models import MemberModel

logger = structlog.get_logger()


class MemberStore(Protocol):
    """Operations the reconciler needs from the member store."""

    async def ping(self) -> None:
        """Raise MemberStoreError when the store cannot answer."""
        ...

    async def find_by_email(self, email: str) -> Member | None:
        """Return the member with this email, None when there is none."""
        ...

    async def create(self, member: Member) -> Member:
        ...

    async def update_by_email(
        self,
        email: str,
        subscription_tier: SubscriptionTier,
        payment_customer_id: str | None,
        auth_id: str | None = None,
    ) -> int:
        """Update every member matching email and return the affected row count."""
        ...


class SQLAlchemyMemberStore:
    """MemberStore backed by the members table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory)

    async def ping(self) -> None:
        try:
            async with self._session() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            raise MemberStoreError(f"Member store unreachable: {e}") from e

    async def find_by_email(self, email: str) -> Member | None:
        try:
            async with self._session() as session:
                result = await session.execute(
                    select(MemberModel).where(MemberModel.email == email)
                )
                row = result.scalar_one_or_none()
                return row.to_member() if row else None
        except MultipleResultsFound as e:
            logger.error("Ambiguous member lookup", email=email)
            raise MemberStoreError(f"Multiple members share email {email}") from e
        except SQLAlchemyError as e:
            raise MemberStoreError(f"Member lookup failed: {e}") from e

    async def create(self, member: Member) -> Member:
        try:
            async with self._session() as session:
                row = MemberModel(
                    id=member.id,
                    auth_id=member.auth_id,
                    email=member.email,
                    subscription_tier=int(member.subscription_tier),
                    payment_customer_id=member.payment_customer_id,
                )
                session.add(row)
                await session.flush()
                return row.to_member()
        except SQLAlchemyError as e:
            raise MemberStoreError(f"Member insert failed: {e}") from e

    async def update_by_email(
        self,
        email: str,
        subscription_tier: SubscriptionTier,
        payment_customer_id: str | None,
        auth_id: str | None = None,
    ) -> int:
        values: dict = {
            "subscription_tier": int(subscription_tier),
            "payment_customer_id": payment_customer_id,
        }
        if auth_id is not None:
            values["auth_id"] = auth_id

        try:
            async with self._session() as session:
                result = await session.execute(
                    update(MemberModel)
                    .where(MemberModel.email == email)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise MemberStoreError(f"Member update failed: {e}") from e
