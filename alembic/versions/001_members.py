"""Members table

Revision ID: 001_members
Revises:
Create Date: 2026-10-19

Creates the members table the webhook relay reconciles against.
Email is unique; reconciliation looks members up by it.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_members"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "members",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("auth_id", sa.String(128), nullable=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("subscription_tier", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payment_customer_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_members_email"),
    )
    op.create_index("ix_members_payment_customer_id", "members", ["payment_customer_id"])


def downgrade() -> None:
    op.drop_index("ix_members_payment_customer_id", table_name="members")
    op.drop_table("members")
