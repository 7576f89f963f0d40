"""one-time referral reward stamps and xp log

Revision ID: 20260212_0002
Revises: 20260205_0001
Create Date: 2026-02-12
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20260212_0002"
down_revision: Union[str, None] = "20260205_0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("referrals", sa.Column("registration_rewarded_at", sa.DateTime(), nullable=True))
    op.add_column("referrals", sa.Column("payment_rewarded_at", sa.DateTime(), nullable=True))

    op.create_table(
        "xp_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("source", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_xp_log_tg_user_id", "xp_log", ["tg_user_id"], unique=False)
    op.create_index("ix_xp_log_source", "xp_log", ["source"], unique=False)
    op.create_index("ix_xp_log_created_at", "xp_log", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_xp_log_created_at", table_name="xp_log")
    op.drop_index("ix_xp_log_source", table_name="xp_log")
    op.drop_index("ix_xp_log_tg_user_id", table_name="xp_log")
    op.drop_table("xp_log")

    op.drop_column("referrals", "payment_rewarded_at")
    op.drop_column("referrals", "registration_rewarded_at")
