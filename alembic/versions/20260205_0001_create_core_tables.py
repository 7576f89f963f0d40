"""create core tables

Revision ID: 20260205_0001
Revises: 
Create Date: 2026-02-05
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20260205_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("photo_url", sa.String(length=512), nullable=True),
        sa.Column("language", sa.String(length=8), nullable=False, server_default="kk"),
        sa.Column("onboarding_step", sa.String(length=32), nullable=False, server_default="phone"),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("promo_code", sa.String(length=16), nullable=False),
        sa.Column("invited_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_referrals_json", sa.Text(), nullable=True),
        sa.Column("payment_status", sa.String(length=32), nullable=False, server_default="unpaid"),
        sa.Column("paid_amount", sa.Integer(), nullable=True),
        sa.Column("has_discount", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("receipt_file_id", sa.String(length=255), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("access_type", sa.String(length=16), nullable=True),
        sa.Column("demo_expires_at", sa.DateTime(), nullable=True),
        sa.Column("progress_json", sa.Text(), nullable=True),
        sa.Column("preparation_progress_json", sa.Text(), nullable=True),
        sa.Column("basic_progress_json", sa.Text(), nullable=True),
        sa.Column("memorized_names_json", sa.Text(), nullable=True),
        sa.Column("earned_tasks_json", sa.Text(), nullable=True),
        sa.Column("extras_json", sa.Text(), nullable=True),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active_date", sa.Date(), nullable=True),
        sa.Column("unlocked_badges_json", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_tg_user_id", "users", ["tg_user_id"], unique=True)
    op.create_index("ix_users_promo_code", "users", ["promo_code"], unique=True)
    op.create_index("ix_users_payment_status", "users", ["payment_status"], unique=False)
    op.create_index("ix_users_xp", "users", ["xp"], unique=False)

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("referrer_tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("invited_tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("invited_tg_user_id", name="uq_referrals_invited"),
    )
    op.create_index("ix_referrals_referrer_tg_user_id", "referrals", ["referrer_tg_user_id"], unique=False)
    op.create_index("ix_referrals_invited_tg_user_id", "referrals", ["invited_tg_user_id"], unique=False)

    op.create_table(
        "used_promo_codes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("promo_code", sa.String(length=16), nullable=False),
        sa.Column("used_by_tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("used_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_used_promo_codes_promo_code", "used_promo_codes", ["promo_code"], unique=True)
    op.create_index("ix_used_promo_codes_used_by_tg_user_id", "used_promo_codes", ["used_by_tg_user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_used_promo_codes_used_by_tg_user_id", table_name="used_promo_codes")
    op.drop_index("ix_used_promo_codes_promo_code", table_name="used_promo_codes")
    op.drop_table("used_promo_codes")

    op.drop_index("ix_referrals_invited_tg_user_id", table_name="referrals")
    op.drop_index("ix_referrals_referrer_tg_user_id", table_name="referrals")
    op.drop_table("referrals")

    op.drop_index("ix_users_xp", table_name="users")
    op.drop_index("ix_users_payment_status", table_name="users")
    op.drop_index("ix_users_promo_code", table_name="users")
    op.drop_index("ix_users_tg_user_id", table_name="users")
    op.drop_table("users")
