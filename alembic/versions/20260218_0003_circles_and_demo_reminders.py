"""circles and demo expiry reminders

Revision ID: 20260218_0003
Revises: 20260212_0002
Create Date: 2026-02-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20260218_0003"
down_revision: Union[str, None] = "20260212_0002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("demo_expiry_notified_at", sa.DateTime(), nullable=True))

    op.create_table(
        "circles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("circle_id", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("owner_tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("invite_code", sa.String(length=8), nullable=False),
        sa.Column("max_members", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_circles_circle_id", "circles", ["circle_id"], unique=True)
    op.create_index("ix_circles_invite_code", "circles", ["invite_code"], unique=True)
    op.create_index("ix_circles_owner_tg_user_id", "circles", ["owner_tg_user_id"], unique=False)

    op.create_table(
        "circle_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("circle_pk", sa.Integer(), sa.ForeignKey("circles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tg_user_id", sa.BigInteger(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("left_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("circle_pk", "tg_user_id", name="uq_circle_members_user"),
    )
    op.create_index("ix_circle_members_circle_pk", "circle_members", ["circle_pk"], unique=False)
    op.create_index("ix_circle_members_tg_user_id", "circle_members", ["tg_user_id"], unique=False)
    op.create_index("ix_circle_members_status", "circle_members", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_circle_members_status", table_name="circle_members")
    op.drop_index("ix_circle_members_tg_user_id", table_name="circle_members")
    op.drop_index("ix_circle_members_circle_pk", table_name="circle_members")
    op.drop_table("circle_members")

    op.drop_index("ix_circles_owner_tg_user_id", table_name="circles")
    op.drop_index("ix_circles_invite_code", table_name="circles")
    op.drop_index("ix_circles_circle_id", table_name="circles")
    op.drop_table("circles")

    op.drop_column("users", "demo_expiry_notified_at")
