"""Create the per-day study plan status table.

Revision ID: 20261019_01_study_plans
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261019_01_study_plans"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "study_plans",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("storage_key", sa.String(length=160), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("plan_date", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("statuses", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("completed_ids", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("source_signals", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("storage_key", name="uq_study_plans_storage_key"),
    )
    op.create_index(
        "ix_study_plans_user_date",
        "study_plans",
        ["user_id", "plan_date"],
    )


def downgrade() -> None:
    op.drop_index("ix_study_plans_user_date", table_name="study_plans")
    op.drop_table("study_plans")
