"""add subtasks and activity log"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_subtasks_and_activity_log"
down_revision = "0002_add_start_date"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "tasks",
        sa.Column("subtasks", sa.JSON(), nullable=False, server_default="[]"),
    )
    op.add_column(
        "tasks",
        sa.Column("activity_log", sa.JSON(), nullable=False, server_default="[]"),
    )


def downgrade() -> None:
    op.drop_column("tasks", "activity_log")
    op.drop_column("tasks", "subtasks")
