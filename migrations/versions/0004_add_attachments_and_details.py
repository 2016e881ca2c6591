"""add attachments, description, difficulty and importance"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004_add_attachments_and_details"
down_revision = "0003_add_subtasks_and_activity_log"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "tasks",
        sa.Column("attachments", sa.JSON(), nullable=False, server_default="[]"),
    )
    op.add_column("tasks", sa.Column("description", sa.Text(), nullable=True))
    op.add_column("tasks", sa.Column("difficulty", sa.String(length=20), nullable=True))
    op.add_column("tasks", sa.Column("importance", sa.String(length=20), nullable=True))


def downgrade() -> None:
    op.drop_column("tasks", "importance")
    op.drop_column("tasks", "difficulty")
    op.drop_column("tasks", "description")
    op.drop_column("tasks", "attachments")
