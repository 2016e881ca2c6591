"""add start date"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_start_date"
down_revision = "0001_create_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("tasks", sa.Column("start_date", sa.Date(), nullable=True))


def downgrade() -> None:
    op.drop_column("tasks", "start_date")
