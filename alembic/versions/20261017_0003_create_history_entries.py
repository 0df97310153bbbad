"""create history_entries table

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 09:20:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "history_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("subject_id", sa.String(length=64), nullable=True),
        sa.Column("before_snapshot", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("after_snapshot", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_history_entries_timestamp", "history_entries", ["timestamp"], unique=False)
    op.create_index("ix_history_entries_subject_id", "history_entries", ["subject_id"], unique=False)
    op.create_index("ix_history_entries_job_id", "history_entries", ["job_id"], unique=False)
    op.create_index("ix_history_entries_action", "history_entries", ["action"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_history_entries_action", table_name="history_entries")
    op.drop_index("ix_history_entries_job_id", table_name="history_entries")
    op.drop_index("ix_history_entries_subject_id", table_name="history_entries")
    op.drop_index("ix_history_entries_timestamp", table_name="history_entries")
    op.drop_table("history_entries")
