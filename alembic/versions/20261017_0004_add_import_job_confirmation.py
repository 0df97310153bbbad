"""add dry-run source rows and confirmation link to import_jobs

Revision ID: 20261017_0004
Revises: 20261017_0003
Create Date: 2026-10-17 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0004"
down_revision = "20261017_0003"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "import_jobs",
        sa.Column("source_rows", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.add_column(
        "import_jobs",
        sa.Column("source_job_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_foreign_key(
        "fk_import_jobs_source_job_id",
        "import_jobs",
        "import_jobs",
        ["source_job_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_unique_constraint("uq_import_jobs_source_job_id", "import_jobs", ["source_job_id"])


def downgrade() -> None:
    op.drop_constraint("uq_import_jobs_source_job_id", "import_jobs", type_="unique")
    op.drop_constraint("fk_import_jobs_source_job_id", "import_jobs", type_="foreignkey")
    op.drop_column("import_jobs", "source_job_id")
    op.drop_column("import_jobs", "source_rows")
