"""
db/models/history_entry.py

Append-only audit trail for person changes and bulk imports.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, UUIDPrimaryKeyMixin


class HistoryEntryRecord(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "history_entries"

    action: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="create, update, delete, bulk-import",
    )
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Identity key of the affected person; null for job summaries",
    )
    before_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    job_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_history_entries_timestamp", "timestamp"),
        Index("ix_history_entries_subject_id", "subject_id"),
        Index("ix_history_entries_job_id", "job_id"),
        Index("ix_history_entries_action", "action"),
    )
