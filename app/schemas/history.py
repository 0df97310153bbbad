"""
Schemas for the audit history endpoint.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.history import HistoryEntry


class HistoryEntryResponse(BaseModel):
    action: str
    actor_id: str
    subject_id: str | None = None
    before_snapshot: dict[str, Any] | None = None
    after_snapshot: dict[str, Any] | None = None
    job_id: UUID | None = None
    timestamp: datetime | None = None

    @classmethod
    def from_entry(cls, entry: HistoryEntry) -> HistoryEntryResponse:
        return cls(
            action=entry.action.value,
            actor_id=entry.actor_id,
            subject_id=entry.subject_id,
            before_snapshot=entry.before_snapshot,
            after_snapshot=entry.after_snapshot,
            job_id=entry.job_id,
            timestamp=entry.timestamp,
        )


class HistoryListResponse(BaseModel):
    entries: list[HistoryEntryResponse] = Field(default_factory=list)


class HistoryStatsResponse(BaseModel):
    since: datetime | None = None
    total: int = 0
    by_action: dict[str, int] = Field(default_factory=dict)
