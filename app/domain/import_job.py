"""
app/domain/import_job.py

Bulk import job lifecycle: states, allowed transitions and snapshots.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.domain.reconciliation import ImportSummary


class ImportJobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({ImportJobStatus.COMPLETED, ImportJobStatus.FAILED})

# A pending job can also fail directly when it could not be scheduled.
_ALLOWED_TRANSITIONS: dict[ImportJobStatus, frozenset[ImportJobStatus]] = {
    ImportJobStatus.PENDING: frozenset({ImportJobStatus.PROCESSING, ImportJobStatus.FAILED}),
    ImportJobStatus.PROCESSING: frozenset({ImportJobStatus.COMPLETED, ImportJobStatus.FAILED}),
    ImportJobStatus.COMPLETED: frozenset(),
    ImportJobStatus.FAILED: frozenset(),
}


class InvalidJobTransitionError(RuntimeError):
    """
    Raised when a job is asked to move to a state its current state forbids.
    """

    def __init__(self, job_id: uuid.UUID, current: ImportJobStatus, target: ImportJobStatus) -> None:
        super().__init__(f"Import job {job_id} cannot move from {current.value} to {target.value}.")
        self.job_id = job_id
        self.current = current
        self.target = target


def can_transition(current: ImportJobStatus, target: ImportJobStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS[current]


def ensure_transition(job_id: uuid.UUID, current: ImportJobStatus, target: ImportJobStatus) -> None:
    if not can_transition(current, target):
        raise InvalidJobTransitionError(job_id, current, target)


@dataclass(frozen=True)
class ImportJob:
    """
    Read-only snapshot of a job as committed in the job store.
    """

    job_id: uuid.UUID
    status: ImportJobStatus
    total_rows: int
    created_by: str
    created_at: datetime
    processed_rows: int = 0
    summary: ImportSummary = field(default_factory=ImportSummary)
    file_name: str | None = None
    dry_run: bool = False
    audit_failures: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    failure_reason: str | None = None
    source_job_id: uuid.UUID | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class ImportJobTicket:
    """
    What the submitter gets back before any row is processed.
    """

    job_id: uuid.UUID
    total_rows: int
    status: ImportJobStatus = ImportJobStatus.PENDING
