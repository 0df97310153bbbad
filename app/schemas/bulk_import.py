"""
Schemas for bulk import submission, status and outcome endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.import_job import ImportJob, ImportJobTicket
from app.domain.reconciliation import RowOutcome


class ImportSummaryResponse(BaseModel):
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    invalid: int = 0


class ImportJobAcceptedResponse(BaseModel):
    job_id: UUID
    total_rows: int
    status: str

    @classmethod
    def from_ticket(cls, ticket: ImportJobTicket) -> ImportJobAcceptedResponse:
        return cls(job_id=ticket.job_id, total_rows=ticket.total_rows, status=ticket.status.value)


class ImportJobStatusResponse(BaseModel):
    job_id: UUID
    status: str
    total_rows: int
    processed_rows: int
    summary: ImportSummaryResponse
    created_by: str
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    file_name: str | None = None
    dry_run: bool = False
    audit_failures: int = 0
    failure_reason: str | None = None
    source_job_id: UUID | None = None

    @classmethod
    def from_job(cls, job: ImportJob) -> ImportJobStatusResponse:
        return cls(
            job_id=job.job_id,
            status=job.status.value,
            total_rows=job.total_rows,
            processed_rows=job.processed_rows,
            summary=ImportSummaryResponse(**job.summary.to_payload()),
            created_by=job.created_by,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            file_name=job.file_name,
            dry_run=job.dry_run,
            audit_failures=job.audit_failures,
            failure_reason=job.failure_reason,
            source_job_id=job.source_job_id,
        )


class ImportJobListResponse(BaseModel):
    jobs: list[ImportJobStatusResponse] = Field(default_factory=list)


class RowErrorResponse(BaseModel):
    column: str | None = None
    message: str
    value: str | None = None


class FieldDiffResponse(BaseModel):
    old: Any = None
    new: Any = None


class RowOutcomeResponse(BaseModel):
    row_number: int
    classification: str
    identity_key: str | None = None
    field_diffs: dict[str, FieldDiffResponse] = Field(default_factory=dict)
    errors: list[RowErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_outcome(cls, outcome: RowOutcome) -> RowOutcomeResponse:
        return cls(**outcome.to_payload())


class RowOutcomeListResponse(BaseModel):
    job_id: UUID
    outcomes: list[RowOutcomeResponse] = Field(default_factory=list)
