"""
Repository for import job lifecycle persistence and status lookup.

Transitions are checked against the job state machine with the job row
locked (SELECT ... FOR UPDATE), so a job can only be claimed by one worker
and a terminal job never changes again.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from app.domain.import_job import ImportJobStatus, InvalidJobTransitionError, ensure_transition
from app.domain.person import SourceRow
from app.domain.reconciliation import ImportSummary, RowOutcome
from db.models.import_job import ImportJobRecord, ImportRowOutcomeRecord


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        total_rows: int,
        created_by: str,
        file_name: str | None = None,
        dry_run: bool = False,
        source_rows: Sequence[SourceRow] = (),
        source_job_id: uuid.UUID | None = None,
    ) -> ImportJobRecord:
        job = ImportJobRecord(
            status=ImportJobStatus.PENDING.value,
            total_rows=total_rows,
            processed_rows=0,
            summary_json=ImportSummary().to_payload(),
            created_by=created_by,
            file_name=file_name,
            dry_run=dry_run,
            audit_failures=0,
            source_rows=[row.to_payload() for row in source_rows] or None,
            source_job_id=source_job_id,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID, *, for_update: bool = False) -> ImportJobRecord | None:
        if not for_update:
            return self._session.get(ImportJobRecord, job_id)
        stmt = select(ImportJobRecord).where(ImportJobRecord.id == job_id).with_for_update()
        return self._session.scalars(stmt).first()

    def find_by_source_job(self, source_job_id: uuid.UUID) -> ImportJobRecord | None:
        stmt = select(ImportJobRecord).where(ImportJobRecord.source_job_id == source_job_id)
        return self._session.scalars(stmt).first()

    def list_jobs(
        self,
        *,
        limit: int = 100,
        status: str | None = None,
    ) -> list[ImportJobRecord]:
        stmt: Select[tuple[ImportJobRecord]] = select(ImportJobRecord)
        if status:
            stmt = stmt.where(ImportJobRecord.status == status)
        stmt = stmt.order_by(ImportJobRecord.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_processing(self, *, job_id: uuid.UUID) -> ImportJobRecord | None:
        job = self.get_job(job_id, for_update=True)
        if job is None:
            return None
        ensure_transition(job.id, ImportJobStatus(job.status), ImportJobStatus.PROCESSING)
        job.status = ImportJobStatus.PROCESSING.value
        job.started_at = datetime.now(timezone.utc)
        return job

    def record_progress(
        self,
        *,
        job_id: uuid.UUID,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJobRecord | None:
        job = self.get_job(job_id, for_update=True)
        if job is None:
            return None
        if ImportJobStatus(job.status) is not ImportJobStatus.PROCESSING:
            raise InvalidJobTransitionError(job.id, ImportJobStatus(job.status), ImportJobStatus.PROCESSING)
        self._apply_counters(job, processed_rows, summary, audit_failures)
        self._add_outcomes(job_id, outcomes)
        return job

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJobRecord | None:
        job = self.get_job(job_id, for_update=True)
        if job is None:
            return None
        ensure_transition(job.id, ImportJobStatus(job.status), ImportJobStatus.COMPLETED)
        self._apply_counters(job, processed_rows, summary, audit_failures)
        self._add_outcomes(job_id, outcomes)
        job.status = ImportJobStatus.COMPLETED.value
        job.completed_at = datetime.now(timezone.utc)
        job.failure_reason = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        failure_reason: str,
        processed_rows: int | None = None,
        summary: ImportSummary | None = None,
        audit_failures: int | None = None,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJobRecord | None:
        job = self.get_job(job_id, for_update=True)
        if job is None:
            return None
        ensure_transition(job.id, ImportJobStatus(job.status), ImportJobStatus.FAILED)
        if processed_rows is not None and summary is not None:
            self._apply_counters(
                job,
                processed_rows,
                summary,
                job.audit_failures if audit_failures is None else audit_failures,
            )
        self._add_outcomes(job_id, outcomes)
        job.status = ImportJobStatus.FAILED.value
        job.completed_at = datetime.now(timezone.utc)
        job.failure_reason = failure_reason
        return job

    def list_outcomes(
        self,
        *,
        job_id: uuid.UUID,
        classification: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ImportRowOutcomeRecord]:
        stmt = select(ImportRowOutcomeRecord).where(ImportRowOutcomeRecord.job_id == job_id)
        if classification:
            stmt = stmt.where(ImportRowOutcomeRecord.classification == classification)
        stmt = (
            stmt.order_by(ImportRowOutcomeRecord.row_number)
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    @staticmethod
    def _apply_counters(
        job: ImportJobRecord,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
    ) -> None:
        job.processed_rows = processed_rows
        job.summary_json = summary.to_payload()
        job.audit_failures = audit_failures

    def _add_outcomes(self, job_id: uuid.UUID, outcomes: Sequence[RowOutcome]) -> None:
        if not outcomes:
            return
        payloads: list[dict[str, Any]] = [outcome.to_payload() for outcome in outcomes]
        self._session.add_all(
            ImportRowOutcomeRecord(
                job_id=job_id,
                row_number=payload["row_number"],
                classification=payload["classification"],
                identity_key=payload["identity_key"],
                field_diffs=payload["field_diffs"],
                errors=payload["errors"],
            )
            for payload in payloads
        )
        self._session.flush()
