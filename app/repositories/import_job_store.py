"""
app/repositories/import_job_store.py

Job store used by the import job manager.

The job manager is the single writer of a job's lifecycle fields; status
readers only ever see committed snapshots.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.orm import Session

from app.domain.import_job import ImportJob, ImportJobStatus, InvalidJobTransitionError, ensure_transition
from app.domain.person import SourceRow
from app.domain.reconciliation import ImportSummary, RowClassification, RowOutcome
from db.models.import_job import ImportJobRecord, ImportRowOutcomeRecord
from db.repositories.errors import RecordPersistenceError, translate_db_errors
from db.repositories.import_job_repository import ImportJobRepository


class ImportJobStore(Protocol):
    def create_job(
        self,
        *,
        total_rows: int,
        created_by: str,
        file_name: str | None = None,
        dry_run: bool = False,
        source_rows: Sequence[SourceRow] = (),
        source_job_id: uuid.UUID | None = None,
    ) -> ImportJob:
        ...

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        ...

    def get_source_rows(self, job_id: uuid.UUID) -> list[SourceRow]:
        ...

    def find_confirmation(self, source_job_id: uuid.UUID) -> ImportJob | None:
        ...

    def list_jobs(self, *, limit: int = 100, status: ImportJobStatus | None = None) -> list[ImportJob]:
        ...

    def start_job(self, job_id: uuid.UUID) -> ImportJob:
        ...

    def record_progress(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        ...

    def complete_job(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        ...

    def fail_job(
        self,
        job_id: uuid.UUID,
        *,
        reason: str,
        processed_rows: int | None = None,
        summary: ImportSummary | None = None,
        audit_failures: int | None = None,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        ...

    def list_outcomes(
        self,
        job_id: uuid.UUID,
        *,
        classification: RowClassification | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RowOutcome]:
        ...


class ImportJobNotFoundError(LookupError):
    """
    Raised when a lifecycle call names a job the store does not know.
    """

    def __init__(self, job_id: uuid.UUID) -> None:
        super().__init__(f"Import job {job_id} was not found.")
        self.job_id = job_id


def _job_to_domain(row: ImportJobRecord) -> ImportJob:
    return ImportJob(
        job_id=row.id,
        status=ImportJobStatus(row.status),
        total_rows=row.total_rows,
        created_by=row.created_by,
        created_at=row.created_at,
        processed_rows=row.processed_rows,
        summary=ImportSummary.from_payload(row.summary_json),
        file_name=row.file_name,
        dry_run=row.dry_run,
        audit_failures=row.audit_failures,
        started_at=row.started_at,
        completed_at=row.completed_at,
        failure_reason=row.failure_reason,
        source_job_id=row.source_job_id,
    )


def _outcome_to_domain(row: ImportRowOutcomeRecord) -> RowOutcome:
    return RowOutcome.from_payload(
        {
            "row_number": row.row_number,
            "classification": row.classification,
            "identity_key": row.identity_key,
            "field_diffs": row.field_diffs,
            "errors": row.errors,
        }
    )


class SqlAlchemyImportJobStore:
    """
    Adapter from the session-scoped job repository to short per-call transactions.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create_job(
        self,
        *,
        total_rows: int,
        created_by: str,
        file_name: str | None = None,
        dry_run: bool = False,
        source_rows: Sequence[SourceRow] = (),
        source_job_id: uuid.UUID | None = None,
    ) -> ImportJob:
        with translate_db_errors("job creation"), self._session_factory() as session:
            with session.begin():
                job = ImportJobRepository(session).create_job(
                    total_rows=total_rows,
                    created_by=created_by,
                    file_name=file_name,
                    dry_run=dry_run,
                    source_rows=source_rows,
                    source_job_id=source_job_id,
                )
                return _job_to_domain(job)

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        with translate_db_errors("job lookup"), self._session_factory() as session:
            job = ImportJobRepository(session).get_job(job_id)
            return _job_to_domain(job) if job is not None else None

    def get_source_rows(self, job_id: uuid.UUID) -> list[SourceRow]:
        with translate_db_errors("job source rows"), self._session_factory() as session:
            job = ImportJobRepository(session).get_job(job_id)
            if job is None:
                raise ImportJobNotFoundError(job_id)
            return [SourceRow.from_payload(item) for item in job.source_rows or []]

    def find_confirmation(self, source_job_id: uuid.UUID) -> ImportJob | None:
        with translate_db_errors("job confirmation lookup"), self._session_factory() as session:
            job = ImportJobRepository(session).find_by_source_job(source_job_id)
            return _job_to_domain(job) if job is not None else None

    def list_jobs(self, *, limit: int = 100, status: ImportJobStatus | None = None) -> list[ImportJob]:
        with translate_db_errors("job listing"), self._session_factory() as session:
            jobs = ImportJobRepository(session).list_jobs(
                limit=limit,
                status=status.value if status is not None else None,
            )
            return [_job_to_domain(job) for job in jobs]

    def start_job(self, job_id: uuid.UUID) -> ImportJob:
        with translate_db_errors("job start"), self._session_factory() as session:
            with session.begin():
                job = ImportJobRepository(session).mark_processing(job_id=job_id)
                return self._require(job_id, job)

    def record_progress(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with translate_db_errors("job progress"), self._session_factory() as session:
            with session.begin():
                job = ImportJobRepository(session).record_progress(
                    job_id=job_id,
                    processed_rows=processed_rows,
                    summary=summary,
                    audit_failures=audit_failures,
                    outcomes=outcomes,
                )
                return self._require(job_id, job)

    def complete_job(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with translate_db_errors("job completion"), self._session_factory() as session:
            with session.begin():
                job = ImportJobRepository(session).mark_completed(
                    job_id=job_id,
                    processed_rows=processed_rows,
                    summary=summary,
                    audit_failures=audit_failures,
                    outcomes=outcomes,
                )
                return self._require(job_id, job)

    def fail_job(
        self,
        job_id: uuid.UUID,
        *,
        reason: str,
        processed_rows: int | None = None,
        summary: ImportSummary | None = None,
        audit_failures: int | None = None,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with translate_db_errors("job failure"), self._session_factory() as session:
            with session.begin():
                job = ImportJobRepository(session).mark_failed(
                    job_id=job_id,
                    failure_reason=reason,
                    processed_rows=processed_rows,
                    summary=summary,
                    audit_failures=audit_failures,
                    outcomes=outcomes,
                )
                return self._require(job_id, job)

    def list_outcomes(
        self,
        job_id: uuid.UUID,
        *,
        classification: RowClassification | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RowOutcome]:
        with translate_db_errors("outcome listing"), self._session_factory() as session:
            rows = ImportJobRepository(session).list_outcomes(
                job_id=job_id,
                classification=classification.value if classification is not None else None,
                limit=limit,
                offset=offset,
            )
            return [_outcome_to_domain(row) for row in rows]

    @staticmethod
    def _require(job_id: uuid.UUID, job: ImportJobRecord | None) -> ImportJob:
        if job is None:
            raise ImportJobNotFoundError(job_id)
        return _job_to_domain(job)


class InMemoryImportJobStore:
    """
    Thread-safe job store; snapshots are immutable so readers never see a
    half-applied update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[uuid.UUID, ImportJob] = {}
        self._outcomes: dict[uuid.UUID, list[RowOutcome]] = {}
        self._source_rows: dict[uuid.UUID, list[SourceRow]] = {}

    def create_job(
        self,
        *,
        total_rows: int,
        created_by: str,
        file_name: str | None = None,
        dry_run: bool = False,
        source_rows: Sequence[SourceRow] = (),
        source_job_id: uuid.UUID | None = None,
    ) -> ImportJob:
        job = ImportJob(
            job_id=uuid.uuid4(),
            status=ImportJobStatus.PENDING,
            total_rows=total_rows,
            created_by=created_by,
            created_at=datetime.now(timezone.utc),
            file_name=file_name,
            dry_run=dry_run,
            source_job_id=source_job_id,
        )
        with self._lock:
            if source_job_id is not None and any(
                existing.source_job_id == source_job_id for existing in self._jobs.values()
            ):
                raise RecordPersistenceError(f"Import job {source_job_id} is already confirmed.")
            self._jobs[job.job_id] = job
            self._outcomes[job.job_id] = []
            self._source_rows[job.job_id] = list(source_rows)
        return job

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def get_source_rows(self, job_id: uuid.UUID) -> list[SourceRow]:
        with self._lock:
            if job_id not in self._jobs:
                raise ImportJobNotFoundError(job_id)
            return list(self._source_rows.get(job_id, []))

    def find_confirmation(self, source_job_id: uuid.UUID) -> ImportJob | None:
        with self._lock:
            for job in self._jobs.values():
                if job.source_job_id == source_job_id:
                    return job
        return None

    def list_jobs(self, *, limit: int = 100, status: ImportJobStatus | None = None) -> list[ImportJob]:
        with self._lock:
            jobs = list(self._jobs.values())
        if status is not None:
            jobs = [job for job in jobs if job.status is status]
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[: max(1, limit)]

    def start_job(self, job_id: uuid.UUID) -> ImportJob:
        with self._lock:
            job = self._get_locked(job_id)
            ensure_transition(job_id, job.status, ImportJobStatus.PROCESSING)
            updated = replace(
                job,
                status=ImportJobStatus.PROCESSING,
                started_at=datetime.now(timezone.utc),
            )
            self._jobs[job_id] = updated
            return updated

    def record_progress(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with self._lock:
            job = self._get_locked(job_id)
            if job.status is not ImportJobStatus.PROCESSING:
                raise InvalidJobTransitionError(job_id, job.status, ImportJobStatus.PROCESSING)
            updated = replace(
                job,
                processed_rows=processed_rows,
                summary=summary,
                audit_failures=audit_failures,
            )
            self._jobs[job_id] = updated
            self._outcomes[job_id].extend(outcomes)
            return updated

    def complete_job(
        self,
        job_id: uuid.UUID,
        *,
        processed_rows: int,
        summary: ImportSummary,
        audit_failures: int,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with self._lock:
            job = self._get_locked(job_id)
            ensure_transition(job_id, job.status, ImportJobStatus.COMPLETED)
            updated = replace(
                job,
                status=ImportJobStatus.COMPLETED,
                processed_rows=processed_rows,
                summary=summary,
                audit_failures=audit_failures,
                completed_at=datetime.now(timezone.utc),
                failure_reason=None,
            )
            self._jobs[job_id] = updated
            self._outcomes[job_id].extend(outcomes)
            return updated

    def fail_job(
        self,
        job_id: uuid.UUID,
        *,
        reason: str,
        processed_rows: int | None = None,
        summary: ImportSummary | None = None,
        audit_failures: int | None = None,
        outcomes: Sequence[RowOutcome] = (),
    ) -> ImportJob:
        with self._lock:
            job = self._get_locked(job_id)
            ensure_transition(job_id, job.status, ImportJobStatus.FAILED)
            updated = replace(
                job,
                status=ImportJobStatus.FAILED,
                completed_at=datetime.now(timezone.utc),
                failure_reason=reason,
            )
            if processed_rows is not None and summary is not None:
                updated = replace(updated, processed_rows=processed_rows, summary=summary)
            if audit_failures is not None:
                updated = replace(updated, audit_failures=audit_failures)
            self._jobs[job_id] = updated
            self._outcomes[job_id].extend(outcomes)
            return updated

    def list_outcomes(
        self,
        job_id: uuid.UUID,
        *,
        classification: RowClassification | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RowOutcome]:
        with self._lock:
            outcomes = list(self._outcomes.get(job_id, []))
        if classification is not None:
            outcomes = [outcome for outcome in outcomes if outcome.classification is classification]
        outcomes.sort(key=lambda outcome: outcome.row_number)
        start = max(0, offset)
        return outcomes[start : start + max(1, limit)]

    def _get_locked(self, job_id: uuid.UUID) -> ImportJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise ImportJobNotFoundError(job_id)
        return job
