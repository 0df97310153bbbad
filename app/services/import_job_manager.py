"""
Import job manager: submission, background execution and status tracking.

Submission creates the job and returns before any row is reconciled. The
worker that claims a job (pending -> processing) is the only writer of its
lifecycle fields until the job is terminal.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from functools import lru_cache

from app.config import ImportSettings, get_import_settings
from app.domain.column_dictionary import ColumnDictionary
from app.domain.history import HistoryAction, HistoryEntry
from app.domain.import_job import (
    ImportJob,
    ImportJobStatus,
    ImportJobTicket,
    InvalidJobTransitionError,
)
from app.domain.person import PersonRecord, RawRow, SourceRow
from app.domain.reconciliation import (
    ImportSummary,
    RowClassification,
    RowError,
    RowOutcome,
)
from app.repositories.history_repository import HistoryRecorder, get_history_store
from app.repositories.import_job_store import (
    ImportJobNotFoundError,
    ImportJobStore,
    SqlAlchemyImportJobStore,
)
from app.repositories.person_record_repository import (
    PersonRecordRepository,
    get_person_record_repository,
)
from app.services.import_worker_pool import ImportJobMessage, ImportTaskExecutor, ImportWorkerPool
from app.services.reconciliation_engine import ReconciliationEngine, merged_record
from db.repositories.errors import RecordPersistenceError

logger = logging.getLogger(__name__)

_MAX_FAILURE_REASON_LENGTH = 2000


class ImportSubmissionError(ValueError):
    """
    Raised when a submission is rejected before any job is created.
    """


class ImportConfirmationError(ImportSubmissionError):
    """
    Raised when a job cannot be confirmed: not a completed dry run, or
    already confirmed.
    """


@dataclass
class _JobProgress:
    processed_rows: int = 0
    summary: ImportSummary = field(default_factory=ImportSummary)
    audit_failures: int = 0
    unflushed: list[RowOutcome] = field(default_factory=list)

    def add(self, outcome: RowOutcome) -> None:
        self.processed_rows += 1
        self.summary = self.summary.counted(outcome.classification)
        self.unflushed.append(outcome)

    def drain(self) -> list[RowOutcome]:
        outcomes, self.unflushed = self.unflushed, []
        return outcomes


class ImportJobManager:
    def __init__(
        self,
        *,
        job_store: ImportJobStore,
        record_repository: PersonRecordRepository,
        history_recorder: HistoryRecorder,
        engine: ReconciliationEngine | None = None,
        executor: ImportTaskExecutor | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        self._job_store = job_store
        self._record_repository = record_repository
        self._history_recorder = history_recorder
        self._engine = engine or ReconciliationEngine()
        self._executor = executor
        self._settings = settings or get_import_settings()

    def bind_executor(self, executor: ImportTaskExecutor) -> None:
        self._executor = executor

    def submit(
        self,
        rows: Iterable[RawRow],
        dictionary: ColumnDictionary,
        actor_id: str,
        *,
        file_name: str | None = None,
        dry_run: bool = False,
        row_numbers: Sequence[int] | None = None,
    ) -> ImportJobTicket:
        """
        Create a pending job and hand it to the executor.

        ``row_numbers`` carries the file row of each row; without it rows
        are numbered 1..n. Dry runs keep their rows so they can be
        confirmed later.
        """

        return self._submit(
            rows,
            dictionary,
            actor_id,
            file_name=file_name,
            dry_run=dry_run,
            row_numbers=row_numbers,
        )

    def confirm_job(
        self,
        job_id: uuid.UUID,
        dictionary: ColumnDictionary,
        actor_id: str,
    ) -> ImportJobTicket:
        """
        Commit a completed dry run by submitting its rows as a new job.

        The rows are reconciled again against ``dictionary`` and the records
        as they are now, not as they were during the preview. A dry run can
        be confirmed once.
        """

        preview = self._job_store.get_job(job_id)
        if preview is None:
            raise ImportJobNotFoundError(job_id)
        if not preview.dry_run:
            raise ImportConfirmationError(f"Import job {job_id} is not a dry run.")
        if preview.status is not ImportJobStatus.COMPLETED:
            raise ImportConfirmationError(
                f"Import job {job_id} is {preview.status.value}; only completed dry runs can be confirmed."
            )
        confirmation = self._job_store.find_confirmation(job_id)
        if confirmation is not None:
            raise ImportConfirmationError(
                f"Import job {job_id} was already confirmed by job {confirmation.job_id}."
            )

        source_rows = self._job_store.get_source_rows(job_id)
        try:
            ticket = self._submit(
                [row.values for row in source_rows],
                dictionary,
                actor_id,
                file_name=preview.file_name,
                dry_run=False,
                row_numbers=[row.row_number for row in source_rows],
                source_job_id=job_id,
            )
        except RecordPersistenceError as exc:
            raise ImportConfirmationError(f"Import job {job_id} was already confirmed.") from exc

        logger.info(
            "Import job confirmed source_job_id=%s job_id=%s actor=%s",
            job_id,
            ticket.job_id,
            actor_id,
        )
        return ticket

    def _submit(
        self,
        rows: Iterable[RawRow],
        dictionary: ColumnDictionary,
        actor_id: str,
        *,
        file_name: str | None,
        dry_run: bool,
        row_numbers: Sequence[int] | None,
        source_job_id: uuid.UUID | None = None,
    ) -> ImportJobTicket:
        if not actor_id or not actor_id.strip():
            raise ImportSubmissionError("An actor id is required to submit an import.")
        if dictionary.identity_column is None:
            raise ImportSubmissionError("The column dictionary has no identity column.")

        materialized = tuple(dict(row) for row in rows)
        if not materialized:
            raise ImportSubmissionError("The file contains no data rows.")
        if len(materialized) > self._settings.max_rows:
            raise ImportSubmissionError(
                f"The file has {len(materialized)} rows; the limit is {self._settings.max_rows}."
            )
        numbers = tuple(range(1, len(materialized) + 1)) if row_numbers is None else tuple(row_numbers)
        if len(numbers) != len(materialized) or len(set(numbers)) != len(numbers):
            raise ImportSubmissionError("Row numbers must be unique and match the submitted rows.")
        if self._executor is None:
            raise RuntimeError("Import job manager has no executor bound.")

        job = self._job_store.create_job(
            total_rows=len(materialized),
            created_by=actor_id,
            file_name=file_name,
            dry_run=dry_run,
            source_rows=[SourceRow(number, row) for number, row in zip(numbers, materialized)] if dry_run else (),
            source_job_id=source_job_id,
        )
        logger.info(
            "Import job created job_id=%s rows=%s actor=%s dry_run=%s",
            job.job_id,
            job.total_rows,
            actor_id,
            dry_run,
        )

        message = ImportJobMessage(
            job_id=job.job_id,
            rows=materialized,
            dictionary=dictionary,
            actor_id=actor_id,
            dry_run=dry_run,
            row_numbers=numbers,
        )
        try:
            self._executor.dispatch(message)
        except Exception:
            self._job_store.fail_job(job.job_id, reason="Failed to schedule import job.")
            raise

        return ImportJobTicket(job_id=job.job_id, total_rows=job.total_rows)

    def get_status(self, job_id: uuid.UUID) -> ImportJob | None:
        return self._job_store.get_job(job_id)

    def list_jobs(self, *, limit: int = 100, status: ImportJobStatus | None = None) -> list[ImportJob]:
        return self._job_store.list_jobs(limit=limit, status=status)

    def list_outcomes(
        self,
        job_id: uuid.UUID,
        *,
        classification: RowClassification | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[RowOutcome] | None:
        if self._job_store.get_job(job_id) is None:
            return None
        return self._job_store.list_outcomes(
            job_id,
            classification=classification,
            limit=limit,
            offset=offset,
        )

    def run_job(self, message: ImportJobMessage) -> None:
        """
        Worker entry point. Never raises; failures end up on the job record.
        """

        job_id = message.job_id
        try:
            self._job_store.start_job(job_id)
        except (InvalidJobTransitionError, ImportJobNotFoundError) as exc:
            logger.warning("Import job not claimable job_id=%s reason=%s", job_id, exc)
            return
        except Exception as exc:
            self._mark_job_failed(job_id=job_id, progress=_JobProgress(), exc=exc)
            return
        logger.info("Import job processing job_id=%s rows=%s", job_id, len(message.rows))

        progress = _JobProgress()
        flush_interval = self._settings.progress_flush_interval
        try:
            outcomes = self._engine.reconcile(
                message.rows,
                message.dictionary,
                self._record_repository,
                row_numbers=message.row_numbers,
            )
            for outcome in outcomes:
                outcome = self._process_outcome(outcome, message, progress)
                progress.add(outcome)
                if len(progress.unflushed) >= flush_interval:
                    self._job_store.record_progress(
                        job_id,
                        processed_rows=progress.processed_rows,
                        summary=progress.summary,
                        audit_failures=progress.audit_failures,
                        outcomes=progress.drain(),
                    )

            self._job_store.complete_job(
                job_id,
                processed_rows=progress.processed_rows,
                summary=progress.summary,
                audit_failures=progress.audit_failures,
                outcomes=progress.drain(),
            )
        except Exception as exc:
            self._mark_job_failed(job_id=job_id, progress=progress, exc=exc)
            return

        logger.info(
            "Import job completed job_id=%s summary=%s audit_failures=%s",
            job_id,
            progress.summary.to_payload(),
            progress.audit_failures,
        )
        if not message.dry_run:
            self._append_history(
                HistoryEntry(
                    action=HistoryAction.BULK_IMPORT,
                    actor_id=message.actor_id,
                    subject_id=None,
                    after_snapshot={
                        "summary": progress.summary.to_payload(),
                        "total_rows": len(message.rows),
                    },
                    job_id=job_id,
                )
            )

    def _process_outcome(
        self,
        outcome: RowOutcome,
        message: ImportJobMessage,
        progress: _JobProgress,
    ) -> RowOutcome:
        if outcome.classification is RowClassification.INVALID:
            if self._settings.log_row_errors:
                logger.warning(
                    "Import row invalid job_id=%s row=%s errors=%s",
                    message.job_id,
                    outcome.row_number,
                    [error.message for error in outcome.errors],
                )
            return outcome
        if message.dry_run or not outcome.requires_commit:
            return outcome

        try:
            committed = self._record_repository.upsert(merged_record(outcome, message.actor_id))
        except RecordPersistenceError as exc:
            logger.warning(
                "Import row commit failed job_id=%s row=%s identity=%s error=%s",
                message.job_id,
                outcome.row_number,
                outcome.identity_key,
                exc,
            )
            return outcome.as_invalid(RowError(message=str(exc), column=None))

        if not self._append_history(self._row_history(outcome, committed, message)):
            progress.audit_failures += 1
        return outcome

    @staticmethod
    def _row_history(outcome: RowOutcome, committed: PersonRecord, message: ImportJobMessage) -> HistoryEntry:
        is_new = outcome.classification is RowClassification.NEW
        return HistoryEntry(
            action=HistoryAction.CREATE if is_new else HistoryAction.UPDATE,
            actor_id=message.actor_id,
            subject_id=committed.identity_key,
            before_snapshot=None if is_new or outcome.existing is None else outcome.existing.snapshot(),
            after_snapshot=committed.snapshot(),
            job_id=message.job_id,
        )

    def _append_history(self, entry: HistoryEntry) -> bool:
        try:
            self._history_recorder.append(entry)
        except Exception:
            logger.warning(
                "History entry not recorded action=%s subject=%s job_id=%s",
                entry.action.value,
                entry.subject_id,
                entry.job_id,
                exc_info=True,
            )
            return False
        return True

    def _mark_job_failed(self, *, job_id: uuid.UUID, progress: _JobProgress, exc: Exception) -> None:
        failure_reason = f"{type(exc).__name__}: {exc}"[:_MAX_FAILURE_REASON_LENGTH]
        logger.exception("Import job failed job_id=%s error=%s", job_id, failure_reason)
        try:
            self._job_store.fail_job(
                job_id,
                reason=failure_reason,
                processed_rows=progress.processed_rows,
                summary=progress.summary,
                audit_failures=progress.audit_failures,
                outcomes=progress.drain(),
            )
        except Exception:
            logger.exception("Failed to persist failed import job state job_id=%s", job_id)


@lru_cache(maxsize=1)
def get_import_job_manager() -> ImportJobManager:
    from db.session import SessionLocal

    return ImportJobManager(
        job_store=SqlAlchemyImportJobStore(SessionLocal),
        record_repository=get_person_record_repository(),
        history_recorder=get_history_store(),
    )


@lru_cache(maxsize=1)
def get_import_worker_pool() -> ImportWorkerPool:
    """
    Process-wide pool bound to the shared job manager; started in the app lifespan.
    """

    manager = get_import_job_manager()
    pool = ImportWorkerPool(
        worker_count=get_import_settings().worker_count,
        handler=manager.run_job,
    )
    manager.bind_executor(pool)
    return pool
