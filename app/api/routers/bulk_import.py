"""
Bulk import endpoints: submission, job status and per-row outcomes.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_actor_id, get_tabular_upload
from app.domain.import_job import ImportJobStatus
from app.domain.reconciliation import RowClassification
from app.parsers.row_decoder import RowDecodeError, decode_rows
from app.repositories.import_job_store import ImportJobNotFoundError
from app.schemas.bulk_import import (
    ImportJobAcceptedResponse,
    ImportJobListResponse,
    ImportJobStatusResponse,
    RowOutcomeListResponse,
    RowOutcomeResponse,
)
from app.services.column_dictionary_service import (
    ColumnDictionaryService,
    get_column_dictionary_service,
)
from app.services.import_job_manager import (
    ImportConfirmationError,
    ImportJobManager,
    ImportSubmissionError,
    get_import_job_manager,
)

router = APIRouter(tags=["bulk-import"])


@router.post(
    "/imports",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportJobAcceptedResponse,
)
def submit_import(
    file: UploadFile = Depends(get_tabular_upload),
    dry_run: bool = Query(default=False, description="Reconcile and report without writing records"),
    actor_id: str = Depends(get_actor_id),
    manager: ImportJobManager = Depends(get_import_job_manager),
    dictionary_service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ImportJobAcceptedResponse:
    file_name = file.filename or "upload.csv"
    try:
        decoded = decode_rows(file_name, file.file)
    except RowDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    finally:
        file.file.close()

    try:
        ticket = manager.submit(
            [row.values for row in decoded],
            dictionary_service.load_snapshot(),
            actor_id,
            file_name=file_name,
            dry_run=dry_run,
            row_numbers=[row.row_number for row in decoded],
        )
    except ImportSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ImportJobAcceptedResponse.from_ticket(ticket)


@router.post(
    "/imports/{job_id}/confirm",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportJobAcceptedResponse,
)
def confirm_import(
    job_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: ImportJobManager = Depends(get_import_job_manager),
    dictionary_service: ColumnDictionaryService = Depends(get_column_dictionary_service),
) -> ImportJobAcceptedResponse:
    try:
        ticket = manager.confirm_job(job_id, dictionary_service.load_snapshot(), actor_id)
    except ImportJobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImportConfirmationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ImportSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ImportJobAcceptedResponse.from_ticket(ticket)


@router.get("/imports", response_model=ImportJobListResponse)
def list_imports(
    status_filter: ImportJobStatus | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=100, ge=1, le=500, description="Max jobs returned"),
    manager: ImportJobManager = Depends(get_import_job_manager),
) -> ImportJobListResponse:
    jobs = manager.list_jobs(limit=limit, status=status_filter)
    return ImportJobListResponse(jobs=[ImportJobStatusResponse.from_job(job) for job in jobs])


@router.get("/imports/{job_id}", response_model=ImportJobStatusResponse)
def get_import_status(
    job_id: UUID,
    manager: ImportJobManager = Depends(get_import_job_manager),
) -> ImportJobStatusResponse:
    job = manager.get_status(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return ImportJobStatusResponse.from_job(job)


@router.get("/imports/{job_id}/outcomes", response_model=RowOutcomeListResponse)
def list_import_outcomes(
    job_id: UUID,
    classification: RowClassification | None = Query(default=None, description="Optional classification filter"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    manager: ImportJobManager = Depends(get_import_job_manager),
) -> RowOutcomeListResponse:
    outcomes = manager.list_outcomes(
        job_id,
        classification=classification,
        limit=limit,
        offset=offset,
    )
    if outcomes is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return RowOutcomeListResponse(
        job_id=job_id,
        outcomes=[RowOutcomeResponse.from_outcome(outcome) for outcome in outcomes],
    )
