"""
Audit history read endpoint.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.domain.history import HistoryAction
from app.repositories.history_repository import HistoryStore, get_history_store
from app.schemas.history import HistoryEntryResponse, HistoryListResponse, HistoryStatsResponse
from app.validators.rut import validate_rut

router = APIRouter(tags=["history"])


@router.get("/history", response_model=HistoryListResponse)
def list_history(
    subject_id: str | None = Query(default=None, description="RUT of the affected person"),
    job_id: UUID | None = Query(default=None, description="Import job that produced the entries"),
    action: HistoryAction | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    store: HistoryStore = Depends(get_history_store),
) -> HistoryListResponse:
    if subject_id:
        validation = validate_rut(subject_id)
        if validation.is_valid and validation.canonical:
            subject_id = validation.canonical
    entries = store.list_entries(subject_id=subject_id, job_id=job_id, action=action, limit=limit)
    return HistoryListResponse(entries=[HistoryEntryResponse.from_entry(entry) for entry in entries])


@router.get("/history/stats", response_model=HistoryStatsResponse)
def history_stats(
    since: datetime | None = Query(default=None, description="Only count entries at or after this instant"),
    store: HistoryStore = Depends(get_history_store),
) -> HistoryStatsResponse:
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    counts = store.count_by_action(since=since)
    by_action = {action.value: counts.get(action.value, 0) for action in HistoryAction}
    return HistoryStatsResponse(since=since, total=sum(by_action.values()), by_action=by_action)
