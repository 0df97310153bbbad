"""
app/repositories/history_repository.py

Append-only audit sink plus the read and retention helpers used by admins.
"""

from __future__ import annotations

import threading
import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime
from functools import lru_cache
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.domain.history import HistoryAction, HistoryEntry
from db.models.history_entry import HistoryEntryRecord
from db.repositories.errors import translate_db_errors


class HistoryRecorder(Protocol):
    def append(self, entry: HistoryEntry) -> None:
        ...


class HistoryStore(HistoryRecorder, Protocol):
    def list_entries(
        self,
        *,
        subject_id: str | None = None,
        job_id: uuid.UUID | None = None,
        action: HistoryAction | None = None,
        limit: int = 100,
    ) -> list[HistoryEntry]:
        ...

    def count_by_action(self, *, since: datetime | None = None) -> dict[str, int]:
        ...

    def purge_older_than(self, cutoff: datetime) -> int:
        ...


def _to_domain(row: HistoryEntryRecord) -> HistoryEntry:
    return HistoryEntry(
        action=HistoryAction(row.action),
        actor_id=row.actor_id,
        subject_id=row.subject_id,
        before_snapshot=row.before_snapshot,
        after_snapshot=row.after_snapshot,
        job_id=row.job_id,
        timestamp=row.timestamp,
    )


class SqlAlchemyHistoryStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(self, entry: HistoryEntry) -> None:
        entry = entry.stamped()
        with translate_db_errors("history append"), self._session_factory() as session:
            with session.begin():
                session.add(
                    HistoryEntryRecord(
                        action=entry.action.value,
                        actor_id=entry.actor_id,
                        subject_id=entry.subject_id,
                        before_snapshot=entry.before_snapshot,
                        after_snapshot=entry.after_snapshot,
                        job_id=entry.job_id,
                        timestamp=entry.timestamp,
                    )
                )

    def list_entries(
        self,
        *,
        subject_id: str | None = None,
        job_id: uuid.UUID | None = None,
        action: HistoryAction | None = None,
        limit: int = 100,
    ) -> list[HistoryEntry]:
        stmt = select(HistoryEntryRecord)
        if subject_id:
            stmt = stmt.where(HistoryEntryRecord.subject_id == subject_id)
        if job_id is not None:
            stmt = stmt.where(HistoryEntryRecord.job_id == job_id)
        if action is not None:
            stmt = stmt.where(HistoryEntryRecord.action == action.value)
        stmt = stmt.order_by(HistoryEntryRecord.timestamp.desc()).limit(max(1, limit))

        with translate_db_errors("history listing"), self._session_factory() as session:
            return [_to_domain(row) for row in session.scalars(stmt).all()]

    def count_by_action(self, *, since: datetime | None = None) -> dict[str, int]:
        stmt = select(HistoryEntryRecord.action, func.count()).group_by(HistoryEntryRecord.action)
        if since is not None:
            stmt = stmt.where(HistoryEntryRecord.timestamp >= since)
        with translate_db_errors("history stats"), self._session_factory() as session:
            return {action: int(total) for action, total in session.execute(stmt).all()}

    def purge_older_than(self, cutoff: datetime) -> int:
        stmt = delete(HistoryEntryRecord).where(HistoryEntryRecord.timestamp < cutoff)
        with translate_db_errors("history purge"), self._session_factory() as session:
            with session.begin():
                result = session.execute(stmt)
                return int(result.rowcount or 0)


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] = []

    def append(self, entry: HistoryEntry) -> None:
        with self._lock:
            self._entries.append(entry.stamped())

    def list_entries(
        self,
        *,
        subject_id: str | None = None,
        job_id: uuid.UUID | None = None,
        action: HistoryAction | None = None,
        limit: int = 100,
    ) -> list[HistoryEntry]:
        with self._lock:
            entries = list(reversed(self._entries))
        if subject_id:
            entries = [entry for entry in entries if entry.subject_id == subject_id]
        if job_id is not None:
            entries = [entry for entry in entries if entry.job_id == job_id]
        if action is not None:
            entries = [entry for entry in entries if entry.action is action]
        return entries[: max(1, limit)]

    def count_by_action(self, *, since: datetime | None = None) -> dict[str, int]:
        with self._lock:
            entries = list(self._entries)
        if since is not None:
            entries = [entry for entry in entries if entry.timestamp >= since]
        return dict(Counter(entry.action.value for entry in entries))

    def purge_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            kept = [entry for entry in self._entries if entry.timestamp >= cutoff]
            purged = len(self._entries) - len(kept)
            self._entries = kept
        return purged

    @property
    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries)


@lru_cache(maxsize=1)
def get_history_store() -> SqlAlchemyHistoryStore:
    from db.session import SessionLocal

    return SqlAlchemyHistoryStore(SessionLocal)
