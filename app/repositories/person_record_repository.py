"""
app/repositories/person_record_repository.py

Lookup and upsert of person records keyed by canonical RUT.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.domain.person import PersonRecord
from db.models.person_record import PersonRecordModel
from db.repositories.errors import translate_db_errors


class PersonRecordRepository(Protocol):
    """
    Record store shared by import jobs and the ordinary CRUD path.

    ``upsert`` must be atomic per identity key. ``insert`` never overwrites:
    it returns None when the key is already taken.
    """

    def find_by_identity(self, identity_key: str) -> PersonRecord | None:
        ...

    def upsert(self, record: PersonRecord) -> PersonRecord:
        ...

    def insert(self, record: PersonRecord) -> PersonRecord | None:
        ...

    def delete(self, identity_key: str) -> bool:
        ...

    def list_records(self, *, limit: int = 100, offset: int = 0) -> list[PersonRecord]:
        ...

    def references_field(self, field_name: str) -> bool:
        ...


def _to_domain(row: PersonRecordModel) -> PersonRecord:
    return PersonRecord(
        identity_key=row.identity_key,
        fields=dict(row.fields or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
        updated_by=row.updated_by,
    )


class SqlAlchemyPersonRecordRepository:
    """
    PostgreSQL-backed record store; every call runs in its own transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def find_by_identity(self, identity_key: str) -> PersonRecord | None:
        with translate_db_errors("person lookup"), self._session_factory() as session:
            stmt = select(PersonRecordModel).where(PersonRecordModel.identity_key == identity_key)
            row = session.scalars(stmt).first()
            return _to_domain(row) if row is not None else None

    def upsert(self, record: PersonRecord) -> PersonRecord:
        stmt = insert(PersonRecordModel).values(
            identity_key=record.identity_key,
            fields=dict(record.fields),
            updated_by=record.updated_by,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PersonRecordModel.identity_key],
            set_={
                "fields": stmt.excluded.fields,
                "updated_by": stmt.excluded.updated_by,
                "updated_at": func.now(),
            },
        ).returning(PersonRecordModel)

        with translate_db_errors("person upsert"), self._session_factory() as session:
            with session.begin():
                row = session.scalars(stmt).one()
                return _to_domain(row)

    def insert(self, record: PersonRecord) -> PersonRecord | None:
        stmt = (
            insert(PersonRecordModel)
            .values(
                identity_key=record.identity_key,
                fields=dict(record.fields),
                updated_by=record.updated_by,
            )
            .on_conflict_do_nothing(index_elements=[PersonRecordModel.identity_key])
            .returning(PersonRecordModel)
        )

        with translate_db_errors("person insert"), self._session_factory() as session:
            with session.begin():
                row = session.scalars(stmt).first()
                return _to_domain(row) if row is not None else None

    def delete(self, identity_key: str) -> bool:
        with translate_db_errors("person delete"), self._session_factory() as session:
            with session.begin():
                stmt = select(PersonRecordModel).where(
                    PersonRecordModel.identity_key == identity_key
                )
                row = session.scalars(stmt).first()
                if row is None:
                    return False
                session.delete(row)
                return True

    def list_records(self, *, limit: int = 100, offset: int = 0) -> list[PersonRecord]:
        with translate_db_errors("person listing"), self._session_factory() as session:
            stmt = (
                select(PersonRecordModel)
                .order_by(PersonRecordModel.identity_key)
                .offset(max(0, offset))
                .limit(max(1, limit))
            )
            return [_to_domain(row) for row in session.scalars(stmt).all()]

    def references_field(self, field_name: str) -> bool:
        with translate_db_errors("field reference check"), self._session_factory() as session:
            stmt = (
                select(PersonRecordModel.id)
                .where(PersonRecordModel.fields.has_key(field_name))
                .limit(1)
            )
            return session.scalars(stmt).first() is not None


class InMemoryPersonRecordRepository:
    """
    Thread-safe dict-backed record store for tests and local runs.
    """

    def __init__(self, records: list[PersonRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, PersonRecord] = {}
        for record in records or []:
            self._records[record.identity_key] = record

    def find_by_identity(self, identity_key: str) -> PersonRecord | None:
        with self._lock:
            return self._records.get(identity_key)

    def upsert(self, record: PersonRecord) -> PersonRecord:
        now = datetime.now(timezone.utc)
        with self._lock:
            existing = self._records.get(record.identity_key)
            stored = replace(
                record,
                fields=dict(record.fields),
                created_at=existing.created_at if existing is not None else now,
                updated_at=now,
            )
            self._records[record.identity_key] = stored
            return stored

    def insert(self, record: PersonRecord) -> PersonRecord | None:
        now = datetime.now(timezone.utc)
        with self._lock:
            if record.identity_key in self._records:
                return None
            stored = replace(record, fields=dict(record.fields), created_at=now, updated_at=now)
            self._records[record.identity_key] = stored
            return stored

    def delete(self, identity_key: str) -> bool:
        with self._lock:
            return self._records.pop(identity_key, None) is not None

    def list_records(self, *, limit: int = 100, offset: int = 0) -> list[PersonRecord]:
        with self._lock:
            ordered = sorted(self._records.values(), key=lambda record: record.identity_key)
        start = max(0, offset)
        return ordered[start : start + max(1, limit)]

    def references_field(self, field_name: str) -> bool:
        with self._lock:
            return any(field_name in record.fields for record in self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


@lru_cache(maxsize=1)
def get_person_record_repository() -> SqlAlchemyPersonRecordRepository:
    from db.session import SessionLocal

    return SqlAlchemyPersonRecordRepository(SessionLocal)
