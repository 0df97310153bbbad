"""
app/repositories/column_dictionary_repository.py

Persistence helpers for the administrator-defined column dictionary.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.column_dictionary import ColumnDefinition, ColumnType, ValidationKind
from db.models.column_definition import ColumnDefinitionRecord
from db.repositories.errors import translate_db_errors


class ColumnDefinitionStore(Protocol):
    def list_columns(self) -> list[ColumnDefinition]:
        ...

    def get_column(self, name: str) -> ColumnDefinition | None:
        ...

    def save_column(self, definition: ColumnDefinition, *, original_name: str | None = None) -> ColumnDefinition:
        ...

    def delete_column(self, name: str) -> bool:
        ...


def _to_domain(row: ColumnDefinitionRecord) -> ColumnDefinition:
    return ColumnDefinition(
        name=row.name,
        type=ColumnType(row.column_type),
        required=row.required,
        validation_kind=ValidationKind(row.validation_kind),
        validation_rule=row.validation_rule,
        min_length=row.min_length,
        max_length=row.max_length,
        min_value=row.min_value,
        max_value=row.max_value,
        default_value=row.default_value,
        description=row.description,
        placeholder=row.placeholder,
        position=row.position,
    )


def _apply(row: ColumnDefinitionRecord, definition: ColumnDefinition) -> None:
    row.name = definition.name
    row.column_type = definition.type.value
    row.required = definition.required
    row.validation_kind = definition.validation_kind.value
    row.validation_rule = definition.validation_rule
    row.min_length = definition.min_length
    row.max_length = definition.max_length
    row.min_value = definition.min_value
    row.max_value = definition.max_value
    row.default_value = definition.default_value
    row.description = definition.description
    row.placeholder = definition.placeholder
    row.position = definition.position


class ColumnDictionaryRepository:
    """
    Session-scoped CRUD on column definitions.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_all(self) -> list[ColumnDefinitionRecord]:
        stmt = select(ColumnDefinitionRecord).order_by(
            ColumnDefinitionRecord.position,
            ColumnDefinitionRecord.name,
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_by_name(self, name: str) -> ColumnDefinitionRecord | None:
        stmt = select(ColumnDefinitionRecord).where(ColumnDefinitionRecord.name == name.strip())
        return self._session.execute(stmt).scalars().first()

    def save(self, definition: ColumnDefinition, *, original_name: str | None = None) -> ColumnDefinitionRecord:
        """
        Insert a definition, or update the one stored under ``original_name``.
        """

        existing = self.get_by_name(original_name) if original_name else None
        if existing is None:
            existing = ColumnDefinitionRecord()
            self._session.add(existing)
        _apply(existing, definition)
        self._session.flush()
        return existing

    def delete(self, name: str) -> bool:
        existing = self.get_by_name(name)
        if existing is None:
            return False
        self._session.delete(existing)
        self._session.flush()
        return True


class SqlAlchemyColumnDefinitionStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def list_columns(self) -> list[ColumnDefinition]:
        with translate_db_errors("column listing"), self._session_factory() as session:
            return [_to_domain(row) for row in ColumnDictionaryRepository(session).list_all()]

    def get_column(self, name: str) -> ColumnDefinition | None:
        with translate_db_errors("column lookup"), self._session_factory() as session:
            row = ColumnDictionaryRepository(session).get_by_name(name)
            return _to_domain(row) if row is not None else None

    def save_column(self, definition: ColumnDefinition, *, original_name: str | None = None) -> ColumnDefinition:
        with translate_db_errors("column save"), self._session_factory() as session:
            with session.begin():
                row = ColumnDictionaryRepository(session).save(definition, original_name=original_name)
                return _to_domain(row)

    def delete_column(self, name: str) -> bool:
        with translate_db_errors("column delete"), self._session_factory() as session:
            with session.begin():
                return ColumnDictionaryRepository(session).delete(name)


class InMemoryColumnDefinitionStore:
    def __init__(self, columns: list[ColumnDefinition] | None = None) -> None:
        self._lock = threading.Lock()
        self._columns: dict[str, ColumnDefinition] = {column.name: column for column in columns or []}

    def list_columns(self) -> list[ColumnDefinition]:
        with self._lock:
            columns = list(self._columns.values())
        return sorted(columns, key=lambda column: (column.position, column.name))

    def get_column(self, name: str) -> ColumnDefinition | None:
        with self._lock:
            return self._columns.get(name)

    def save_column(self, definition: ColumnDefinition, *, original_name: str | None = None) -> ColumnDefinition:
        with self._lock:
            if original_name and original_name != definition.name:
                self._columns.pop(original_name, None)
            self._columns[definition.name] = definition
        return definition

    def delete_column(self, name: str) -> bool:
        with self._lock:
            return self._columns.pop(name, None) is not None
