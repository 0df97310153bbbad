"""
tests/conftest.py

Shared fixtures: a small person-roll column dictionary and in-memory stores.
Nothing here touches a database.
"""

from __future__ import annotations

import pytest

from app.domain.column_dictionary import (
    ColumnDefinition,
    ColumnDictionary,
    ColumnType,
    ValidationKind,
)
from app.repositories.history_repository import InMemoryHistoryStore
from app.repositories.import_job_store import InMemoryImportJobStore
from app.repositories.person_record_repository import InMemoryPersonRecordRepository

COMUNAS_RULE = '["Santiago", "Valparaíso", "Concepción"]'


def build_columns() -> list[ColumnDefinition]:
    return [
        ColumnDefinition(
            name="rut",
            type=ColumnType.IDENTITY,
            required=True,
            validation_kind=ValidationKind.IDENTITY,
            position=0,
        ),
        ColumnDefinition(
            name="nombre",
            type=ColumnType.STRING,
            required=True,
            max_length=80,
            position=1,
        ),
        ColumnDefinition(name="email", type=ColumnType.EMAIL, position=2),
        ColumnDefinition(
            name="comuna",
            type=ColumnType.SELECT,
            validation_kind=ValidationKind.ENUMERATED_LIST,
            validation_rule=COMUNAS_RULE,
            position=3,
        ),
    ]


@pytest.fixture()
def dictionary() -> ColumnDictionary:
    return ColumnDictionary.from_columns(build_columns())


@pytest.fixture()
def record_repository() -> InMemoryPersonRecordRepository:
    return InMemoryPersonRecordRepository()


@pytest.fixture()
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture()
def job_store() -> InMemoryImportJobStore:
    return InMemoryImportJobStore()
