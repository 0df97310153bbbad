"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.column_definition import ColumnDefinitionRecord
from db.models.history_entry import HistoryEntryRecord
from db.models.import_job import ImportJobRecord, ImportRowOutcomeRecord
from db.models.person_record import PersonRecordModel

__all__ = [
    "ColumnDefinitionRecord",
    "HistoryEntryRecord",
    "ImportJobRecord",
    "ImportRowOutcomeRecord",
    "PersonRecordModel",
]
