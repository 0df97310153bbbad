"""
app/domain package marker.
"""

from app.domain.column_dictionary import ColumnDefinition, ColumnDictionary, ColumnType, ValidationKind
from app.domain.history import HistoryAction, HistoryEntry
from app.domain.import_job import ImportJob, ImportJobStatus, ImportJobTicket, InvalidJobTransitionError
from app.domain.person import PersonRecord, SourceRow
from app.domain.reconciliation import FieldDiff, ImportSummary, RowClassification, RowError, RowOutcome

__all__ = [
    "ColumnDefinition",
    "ColumnDictionary",
    "ColumnType",
    "ValidationKind",
    "HistoryAction",
    "HistoryEntry",
    "ImportJob",
    "ImportJobStatus",
    "ImportJobTicket",
    "InvalidJobTransitionError",
    "PersonRecord",
    "SourceRow",
    "FieldDiff",
    "ImportSummary",
    "RowClassification",
    "RowError",
    "RowOutcome",
]
