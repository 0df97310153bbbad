"""
app/repositories package marker.
"""

from app.repositories.column_dictionary_repository import (
    ColumnDefinitionStore,
    InMemoryColumnDefinitionStore,
    SqlAlchemyColumnDefinitionStore,
)
from app.repositories.history_repository import (
    HistoryRecorder,
    HistoryStore,
    InMemoryHistoryStore,
    SqlAlchemyHistoryStore,
)
from app.repositories.import_job_store import (
    ImportJobNotFoundError,
    ImportJobStore,
    InMemoryImportJobStore,
    SqlAlchemyImportJobStore,
)
from app.repositories.person_record_repository import (
    InMemoryPersonRecordRepository,
    PersonRecordRepository,
    SqlAlchemyPersonRecordRepository,
)

__all__ = [
    "ColumnDefinitionStore",
    "InMemoryColumnDefinitionStore",
    "SqlAlchemyColumnDefinitionStore",
    "HistoryRecorder",
    "HistoryStore",
    "InMemoryHistoryStore",
    "SqlAlchemyHistoryStore",
    "ImportJobNotFoundError",
    "ImportJobStore",
    "InMemoryImportJobStore",
    "SqlAlchemyImportJobStore",
    "InMemoryPersonRecordRepository",
    "PersonRecordRepository",
    "SqlAlchemyPersonRecordRepository",
]
