"""
app/services package marker.
"""

from app.services.column_dictionary_service import (
    ColumnDefinitionError,
    ColumnDictionaryService,
    ColumnInUseError,
    ColumnNotFoundError,
    get_column_dictionary_service,
)
from app.services.import_job_manager import (
    ImportConfirmationError,
    ImportJobManager,
    ImportSubmissionError,
    get_import_job_manager,
    get_import_worker_pool,
)
from app.services.import_worker_pool import ImportJobMessage, ImportWorkerPool, WorkerPoolClosedError
from app.services.person_service import (
    DuplicateIdentityError,
    PersonNotFoundError,
    PersonService,
    PersonValidationError,
    get_person_service,
)
from app.services.reconciliation_engine import ReconciliationEngine, merged_record

__all__ = [
    "ColumnDefinitionError",
    "ColumnDictionaryService",
    "ColumnInUseError",
    "ColumnNotFoundError",
    "get_column_dictionary_service",
    "ImportConfirmationError",
    "ImportJobManager",
    "ImportSubmissionError",
    "get_import_job_manager",
    "get_import_worker_pool",
    "ImportJobMessage",
    "ImportWorkerPool",
    "WorkerPoolClosedError",
    "DuplicateIdentityError",
    "PersonNotFoundError",
    "PersonService",
    "PersonValidationError",
    "get_person_service",
    "ReconciliationEngine",
    "merged_record",
]
