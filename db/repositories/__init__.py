"""
Repository layer exports.
"""

from db.repositories.errors import (
    RecordPersistenceError,
    RepositoryError,
    RepositoryUnavailableError,
    translate_db_errors,
)
from db.repositories.import_job_repository import ImportJobRepository

__all__ = [
    "ImportJobRepository",
    "RecordPersistenceError",
    "RepositoryError",
    "RepositoryUnavailableError",
    "translate_db_errors",
]
