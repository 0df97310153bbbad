"""
Repository-layer exceptions shared by the person, job and history stores.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError


class RepositoryError(Exception):
    """Base exception for store failures."""


class RecordPersistenceError(RepositoryError):
    """Raised when one record cannot be written; other records are unaffected."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the store cannot be reached at all."""


@contextmanager
def translate_db_errors(operation: str) -> Iterator[None]:
    """
    Map driver-level SQLAlchemy errors onto row-scoped vs systemic failures.
    """

    try:
        yield
    except (IntegrityError, DataError) as exc:
        raise RecordPersistenceError(f"{operation} rejected by the database: {exc.orig}") from exc
    except (OperationalError, InterfaceError) as exc:
        raise RepositoryUnavailableError(f"Database unavailable during {operation}.") from exc
