"""
app/services/person_service.py

Single-record create/update/delete of persons with audit history.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping

from app.domain.column_dictionary import ColumnDictionary
from app.domain.history import HistoryAction, HistoryEntry
from app.domain.person import PersonRecord
from app.domain.reconciliation import RowError
from app.repositories.history_repository import HistoryRecorder, get_history_store
from app.repositories.person_record_repository import (
    PersonRecordRepository,
    get_person_record_repository,
)
from app.validators.row_validator import RowValidator
from app.validators.rut import validate_rut

logger = logging.getLogger(__name__)


class PersonValidationError(ValueError):
    """
    Raised when submitted values fail dictionary validation.
    """

    def __init__(self, errors: tuple[RowError, ...] | list[RowError]) -> None:
        self.errors = tuple(errors)
        super().__init__("; ".join(_describe(error) for error in self.errors) or "Invalid person data.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": "Invalid person data.",
            "errors": [
                {"column": error.column, "message": error.message, "value": error.value}
                for error in self.errors
            ],
        }


class DuplicateIdentityError(RuntimeError):
    def __init__(self, identity_key: str) -> None:
        super().__init__(f"A person with RUT {identity_key} already exists.")
        self.identity_key = identity_key


class PersonNotFoundError(LookupError):
    def __init__(self, identity: str) -> None:
        super().__init__(f"No person found for RUT {identity}.")
        self.identity = identity


def _describe(error: RowError) -> str:
    return f"{error.column}: {error.message}" if error.column else error.message


class PersonService:
    def __init__(
        self,
        *,
        record_repository: PersonRecordRepository,
        history_recorder: HistoryRecorder,
        row_validator: RowValidator | None = None,
    ) -> None:
        self._record_repository = record_repository
        self._history_recorder = history_recorder
        self._row_validator = row_validator or RowValidator()

    def get_person(self, identity: str) -> PersonRecord:
        record = self._record_repository.find_by_identity(self._identity_key(identity))
        if record is None:
            raise PersonNotFoundError(identity)
        return record

    def list_people(self, *, limit: int = 100, offset: int = 0) -> list[PersonRecord]:
        return self._record_repository.list_records(limit=limit, offset=offset)

    def create_person(
        self,
        values: Mapping[str, Any],
        dictionary: ColumnDictionary,
        actor_id: str,
    ) -> PersonRecord:
        identity_key, normalized = self._validate(values, dictionary)
        created = self._record_repository.insert(
            PersonRecord(identity_key=identity_key, fields=normalized, updated_by=actor_id)
        )
        if created is None:
            raise DuplicateIdentityError(identity_key)
        self._record_history(
            HistoryEntry(
                action=HistoryAction.CREATE,
                actor_id=actor_id,
                subject_id=identity_key,
                after_snapshot=created.snapshot(),
            )
        )
        logger.info("Person created identity=%s actor=%s", identity_key, actor_id)
        return created

    def update_person(
        self,
        identity: str,
        values: Mapping[str, Any],
        dictionary: ColumnDictionary,
        actor_id: str,
    ) -> PersonRecord:
        existing = self.get_person(identity)

        # Partial updates: columns not sent keep their stored value.
        merged: dict[str, Any] = {
            name: "" if value is None else str(value)
            for name, value in existing.fields.items()
        }
        merged.update(values)
        identity_column = dictionary.identity_column
        if identity_column is not None:
            merged.setdefault(identity_column.name, existing.identity_key)

        identity_key, normalized = self._validate(merged, dictionary)
        if identity_key != existing.identity_key:
            raise PersonValidationError(
                [
                    RowError(
                        message="The RUT of an existing person cannot be changed.",
                        column=identity_column.name if identity_column else None,
                        value=str(values.get(identity_column.name)) if identity_column else None,
                    )
                ]
            )

        fields = dict(existing.fields)
        fields.update(normalized)
        updated = self._record_repository.upsert(
            PersonRecord(
                identity_key=identity_key,
                fields=fields,
                created_at=existing.created_at,
                updated_by=actor_id,
            )
        )
        self._record_history(
            HistoryEntry(
                action=HistoryAction.UPDATE,
                actor_id=actor_id,
                subject_id=identity_key,
                before_snapshot=existing.snapshot(),
                after_snapshot=updated.snapshot(),
            )
        )
        logger.info("Person updated identity=%s actor=%s", identity_key, actor_id)
        return updated

    def delete_person(self, identity: str, actor_id: str) -> None:
        existing = self.get_person(identity)
        if not self._record_repository.delete(existing.identity_key):
            raise PersonNotFoundError(identity)
        self._record_history(
            HistoryEntry(
                action=HistoryAction.DELETE,
                actor_id=actor_id,
                subject_id=existing.identity_key,
                before_snapshot=existing.snapshot(),
            )
        )
        logger.info("Person deleted identity=%s actor=%s", existing.identity_key, actor_id)

    def _validate(
        self,
        values: Mapping[str, Any],
        dictionary: ColumnDictionary,
    ) -> tuple[str, dict[str, Any]]:
        identity_column = dictionary.identity_column
        if identity_column is None:
            raise PersonValidationError([RowError(message="The column dictionary has no identity column.")])

        validation = self._row_validator.validate_row(values, dictionary)
        if not validation.is_valid:
            raise PersonValidationError(validation.errors)

        identity_key = validation.values.get(identity_column.name)
        if not identity_key:
            raise PersonValidationError(
                [RowError(message="Missing required field.", column=identity_column.name)]
            )
        return identity_key, validation.values

    @staticmethod
    def _identity_key(identity: str) -> str:
        validation = validate_rut(identity)
        if not validation.is_valid or validation.canonical is None:
            raise PersonNotFoundError(identity)
        return validation.canonical

    def _record_history(self, entry: HistoryEntry) -> None:
        try:
            self._history_recorder.append(entry)
        except Exception:
            logger.warning(
                "History entry not recorded action=%s subject=%s",
                entry.action.value,
                entry.subject_id,
                exc_info=True,
            )


@lru_cache(maxsize=1)
def get_person_service() -> PersonService:
    return PersonService(
        record_repository=get_person_record_repository(),
        history_recorder=get_history_store(),
    )
