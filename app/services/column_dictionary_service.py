"""
app/services/column_dictionary_service.py

Column dictionary administration and snapshot loading.
"""

from __future__ import annotations

import logging
import re
from dataclasses import fields, replace
from functools import lru_cache
from typing import Any, Mapping

from app.domain.column_dictionary import (
    ColumnDefinition,
    ColumnDictionary,
    ColumnType,
    ValidationKind,
)
from app.repositories.column_dictionary_repository import (
    ColumnDefinitionStore,
    SqlAlchemyColumnDefinitionStore,
)
from app.repositories.person_record_repository import (
    PersonRecordRepository,
    get_person_record_repository,
)

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,119}$")
_EDITABLE_FIELDS = frozenset(item.name for item in fields(ColumnDefinition))


class ColumnDefinitionError(ValueError):
    """
    Raised when a column definition is rejected on write.
    """

    def __init__(self, message: str, *, problems: list[str] | None = None) -> None:
        super().__init__(message)
        self.problems = problems or [message]

    def to_dict(self) -> dict[str, Any]:
        return {"message": str(self), "problems": list(self.problems)}


class ColumnNotFoundError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Column '{name}' does not exist.")
        self.name = name


class ColumnInUseError(RuntimeError):
    """
    Raised when renaming or deleting a column that stored records reference.
    """

    def __init__(self, name: str, operation: str) -> None:
        super().__init__(f"Column '{name}' is referenced by stored records and cannot be {operation}.")
        self.name = name
        self.operation = operation


class ColumnDictionaryService:
    def __init__(
        self,
        *,
        store: ColumnDefinitionStore,
        record_repository: PersonRecordRepository,
    ) -> None:
        self._store = store
        self._record_repository = record_repository

    def load_snapshot(self) -> ColumnDictionary:
        """
        Immutable ordered snapshot handed to one import job.
        """

        return ColumnDictionary.from_columns(self._store.list_columns())

    def list_columns(self) -> list[ColumnDefinition]:
        return self._store.list_columns()

    def get_column(self, name: str) -> ColumnDefinition:
        column = self._store.get_column(name)
        if column is None:
            raise ColumnNotFoundError(name)
        return column

    def create_column(self, definition: ColumnDefinition) -> ColumnDefinition:
        if self._store.get_column(definition.name) is not None:
            raise ColumnDefinitionError(f"Column '{definition.name}' already exists.")
        self._check_definition(definition)
        saved = self._store.save_column(definition)
        logger.info("Column created name=%s type=%s", saved.name, saved.type.value)
        return saved

    def update_column(self, name: str, changes: Mapping[str, Any]) -> ColumnDefinition:
        current = self.get_column(name)
        unknown = sorted(set(changes) - _EDITABLE_FIELDS)
        if unknown:
            raise ColumnDefinitionError(f"Unknown column attributes: {', '.join(unknown)}.")

        try:
            updated = replace(current, **_coerce_enums(changes))
        except ValueError as exc:
            raise ColumnDefinitionError(str(exc)) from exc

        if updated.name != current.name:
            if self._store.get_column(updated.name) is not None:
                raise ColumnDefinitionError(f"Column '{updated.name}' already exists.")
            if self._record_repository.references_field(current.name):
                raise ColumnInUseError(current.name, "renamed")

        self._check_definition(updated)
        saved = self._store.save_column(updated, original_name=current.name)
        logger.info("Column updated name=%s previous_name=%s", saved.name, current.name)
        return saved

    def delete_column(self, name: str) -> None:
        self.get_column(name)
        if self._record_repository.references_field(name):
            raise ColumnInUseError(name, "deleted")
        self._store.delete_column(name)
        logger.info("Column deleted name=%s", name)

    @staticmethod
    def _check_definition(definition: ColumnDefinition) -> None:
        problems = validate_definition(definition)
        if problems:
            raise ColumnDefinitionError(
                f"Invalid column definition '{definition.name}'.",
                problems=problems,
            )


def _coerce_enums(changes: Mapping[str, Any]) -> dict[str, Any]:
    coerced = dict(changes)
    if "type" in coerced and not isinstance(coerced["type"], ColumnType):
        coerced["type"] = ColumnType(coerced["type"])
    if "validation_kind" in coerced and not isinstance(coerced["validation_kind"], ValidationKind):
        coerced["validation_kind"] = ValidationKind(coerced["validation_kind"])
    return coerced


def validate_definition(definition: ColumnDefinition) -> list[str]:
    """
    Return every problem found in a definition; empty means acceptable.
    """

    problems: list[str] = []
    if not _NAME_PATTERN.match(definition.name or ""):
        problems.append(
            "name must start with a letter or underscore and contain only letters, digits or underscores."
        )

    if definition.type is ColumnType.SELECT:
        if definition.validation_kind is not ValidationKind.ENUMERATED_LIST:
            problems.append("select columns require validation_kind 'enumeratedList'.")
        elif not definition.allowed_values():
            problems.append("select columns need at least one allowed value.")
    elif definition.validation_kind is ValidationKind.ENUMERATED_LIST and not definition.allowed_values():
        problems.append("enumeratedList rules need at least one allowed value.")

    if definition.validation_kind is ValidationKind.REGEX:
        if not definition.validation_rule:
            problems.append("regex rules need a pattern.")
        else:
            try:
                re.compile(definition.validation_rule)
            except re.error as exc:
                problems.append(f"regex rule does not compile: {exc}.")

    if definition.min_length is not None and definition.min_length < 0:
        problems.append("min_length cannot be negative.")
    if (
        definition.min_length is not None
        and definition.max_length is not None
        and definition.min_length > definition.max_length
    ):
        problems.append("min_length cannot exceed max_length.")
    if (
        definition.min_value is not None
        and definition.max_value is not None
        and definition.min_value > definition.max_value
    ):
        problems.append("min_value cannot exceed max_value.")
    return problems


@lru_cache(maxsize=1)
def get_column_dictionary_service() -> ColumnDictionaryService:
    from db.session import SessionLocal

    return ColumnDictionaryService(
        store=SqlAlchemyColumnDefinitionStore(SessionLocal),
        record_repository=get_person_record_repository(),
    )
