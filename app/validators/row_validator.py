"""
app/validators/row_validator.py

Dictionary-wide validation of one row.

Unlike single-cell validation, every column is checked even after a failure
so callers see all problems of a row in one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from app.domain.column_dictionary import ColumnDictionary
from app.domain.reconciliation import RowError
from app.validators.field_validator import FieldValidator


@dataclass(frozen=True)
class RowValidation:
    values: dict[str, Any] = field(default_factory=dict)
    errors: tuple[RowError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def failed_columns(self) -> frozenset[str]:
        return frozenset(error.column for error in self.errors if error.column is not None)


class RowValidator:
    def __init__(self, field_validator: FieldValidator | None = None) -> None:
        self._field_validator = field_validator or FieldValidator()

    @property
    def field_validator(self) -> FieldValidator:
        return self._field_validator

    def validate_row(
        self,
        raw_row: Mapping[str, Any],
        dictionary: ColumnDictionary,
    ) -> RowValidation:
        values: dict[str, Any] = {}
        errors: list[RowError] = []

        for column in dictionary:
            raw_value = raw_row.get(column.name)
            result = self._field_validator.validate(raw_value, column)
            if result.is_valid:
                values[column.name] = result.value
            else:
                errors.append(
                    RowError(
                        column=column.name,
                        message=result.error or "Invalid value.",
                        value=None if raw_value is None else str(raw_value),
                    )
                )

        return RowValidation(values=values, errors=tuple(errors))
