"""
app/domain/column_dictionary.py

Administrator-defined column dictionary used to validate person fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator


class ColumnType(str, Enum):
    """
    Closed set of column variants understood by the field validator.

    Adding a member here requires a matching handler in FieldValidator.
    """

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    EMAIL = "email"
    PHONE = "phone"
    SELECT = "select"
    IDENTITY = "identity"


class ValidationKind(str, Enum):
    NONE = "none"
    REGEX = "regex"
    ENUMERATED_LIST = "enumeratedList"
    IDENTITY = "identity"


@dataclass(frozen=True)
class ColumnDefinition:
    """
    One column of the dictionary.
    """

    name: str
    type: ColumnType = ColumnType.STRING
    required: bool = False
    validation_kind: ValidationKind = ValidationKind.NONE
    validation_rule: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    default_value: str | None = None
    description: str | None = None
    placeholder: str | None = None
    position: int = 0

    @property
    def is_identity(self) -> bool:
        return self.type is ColumnType.IDENTITY

    def allowed_values(self) -> list[str]:
        """
        Decode the enumerated list rule.

        The rule is a JSON array; plain comma-separated text is accepted for
        rules written before the JSON format existed.
        """

        raw_rule = (self.validation_rule or "").strip()
        if not raw_rule:
            return []

        try:
            parsed = json.loads(raw_rule)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, list):
            values = [str(item).strip() for item in parsed]
        else:
            values = [item.strip() for item in raw_rule.split(",")]
        return [value for value in values if value]


@dataclass(frozen=True)
class ColumnDictionary:
    """
    Immutable, ordered snapshot of the column dictionary.

    A job captures one snapshot at submission time; later edits to the
    stored dictionary never reach an in-flight job.
    """

    columns: tuple[ColumnDefinition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column name in dictionary: {column.name!r}")
            seen.add(column.name)

    @classmethod
    def from_columns(cls, columns: Iterable[ColumnDefinition]) -> ColumnDictionary:
        ordered = sorted(columns, key=lambda column: (column.position, column.name))
        return cls(columns=tuple(ordered))

    def __iter__(self) -> Iterator[ColumnDefinition]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def get(self, name: str) -> ColumnDefinition | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    @property
    def identity_columns(self) -> tuple[ColumnDefinition, ...]:
        return tuple(column for column in self.columns if column.is_identity)

    @property
    def identity_column(self) -> ColumnDefinition | None:
        """
        The column whose normalized value is the natural key of a record.
        """

        identity_columns = self.identity_columns
        return identity_columns[0] if identity_columns else None
