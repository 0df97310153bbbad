"""
app/validators/field_validator.py

Validation and normalization of one raw cell against one column definition.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any, Callable

from app.domain.column_dictionary import ColumnDefinition, ColumnType, ValidationKind
from app.validators.rut import validate_rut

DATE_FORMATS: tuple[str, ...] = (
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%d-%m-%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
)

TRUE_WORDS = frozenset({"true", "1", "sí", "si", "yes"})
FALSE_WORDS = frozenset({"false", "0", "no"})

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,15}$")
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

MISSING_REQUIRED_MESSAGE = "Missing required field."


@dataclass(frozen=True)
class FieldValidationResult:
    """
    Either a normalized value or a single error message.
    """

    value: Any = None
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: Any) -> FieldValidationResult:
        return cls(value=value)

    @classmethod
    def failure(cls, message: str) -> FieldValidationResult:
        return cls(error=message)


@lru_cache(maxsize=256)
def _compile_rule(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


class FieldValidator:
    """
    Validates one value at a time; the first failing rule wins.

    Stateless apart from the compiled-pattern cache, so one instance can be
    shared by concurrently running import jobs.
    """

    def __init__(self) -> None:
        self._handlers: dict[ColumnType, Callable[[str, ColumnDefinition], FieldValidationResult]] = {
            ColumnType.STRING: self._validate_string,
            ColumnType.NUMBER: self._validate_number,
            ColumnType.BOOLEAN: self._validate_boolean,
            ColumnType.DATE: self._validate_date,
            ColumnType.EMAIL: self._validate_email,
            ColumnType.PHONE: self._validate_phone,
            ColumnType.SELECT: self._validate_select,
            ColumnType.IDENTITY: self._validate_identity,
        }

    @property
    def supported_types(self) -> frozenset[ColumnType]:
        return frozenset(self._handlers)

    def validate(self, raw_value: Any, column: ColumnDefinition) -> FieldValidationResult:
        if self._is_blank(raw_value):
            if column.required:
                return FieldValidationResult.failure(MISSING_REQUIRED_MESSAGE)
            if self._is_blank(column.default_value):
                return FieldValidationResult.ok(None)
            raw_value = column.default_value

        text = str(raw_value).strip()
        handler = self._handlers.get(column.type)
        if handler is None:
            return FieldValidationResult.failure(f"Unsupported column type '{column.type}'.")

        result = handler(text, column)
        if not result.is_valid:
            return result
        return self._apply_rule(text, result, column)

    def normalize_stored(self, value: Any, column: ColumnDefinition) -> Any:
        """
        Bring a value already stored in a record to its normalized form.

        Values that no longer pass validation are returned unchanged so a
        legacy raw value still compares unequal to any valid new value.
        """

        if value is None:
            return None
        if column.type is ColumnType.BOOLEAN and isinstance(value, bool):
            return value
        if column.type is ColumnType.NUMBER and isinstance(value, (int, float)) and not isinstance(value, bool):
            return self._normalize_number(float(value))

        lenient = replace(column, required=False, default_value=None)
        result = self.validate(value, lenient)
        return result.value if result.is_valid else value

    # ------------------------------------------------------------------
    # Type handlers
    # ------------------------------------------------------------------

    def _validate_string(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        if column.min_length is not None and len(text) < column.min_length:
            return FieldValidationResult.failure(
                f"Text must have at least {column.min_length} characters."
            )
        if column.max_length is not None and len(text) > column.max_length:
            return FieldValidationResult.failure(
                f"Text cannot exceed {column.max_length} characters."
            )
        return FieldValidationResult.ok(text)

    def _validate_number(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        if not NUMBER_PATTERN.match(text):
            return FieldValidationResult.failure(f"'{text}' is not a valid number.")
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError, OverflowError):
            return FieldValidationResult.failure(f"'{text}' is not a valid number.")
        if not math.isfinite(number):
            return FieldValidationResult.failure(f"'{text}' is not a finite number.")

        if column.min_value is not None and number < column.min_value:
            return FieldValidationResult.failure(
                f"Value must be greater than or equal to {column.min_value:g}."
            )
        if column.max_value is not None and number > column.max_value:
            return FieldValidationResult.failure(
                f"Value must be less than or equal to {column.max_value:g}."
            )
        return FieldValidationResult.ok(self._normalize_number(number))

    def _validate_boolean(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        lowered = text.casefold()
        if lowered in TRUE_WORDS:
            return FieldValidationResult.ok(True)
        if lowered in FALSE_WORDS:
            return FieldValidationResult.ok(False)
        return FieldValidationResult.failure(
            f"'{text}' is not a recognized boolean (true/false, 1/0, sí/no, yes/no)."
        )

    def _validate_date(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        parsed = self._parse_date(text)
        if parsed is None:
            return FieldValidationResult.failure(f"'{text}' is not a valid date.")
        return FieldValidationResult.ok(parsed.isoformat())

    def _validate_email(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        if not EMAIL_PATTERN.match(text):
            return FieldValidationResult.failure(f"'{text}' is not a valid email address.")
        return FieldValidationResult.ok(text.lower())

    def _validate_phone(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        if not PHONE_PATTERN.match(text):
            return FieldValidationResult.failure(f"'{text}' is not a valid phone number.")
        return FieldValidationResult.ok(text)

    def _validate_select(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        return self._match_allowed_value(text, column)

    def _validate_identity(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        validation = validate_rut(text)
        if not validation.is_valid:
            return FieldValidationResult.failure(validation.message or f"'{text}' is not a valid RUT.")
        return FieldValidationResult.ok(validation.canonical)

    # ------------------------------------------------------------------
    # Rules and helpers
    # ------------------------------------------------------------------

    def _apply_rule(
        self,
        text: str,
        result: FieldValidationResult,
        column: ColumnDefinition,
    ) -> FieldValidationResult:
        kind = column.validation_kind
        if kind is ValidationKind.REGEX and column.validation_rule:
            try:
                pattern = _compile_rule(column.validation_rule)
            except re.error:
                return FieldValidationResult.failure(
                    f"Invalid validation pattern configured: {column.validation_rule}"
                )
            if not pattern.search(text):
                return FieldValidationResult.failure(
                    f"Value does not match the required pattern {column.validation_rule}"
                )
        elif kind is ValidationKind.ENUMERATED_LIST and column.type is not ColumnType.SELECT:
            listed = self._match_allowed_value(text, column)
            if not listed.is_valid:
                return listed
        elif kind is ValidationKind.IDENTITY and column.type is not ColumnType.IDENTITY:
            return self._validate_identity(text, column)
        return result

    def _match_allowed_value(self, text: str, column: ColumnDefinition) -> FieldValidationResult:
        options = column.allowed_values()
        if not options:
            return FieldValidationResult.failure("Invalid list configuration: no allowed values.")
        lowered = text.casefold()
        for option in options:
            if option.casefold() == lowered:
                return FieldValidationResult.ok(option)
        return FieldValidationResult.failure(f"Value must be one of: {', '.join(options)}.")

    @staticmethod
    def _parse_date(text: str) -> date | None:
        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            return datetime.fromisoformat(normalized).date()
        except ValueError:
            pass

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def _normalize_number(number: float) -> int | float:
        if number.is_integer():
            return int(number)
        return number

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
