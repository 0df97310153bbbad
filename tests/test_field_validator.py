"""
tests/test_field_validator.py

Pytest unit tests for FieldValidator.

Coverage
--------
- Required / optional / default handling of blank cells
- Every column type handler and its normalized output
- Regex, enumerated-list and identity rules layered on other types
- Normalization of values already stored in a record
"""

from __future__ import annotations

import pytest

from app.domain.column_dictionary import ColumnDefinition, ColumnType, ValidationKind
from app.validators.field_validator import MISSING_REQUIRED_MESSAGE, FieldValidator


@pytest.fixture()
def validator() -> FieldValidator:
    return FieldValidator()


def column(**overrides) -> ColumnDefinition:
    values = {"name": "campo", "type": ColumnType.STRING}
    values.update(overrides)
    return ColumnDefinition(**values)


# ---------------------------------------------------------------------------
# Blank cells
# ---------------------------------------------------------------------------


class TestBlankValues:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_required_blank_fails(self, validator: FieldValidator, raw) -> None:
        result = validator.validate(raw, column(required=True))
        assert not result.is_valid
        assert result.error == MISSING_REQUIRED_MESSAGE

    def test_optional_blank_is_none(self, validator: FieldValidator) -> None:
        result = validator.validate("", column())
        assert result.is_valid
        assert result.value is None

    def test_optional_blank_takes_default_through_validation(self, validator: FieldValidator) -> None:
        result = validator.validate(None, column(type=ColumnType.NUMBER, default_value="7"))
        assert result.is_valid
        assert result.value == 7

    def test_invalid_default_is_reported(self, validator: FieldValidator) -> None:
        result = validator.validate(None, column(type=ColumnType.NUMBER, default_value="siete"))
        assert not result.is_valid


# ---------------------------------------------------------------------------
# Type handlers
# ---------------------------------------------------------------------------


class TestString:
    def test_trims_surrounding_whitespace(self, validator: FieldValidator) -> None:
        assert validator.validate("  Ana  ", column()).value == "Ana"

    def test_min_length(self, validator: FieldValidator) -> None:
        result = validator.validate("Al", column(min_length=3))
        assert result.error == "Text must have at least 3 characters."

    def test_max_length(self, validator: FieldValidator) -> None:
        result = validator.validate("Alejandra", column(max_length=5))
        assert result.error == "Text cannot exceed 5 characters."


class TestNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("42", 42), ("-3", -3), ("3.50", 3.5), ("1e3", 1000), (".5", 0.5)],
    )
    def test_valid_numbers(self, validator: FieldValidator, raw: str, expected) -> None:
        result = validator.validate(raw, column(type=ColumnType.NUMBER))
        assert result.is_valid
        assert result.value == expected
        assert type(result.value) is type(expected)

    @pytest.mark.parametrize("raw", ["abc", "1,5", "nan", "inf", "12 000"])
    def test_rejects_non_numbers(self, validator: FieldValidator, raw: str) -> None:
        result = validator.validate(raw, column(type=ColumnType.NUMBER))
        assert not result.is_valid

    def test_rejects_overflow_to_infinity(self, validator: FieldValidator) -> None:
        result = validator.validate("1e400", column(type=ColumnType.NUMBER))
        assert result.error == "'1e400' is not a finite number."

    def test_bounds(self, validator: FieldValidator) -> None:
        bounded = column(type=ColumnType.NUMBER, min_value=0, max_value=120)
        assert validator.validate("-1", bounded).error == "Value must be greater than or equal to 0."
        assert validator.validate("121", bounded).error == "Value must be less than or equal to 120."
        assert validator.validate("120", bounded).value == 120


class TestBoolean:
    @pytest.mark.parametrize("raw", ["true", "1", "Sí", "si", "YES"])
    def test_true_words(self, validator: FieldValidator, raw: str) -> None:
        assert validator.validate(raw, column(type=ColumnType.BOOLEAN)).value is True

    @pytest.mark.parametrize("raw", ["false", "0", "No"])
    def test_false_words(self, validator: FieldValidator, raw: str) -> None:
        assert validator.validate(raw, column(type=ColumnType.BOOLEAN)).value is False

    def test_unknown_word(self, validator: FieldValidator) -> None:
        assert not validator.validate("quizás", column(type=ColumnType.BOOLEAN)).is_valid


class TestDate:
    @pytest.mark.parametrize(
        "raw",
        ["2024-03-05", "05-03-2024", "05/03/2024", "05.03.2024", "2024/03/05", "2024-03-05T10:30:00Z"],
    )
    def test_accepted_formats_normalize_to_iso(self, validator: FieldValidator, raw: str) -> None:
        result = validator.validate(raw, column(type=ColumnType.DATE))
        assert result.is_valid
        assert result.value == "2024-03-05"

    @pytest.mark.parametrize("raw", ["31/02/2024", "mañana", "2024-13-01"])
    def test_rejects_impossible_dates(self, validator: FieldValidator, raw: str) -> None:
        assert not validator.validate(raw, column(type=ColumnType.DATE)).is_valid


class TestEmailAndPhone:
    def test_email_is_lowercased(self, validator: FieldValidator) -> None:
        assert validator.validate("Ana@Example.CL", column(type=ColumnType.EMAIL)).value == "ana@example.cl"

    @pytest.mark.parametrize("raw", ["ana", "ana@", "ana@example", "a na@example.cl"])
    def test_invalid_email(self, validator: FieldValidator, raw: str) -> None:
        assert not validator.validate(raw, column(type=ColumnType.EMAIL)).is_valid

    @pytest.mark.parametrize("raw", ["+56 9 1234 5678", "(2) 2345-6789", "912345678"])
    def test_valid_phone(self, validator: FieldValidator, raw: str) -> None:
        assert validator.validate(raw, column(type=ColumnType.PHONE)).value == raw

    @pytest.mark.parametrize("raw", ["12345", "phone-me", "+56 9 1234 5678 9999"])
    def test_invalid_phone(self, validator: FieldValidator, raw: str) -> None:
        assert not validator.validate(raw, column(type=ColumnType.PHONE)).is_valid


class TestSelect:
    def select(self, rule: str | None) -> ColumnDefinition:
        return column(
            type=ColumnType.SELECT,
            validation_kind=ValidationKind.ENUMERATED_LIST,
            validation_rule=rule,
        )

    def test_match_is_case_insensitive_and_canonical(self, validator: FieldValidator) -> None:
        result = validator.validate("valparaíso", self.select('["Santiago", "Valparaíso"]'))
        assert result.value == "Valparaíso"

    def test_value_outside_list(self, validator: FieldValidator) -> None:
        result = validator.validate("Lima", self.select('["Santiago", "Valparaíso"]'))
        assert result.error == "Value must be one of: Santiago, Valparaíso."

    def test_comma_separated_rule_is_accepted(self, validator: FieldValidator) -> None:
        assert validator.validate("b", self.select("a, b ,c")).value == "b"

    def test_empty_list_is_a_configuration_error(self, validator: FieldValidator) -> None:
        result = validator.validate("a", self.select("[]"))
        assert result.error == "Invalid list configuration: no allowed values."


class TestIdentity:
    def test_returns_canonical_rut(self, validator: FieldValidator) -> None:
        result = validator.validate("12.345.678-5", column(type=ColumnType.IDENTITY))
        assert result.value == "12345678-5"

    def test_reports_check_digit_error(self, validator: FieldValidator) -> None:
        result = validator.validate("12.345.678-6", column(type=ColumnType.IDENTITY))
        assert result.error == "Invalid RUT check digit '6'; expected '5'."


# ---------------------------------------------------------------------------
# Rules layered on top of the type
# ---------------------------------------------------------------------------


class TestRules:
    def test_regex_rule(self, validator: FieldValidator) -> None:
        coded = column(validation_kind=ValidationKind.REGEX, validation_rule=r"^\d{4}$")
        assert validator.validate("1234", coded).value == "1234"
        assert validator.validate("12a4", coded).error == r"Value does not match the required pattern ^\d{4}$"

    def test_broken_regex_rule_fails_the_value(self, validator: FieldValidator) -> None:
        broken = column(validation_kind=ValidationKind.REGEX, validation_rule="([")
        assert validator.validate("x", broken).error == "Invalid validation pattern configured: (["

    def test_enumerated_list_on_string_column(self, validator: FieldValidator) -> None:
        listed = column(validation_kind=ValidationKind.ENUMERATED_LIST, validation_rule='["A", "B"]')
        assert validator.validate("a", listed).is_valid
        assert not validator.validate("c", listed).is_valid

    def test_identity_rule_on_string_column(self, validator: FieldValidator) -> None:
        identity = column(validation_kind=ValidationKind.IDENTITY)
        assert validator.validate("12.345.678-5", identity).value == "12345678-5"
        assert not validator.validate("12.345.678-6", identity).is_valid

    def test_type_error_wins_over_rule(self, validator: FieldValidator) -> None:
        numeric = column(
            type=ColumnType.NUMBER,
            validation_kind=ValidationKind.REGEX,
            validation_rule=r"^\d+$",
        )
        assert validator.validate("abc", numeric).error == "'abc' is not a valid number."

    def test_every_column_type_has_a_handler(self, validator: FieldValidator) -> None:
        assert validator.supported_types == frozenset(ColumnType)


# ---------------------------------------------------------------------------
# Stored value normalization
# ---------------------------------------------------------------------------


class TestNormalizeStored:
    def test_none_stays_none(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored(None, column(required=True)) is None

    def test_native_number_is_normalized(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored(42.0, column(type=ColumnType.NUMBER)) == 42

    def test_native_boolean_is_kept(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored(False, column(type=ColumnType.BOOLEAN)) is False

    def test_text_is_normalized_like_a_new_value(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored("ANA@X.CL", column(type=ColumnType.EMAIL)) == "ana@x.cl"
        assert validator.normalize_stored("05/03/2024", column(type=ColumnType.DATE)) == "2024-03-05"

    def test_blank_required_value_does_not_fail(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored("", column(required=True)) is None

    def test_legacy_invalid_value_is_returned_unchanged(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored("cuarenta", column(type=ColumnType.NUMBER)) == "cuarenta"

    def test_default_is_not_applied_to_stored_blank(self, validator: FieldValidator) -> None:
        assert validator.normalize_stored("", column(default_value="N/A")) is None
