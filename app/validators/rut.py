"""
app/validators/rut.py

Chilean national identity number (RUT) checksum, normalization and display.

Validation and formatting are independent: ``format_rut`` only inserts
separators, so validating a formatted value gives the same result as
validating the raw one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

RUT_MIN_LENGTH = 7
RUT_MAX_LENGTH = 9

_NON_ALPHANUMERIC = re.compile(r"[^0-9A-Za-z]")
_THOUSANDS = re.compile(r"\B(?=(\d{3})+(?!\d))")
_CHECK_CHARACTERS = frozenset("0123456789K")


class InvalidRutError(ValueError):
    """
    Raised by normalize_rut when the value is not a valid RUT.
    """

    def __init__(self, validation: RutValidation) -> None:
        super().__init__(validation.message or "Invalid RUT.")
        self.validation = validation


@dataclass(frozen=True)
class RutValidation:
    """
    Result of validating one raw RUT value.
    """

    is_valid: bool
    canonical: str | None = None
    check_digit: str | None = None
    expected_check_digit: str | None = None
    message: str | None = None


def clean_rut(raw: str | None) -> str:
    """
    Strip separators and whitespace, uppercasing the check character.
    """

    if raw is None:
        return ""
    return _NON_ALPHANUMERIC.sub("", str(raw)).upper()


def compute_check_digit(body: str) -> str:
    """
    Modulo-11 check character for an all-digit RUT body.

    Digits are weighted right to left with the cycle 2..7.
    """

    if not body or not body.isdigit():
        raise ValueError("RUT body must contain only digits.")

    total = 0
    weight = 2
    for digit in reversed(body):
        total += int(digit) * weight
        weight = 2 if weight == 7 else weight + 1

    remainder = total % 11
    if remainder == 0:
        return "0"
    if remainder == 1:
        return "K"
    return str(11 - remainder)


def validate_rut(raw: str | None) -> RutValidation:
    cleaned = clean_rut(raw)
    if not (RUT_MIN_LENGTH <= len(cleaned) <= RUT_MAX_LENGTH):
        return RutValidation(
            is_valid=False,
            message=(
                f"RUT must have between {RUT_MIN_LENGTH} and {RUT_MAX_LENGTH} "
                "characters including the check digit."
            ),
        )

    body, check_digit = cleaned[:-1], cleaned[-1]
    if not body.isdigit():
        return RutValidation(
            is_valid=False,
            check_digit=check_digit,
            message="RUT body must contain only digits.",
        )
    if check_digit not in _CHECK_CHARACTERS:
        return RutValidation(
            is_valid=False,
            check_digit=check_digit,
            message="RUT check digit must be a digit or K.",
        )

    expected = compute_check_digit(body)
    if check_digit != expected:
        return RutValidation(
            is_valid=False,
            check_digit=check_digit,
            expected_check_digit=expected,
            message=f"Invalid RUT check digit '{check_digit}'; expected '{expected}'.",
        )

    return RutValidation(
        is_valid=True,
        canonical=f"{int(body)}-{check_digit}",
        check_digit=check_digit,
        expected_check_digit=expected,
    )


def normalize_rut(raw: str | None) -> str:
    """
    Return the canonical ``BODY-DV`` form or raise InvalidRutError.
    """

    validation = validate_rut(raw)
    if not validation.is_valid or validation.canonical is None:
        raise InvalidRutError(validation)
    return validation.canonical


def format_rut(raw: str | None) -> str:
    """
    Presentation form with thousands dots and hyphen, e.g. ``12.345.678-5``.
    """

    cleaned = clean_rut(raw)
    if len(cleaned) < 2:
        return cleaned
    body, check_digit = cleaned[:-1], cleaned[-1]
    return f"{_THOUSANDS.sub('.', body)}-{check_digit}"


def looks_like_rut(text: str | None) -> bool:
    """
    Shape check only: 7-9 characters, digit body, digit or K at the end.
    """

    cleaned = clean_rut(text)
    if not (RUT_MIN_LENGTH <= len(cleaned) <= RUT_MAX_LENGTH):
        return False
    return cleaned[:-1].isdigit() and cleaned[-1] in _CHECK_CHARACTERS
