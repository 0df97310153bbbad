from __future__ import annotations

import random
import unittest

from app.validators.rut import (
    InvalidRutError,
    clean_rut,
    compute_check_digit,
    format_rut,
    looks_like_rut,
    normalize_rut,
    validate_rut,
)

CHECK_CHARACTERS = frozenset("0123456789K")


class TestRutValidator(unittest.TestCase):
    def test_accepts_formatted_and_raw_forms(self) -> None:
        for raw in ("12.345.678-5", "12345678-5", "123456785", " 12 345 678 - 5 "):
            with self.subTest(raw=raw):
                validation = validate_rut(raw)
                self.assertTrue(validation.is_valid)
                self.assertEqual(validation.canonical, "12345678-5")

    def test_rejects_wrong_check_digit_and_reports_expected(self) -> None:
        validation = validate_rut("12345678-6")

        self.assertFalse(validation.is_valid)
        self.assertIsNone(validation.canonical)
        self.assertEqual(validation.check_digit, "6")
        self.assertEqual(validation.expected_check_digit, "5")
        self.assertIn("expected '5'", validation.message or "")

    def test_check_digit_k_is_case_insensitive(self) -> None:
        self.assertEqual(compute_check_digit("12345670"), "K")
        self.assertEqual(validate_rut("12.345.670-k").canonical, "12345670-K")

    def test_leading_zeros_are_dropped_from_canonical_form(self) -> None:
        self.assertEqual(normalize_rut("01.111.111-4"), "1111111-4")
        self.assertEqual(normalize_rut("1111111-4"), "1111111-4")

    def test_rejects_bad_shapes(self) -> None:
        cases = {
            "": "between",
            "123-4": "between",
            "1234567890-1": "between",
            "12A45678-5": "only digits",
            "12345678-X": "digit or K",
        }
        for raw, fragment in cases.items():
            with self.subTest(raw=raw):
                validation = validate_rut(raw)
                self.assertFalse(validation.is_valid)
                self.assertIn(fragment, validation.message or "")

    def test_none_is_invalid(self) -> None:
        self.assertFalse(validate_rut(None).is_valid)
        self.assertEqual(clean_rut(None), "")

    def test_normalize_raises_with_validation_attached(self) -> None:
        with self.assertRaises(InvalidRutError) as ctx:
            normalize_rut("11111111-2")

        self.assertEqual(ctx.exception.validation.expected_check_digit, "1")

    def test_compute_check_digit_requires_digits(self) -> None:
        with self.assertRaises(ValueError):
            compute_check_digit("12a")
        with self.assertRaises(ValueError):
            compute_check_digit("")

    def test_format_inserts_thousands_separators(self) -> None:
        self.assertEqual(format_rut("123456785"), "12.345.678-5")
        self.assertEqual(format_rut("1111111-4"), "1.111.111-4")
        self.assertEqual(format_rut("5"), "5")

    def test_formatting_does_not_change_validity(self) -> None:
        for raw in ("12345678-5", "12345678-6", "12345670-K", "1111111-4"):
            with self.subTest(raw=raw):
                self.assertEqual(validate_rut(raw), validate_rut(format_rut(raw)))

    def test_generated_bodies_accept_only_their_check_digit(self) -> None:
        rng = random.Random(20261017)
        for _ in range(200):
            body = str(rng.randint(100_000, 99_999_999))
            check_digit = compute_check_digit(body)
            with self.subTest(body=body):
                validation = validate_rut(body + check_digit)
                self.assertTrue(validation.is_valid)
                self.assertEqual(validation.canonical, f"{body}-{check_digit}")
                self.assertTrue(validate_rut(f"{body}-{check_digit.lower()}").is_valid)

                for wrong in sorted(CHECK_CHARACTERS - {check_digit}):
                    self.assertFalse(validate_rut(body + wrong).is_valid, wrong)

                for raw in (body + check_digit, body + rng.choice(sorted(CHECK_CHARACTERS))):
                    self.assertEqual(validate_rut(raw), validate_rut(clean_rut(format_rut(raw))))

    def test_looks_like_rut_is_shape_only(self) -> None:
        self.assertTrue(looks_like_rut("12345678-6"))
        self.assertTrue(looks_like_rut("12.345.670-K"))
        self.assertFalse(looks_like_rut("ana@example.cl"))
        self.assertFalse(looks_like_rut("123"))


if __name__ == "__main__":
    unittest.main()
