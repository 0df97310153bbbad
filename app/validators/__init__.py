"""
app/validators package marker.
"""

from app.validators.field_validator import FieldValidationResult, FieldValidator
from app.validators.row_validator import RowValidation, RowValidator
from app.validators.rut import InvalidRutError, format_rut, normalize_rut, validate_rut

__all__ = [
    "FieldValidationResult",
    "FieldValidator",
    "RowValidation",
    "RowValidator",
    "InvalidRutError",
    "format_rut",
    "normalize_rut",
    "validate_rut",
]
