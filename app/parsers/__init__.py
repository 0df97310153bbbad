"""
app/parsers package marker.
"""

from app.parsers.row_decoder import RowDecodeError, decode_rows

__all__ = ["RowDecodeError", "decode_rows"]
