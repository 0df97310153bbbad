"""
app/parsers/row_decoder.py

Turns an uploaded CSV or XLSX file into raw rows keyed by header name.

Cells are kept as text; typing happens in the field validator. Every row
keeps the number it has in the file (the header is row 1), so outcomes
point at the line or sheet row the user sees even when blank rows were
skipped.
"""

from __future__ import annotations

import csv
import io
import zipfile
from pathlib import Path
from typing import BinaryIO

import pandas as pd

from app.domain.person import SourceRow

SUPPORTED_EXTENSIONS = frozenset({".csv", ".xlsx"})

# Sheet row of the first data row: header is row 1.
_FIRST_SHEET_DATA_ROW = 2


class RowDecodeError(ValueError):
    """
    Raised when an uploaded file cannot be decoded into rows.
    """


def decode_rows(filename: str, stream: BinaryIO) -> list[SourceRow]:
    extension = Path(filename or "").suffix.lower()
    if extension == ".csv":
        return _decode_csv(stream)
    if extension == ".xlsx":
        return _decode_xlsx(stream)
    raise RowDecodeError(
        f"Unsupported file type '{extension or filename}'. Allowed: {', '.join(sorted(SUPPORTED_EXTENSIONS))}."
    )


def _decode_csv(stream: BinaryIO) -> list[SourceRow]:
    stream.seek(0)
    text_stream: io.TextIOWrapper | None = None
    try:
        text_stream = io.TextIOWrapper(stream, encoding="utf-8-sig", newline="")
        reader = csv.DictReader(text_stream)
        headers = reader.fieldnames or []
        if not any(header and header.strip() for header in headers):
            raise RowDecodeError("CSV header row is missing.")

        rows: list[SourceRow] = []
        for raw_row in reader:
            row = _clean_row(raw_row)
            if row:
                # line_num counts physical lines read so far, blank ones included.
                rows.append(SourceRow(row_number=reader.line_num, values=row))
        return rows
    except UnicodeDecodeError as exc:
        raise RowDecodeError("CSV must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise RowDecodeError(f"Invalid CSV format: {exc}") from exc
    finally:
        if text_stream is not None:
            try:
                text_stream.detach()
            except ValueError:
                pass


def _decode_xlsx(stream: BinaryIO) -> list[SourceRow]:
    stream.seek(0)
    try:
        frame = pd.read_excel(
            io.BytesIO(stream.read()),
            sheet_name=0,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
        raise RowDecodeError(f"Invalid XLSX file: {exc}") from exc

    headers = [str(column) for column in frame.columns]
    if not any(header.strip() and not header.startswith("Unnamed:") for header in headers):
        raise RowDecodeError("XLSX header row is missing.")

    # read_excel keeps interior blank rows, so frame position maps to sheet row.
    rows: list[SourceRow] = []
    for position, record in enumerate(frame.to_dict(orient="records")):
        row = _clean_row({str(key): value for key, value in record.items()})
        if row:
            rows.append(SourceRow(row_number=position + _FIRST_SHEET_DATA_ROW, values=row))
    return rows


def _clean_row(raw_row: dict[str | None, object]) -> dict[str, str | None]:
    """
    Strip header names, drop overflow cells, and return {} for blank rows.
    """

    row: dict[str, str | None] = {}
    for header, value in raw_row.items():
        if header is None:
            continue
        name = header.strip()
        if not name or name.startswith("Unnamed:"):
            continue
        row[name] = None if value is None else str(value).strip()
    if not any(row.values()):
        return {}
    return row
