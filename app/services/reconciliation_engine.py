"""
app/services/reconciliation_engine.py

Matches decoded rows against stored person records and classifies them.

Rows are handled strictly in file order, one at a time. The outcome
sequence is a generator, so the caller commits row N before row N+1 is
looked up; a later duplicate of the same RUT is therefore reconciled
against what the earlier row committed.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from itertools import count
from typing import Any

from app.domain.column_dictionary import ColumnDictionary
from app.domain.person import PersonRecord, RawRow
from app.domain.reconciliation import FieldDiff, RowClassification, RowError, RowOutcome
from app.repositories.person_record_repository import PersonRecordRepository
from app.validators.row_validator import RowValidator

MISSING_IDENTITY_MESSAGE = "Row has no resolvable identity value."
NO_IDENTITY_COLUMN_MESSAGE = "Column dictionary has no identity column."


class ReconciliationEngine:
    def __init__(self, row_validator: RowValidator | None = None) -> None:
        self._row_validator = row_validator or RowValidator()

    def reconcile(
        self,
        rows: Iterable[RawRow],
        dictionary: ColumnDictionary,
        repository: PersonRecordRepository,
        *,
        start_row: int = 1,
        row_numbers: Iterable[int] | None = None,
    ) -> Iterator[RowOutcome]:
        """
        Yield one outcome per row, in file order.

        Rows are numbered from ``start_row`` unless ``row_numbers`` gives the
        source row number of each row. Repository errors raised during
        lookup propagate to the caller; they are systemic, not row-scoped.
        """

        numbers = count(start_row) if row_numbers is None else iter(row_numbers)
        for row_number, raw_row in zip(numbers, rows):
            yield self.reconcile_row(row_number, raw_row, dictionary, repository)

    def reconcile_row(
        self,
        row_number: int,
        raw_row: RawRow,
        dictionary: ColumnDictionary,
        repository: PersonRecordRepository,
    ) -> RowOutcome:
        validation = self._row_validator.validate_row(raw_row, dictionary)
        identity_column = dictionary.identity_column

        if identity_column is None:
            return RowOutcome(
                row_number=row_number,
                classification=RowClassification.INVALID,
                errors=validation.errors + (RowError(message=NO_IDENTITY_COLUMN_MESSAGE),),
            )

        identity_key = validation.values.get(identity_column.name)
        if identity_column.name in validation.failed_columns() or not identity_key:
            errors = validation.errors
            if not errors:
                errors = (RowError(message=MISSING_IDENTITY_MESSAGE, column=identity_column.name),)
            return RowOutcome(
                row_number=row_number,
                classification=RowClassification.INVALID,
                errors=errors,
            )

        if not validation.is_valid:
            return RowOutcome(
                row_number=row_number,
                classification=RowClassification.INVALID,
                identity_key=identity_key,
                errors=validation.errors,
            )

        existing = repository.find_by_identity(identity_key)
        if existing is None:
            return RowOutcome(
                row_number=row_number,
                classification=RowClassification.NEW,
                identity_key=identity_key,
                values=validation.values,
            )

        diffs = self.diff_fields(existing, validation.values, dictionary)
        classification = RowClassification.UPDATED if diffs else RowClassification.UNCHANGED
        return RowOutcome(
            row_number=row_number,
            classification=classification,
            identity_key=identity_key,
            field_diffs=diffs,
            values=validation.values,
            existing=existing,
        )

    def diff_fields(
        self,
        existing: PersonRecord,
        values: dict[str, Any],
        dictionary: ColumnDictionary,
    ) -> dict[str, FieldDiff]:
        """
        Compare normalized new values with the stored ones, column by column.
        """

        field_validator = self._row_validator.field_validator
        diffs: dict[str, FieldDiff] = {}
        for column in dictionary:
            stored = existing.fields.get(column.name)
            old = field_validator.normalize_stored(stored, column)
            new = values.get(column.name)
            if not _same_value(old, new):
                diffs[column.name] = FieldDiff(old=old, new=new)
        return diffs


def _same_value(old: Any, new: Any) -> bool:
    # True == 1 in Python; a stored flag must still differ from a number.
    if isinstance(old, bool) or isinstance(new, bool):
        return type(old) is type(new) and old == new
    return old == new


def merged_record(outcome: RowOutcome, actor_id: str) -> PersonRecord:
    """
    Build the record to upsert for a new or updated row.

    Stored fields outside the dictionary are carried over untouched.
    """

    if outcome.identity_key is None:
        raise ValueError(f"Row {outcome.row_number} has no identity key to commit.")
    fields: dict[str, Any] = {}
    if outcome.existing is not None:
        fields.update(outcome.existing.fields)
    fields.update(outcome.values)
    return PersonRecord(
        identity_key=outcome.identity_key,
        fields=fields,
        created_at=outcome.existing.created_at if outcome.existing is not None else None,
        updated_by=actor_id,
    )
