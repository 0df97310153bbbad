"""
app/domain/reconciliation.py

Row-level reconciliation results and the per-job summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from app.domain.person import PersonRecord


class RowClassification(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    INVALID = "invalid"


@dataclass(frozen=True)
class RowError:
    """
    One problem found in a row. ``column`` is None for row-wide problems.
    """

    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class FieldDiff:
    old: Any
    new: Any


@dataclass(frozen=True)
class RowOutcome:
    """
    Classification of one source row against the repository.

    ``values`` holds the normalized dictionary values (the write payload for
    new/updated rows); ``existing`` is the record the row was matched to.
    """

    row_number: int
    classification: RowClassification
    identity_key: str | None = None
    field_diffs: dict[str, FieldDiff] = field(default_factory=dict)
    errors: tuple[RowError, ...] = ()
    values: dict[str, Any] = field(default_factory=dict)
    existing: PersonRecord | None = None

    @property
    def requires_commit(self) -> bool:
        return self.classification in (RowClassification.NEW, RowClassification.UPDATED)

    def as_invalid(self, error: RowError) -> RowOutcome:
        """
        Reclassify a row whose commit failed.
        """

        return replace(
            self,
            classification=RowClassification.INVALID,
            errors=self.errors + (error,),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "classification": self.classification.value,
            "identity_key": self.identity_key,
            "field_diffs": {
                column: {"old": diff.old, "new": diff.new}
                for column, diff in self.field_diffs.items()
            },
            "errors": [
                {"column": error.column, "message": error.message, "value": error.value}
                for error in self.errors
            ],
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RowOutcome:
        return cls(
            row_number=int(payload["row_number"]),
            classification=RowClassification(payload["classification"]),
            identity_key=payload.get("identity_key"),
            field_diffs={
                column: FieldDiff(old=diff.get("old"), new=diff.get("new"))
                for column, diff in (payload.get("field_diffs") or {}).items()
            },
            errors=tuple(
                RowError(
                    message=error.get("message", ""),
                    column=error.get("column"),
                    value=error.get("value"),
                )
                for error in payload.get("errors") or ()
            ),
        )


@dataclass(frozen=True)
class ImportSummary:
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    invalid: int = 0

    @property
    def total(self) -> int:
        return self.new + self.updated + self.unchanged + self.invalid

    def counted(self, classification: RowClassification) -> ImportSummary:
        """
        Return a copy with one more row of the given classification.
        """

        attribute = classification.value
        return replace(self, **{attribute: getattr(self, attribute) + 1})

    def to_payload(self) -> dict[str, int]:
        return {
            "new": self.new,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "invalid": self.invalid,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> ImportSummary:
        payload = payload or {}
        return cls(
            new=int(payload.get("new", 0)),
            updated=int(payload.get("updated", 0)),
            unchanged=int(payload.get("unchanged", 0)),
            invalid=int(payload.get("invalid", 0)),
        )
