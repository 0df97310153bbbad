"""
app/domain/person.py

Person records keyed by national identity (RUT).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, NamedTuple

# One decoded file row: header name -> raw cell text.
RawRow = Mapping[str, str | None]


class SourceRow(NamedTuple):
    """
    A decoded row and the row number it has in the uploaded file.

    Blank rows are dropped by the decoder but still count, so numbers can
    have gaps.
    """

    row_number: int
    values: RawRow

    def to_payload(self) -> dict[str, Any]:
        return {"row_number": self.row_number, "values": dict(self.values)}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SourceRow:
        return cls(row_number=int(payload["row_number"]), values=dict(payload.get("values") or {}))


@dataclass(frozen=True)
class PersonRecord:
    """
    Stored person, as read from or written to the record repository.
    """

    identity_key: str
    fields: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None

    def snapshot(self) -> dict[str, Any]:
        """
        Plain mapping used for audit before/after snapshots.
        """

        return {"identity_key": self.identity_key, "fields": dict(self.fields)}
