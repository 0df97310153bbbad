"""
Schemas for person record endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.person import PersonRecord
from app.validators.rut import format_rut


class PersonValuesPayload(BaseModel):
    """
    Column name -> raw value, validated against the column dictionary.
    """

    values: dict[str, Any] = Field(default_factory=dict)


class PersonResponse(BaseModel):
    identity_key: str
    display_identity: str
    fields: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None

    @classmethod
    def from_record(cls, record: PersonRecord) -> PersonResponse:
        return cls(
            identity_key=record.identity_key,
            display_identity=format_rut(record.identity_key),
            fields=record.fields,
            created_at=record.created_at,
            updated_at=record.updated_at,
            updated_by=record.updated_by,
        )


class PersonListResponse(BaseModel):
    people: list[PersonResponse] = Field(default_factory=list)
