"""
db/models/person_record.py

Person roll entries keyed by canonical RUT.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PersonRecordModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "person_records"

    identity_key: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Canonical RUT, BODY-DV",
    )
    fields: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Column name -> normalized value",
    )
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("uq_person_records_identity_key", "identity_key", unique=True),
        Index("ix_person_records_fields", "fields", postgresql_using="gin"),
    )
