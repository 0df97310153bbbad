"""
db/models/column_definition.py

Stored column dictionary entries administered through the API.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ColumnDefinitionRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "column_definitions"

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
        comment="Field key inside person_records.fields; immutable once referenced",
    )
    column_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="string",
        comment="string, number, boolean, date, email, phone, select, identity",
    )
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validation_kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="none",
        comment="none, regex, enumeratedList, identity",
    )
    validation_rule: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Regex source or JSON array of allowed values",
    )
    min_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    default_value: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    placeholder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_column_definitions_position", "position"),
    )
