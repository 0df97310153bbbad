"""
Schemas for column dictionary administration endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.domain.column_dictionary import ColumnDefinition, ColumnType, ValidationKind


class ColumnDefinitionPayload(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: ColumnType = ColumnType.STRING
    required: bool = False
    validation_kind: ValidationKind = ValidationKind.NONE
    validation_rule: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    default_value: str | None = None
    description: str | None = None
    placeholder: str | None = None
    position: int = 0

    def to_definition(self) -> ColumnDefinition:
        return ColumnDefinition(**self.model_dump())


class ColumnDefinitionUpdate(BaseModel):
    """
    Partial update; only fields present in the request body are applied.
    """

    name: str | None = Field(default=None, min_length=1, max_length=120)
    type: ColumnType | None = None
    required: bool | None = None
    validation_kind: ValidationKind | None = None
    validation_rule: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    default_value: str | None = None
    description: str | None = None
    placeholder: str | None = None
    position: int | None = None

    def changes(self) -> dict[str, Any]:
        changes = self.model_dump(exclude_unset=True)
        # Null clears optional limits and rules, never these.
        for key in _NOT_NULLABLE:
            if key in changes and changes[key] is None:
                del changes[key]
        return changes


_NOT_NULLABLE = ("name", "type", "required", "validation_kind", "position")


class ColumnDefinitionResponse(ColumnDefinitionPayload):
    @classmethod
    def from_definition(cls, definition: ColumnDefinition) -> ColumnDefinitionResponse:
        return cls(
            name=definition.name,
            type=definition.type,
            required=definition.required,
            validation_kind=definition.validation_kind,
            validation_rule=definition.validation_rule,
            min_length=definition.min_length,
            max_length=definition.max_length,
            min_value=definition.min_value,
            max_value=definition.max_value,
            default_value=definition.default_value,
            description=definition.description,
            placeholder=definition.placeholder,
            position=definition.position,
        )


class ColumnDictionaryResponse(BaseModel):
    columns: list[ColumnDefinitionResponse] = Field(default_factory=list)
