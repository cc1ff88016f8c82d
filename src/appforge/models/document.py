"""Pydantic models for documents produced by the generative service."""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from appforge.models.enums import ColumnType

IDENTIFIER_PATTERN = re.compile(r"^[a-z0-9_]{1,63}$")

# Every storage table carries this column implicitly.
IDENTITY_COLUMN = "id"


def is_valid_identifier(name: str) -> bool:
    return isinstance(name, str) and bool(IDENTIFIER_PATTERN.match(name))


class ColumnDefinition(BaseModel):
    """A declared column. Immutable; only ever appended to a table."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = Field(..., min_length=1)
    type: ColumnType = ColumnType.TEXT
    nullable: bool | None = None
    default: str | int | float | bool | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> ColumnType:
        # Unknown or missing types are stored as TEXT
        if isinstance(value, str):
            try:
                return ColumnType(value.strip().upper())
            except ValueError:
                return ColumnType.TEXT
        return ColumnType.TEXT

    def to_registry(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class TableDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    columns: list[ColumnDefinition]

    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


class PatchOperation(BaseModel):
    """Exact search/replace against the current markup. Empty replace deletes."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    search: str = Field(..., min_length=1)
    replace: str = ""


class GeneratedDocument(BaseModel):
    """Complete document returned by the create and full-edit modes."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tables: list[TableDefinition]
    markup: str = Field(..., alias="html")
    seed_data: dict[str, Any] = Field(default_factory=dict, alias="seedData")
    new_tables: list[str] = Field(default_factory=list, alias="newTables")
    new_columns: dict[str, list[ColumnDefinition]] = Field(default_factory=dict, alias="newColumns")

    def table(self, name: str) -> TableDefinition | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None


class PatchDocument(BaseModel):
    """Document returned by the fast-diff edit mode."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    patches: list[PatchOperation]
    seed_data: dict[str, Any] = Field(default_factory=dict, alias="seedData")
    new_columns: dict[str, list[ColumnDefinition]] = Field(default_factory=dict, alias="newColumns")
