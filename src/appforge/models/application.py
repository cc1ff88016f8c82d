"""Pydantic models for persisted applications and API payloads."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from appforge.models.document import ColumnDefinition
from appforge.models.enums import EditPhase, EditState


class ApplicationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    app_id: str
    title: str
    markup: str
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApplicationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    app_id: str
    title: str
    created_at: datetime | None = None


class TableSchema(BaseModel):
    table_name: str
    columns: list[ColumnDefinition]


class CreateApplicationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(None, max_length=200)
    description: str = Field(..., min_length=1)


class EditApplicationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = Field(..., min_length=1)


class EditRequestRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    app_id: str
    description: str
    state: EditState
    phase: EditPhase | None = None
    error: str | None = None
    created_at: datetime | None = None
