"""Pydantic schemas for departments and categories."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from helpdesk.core.sanitize import clean_multiline, clean_single_line

MAX_NAME_LEN = 255
MAX_DESCRIPTION_LEN = 2000


class _NamedPayload(BaseModel):
    @field_validator("name", mode="before", check_fields=False)
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_single_line(value)

    @field_validator("description", mode="before", check_fields=False)
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class DepartmentCreate(_NamedPayload):
    name: str = Field(min_length=2, max_length=MAX_NAME_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    parent_id: UUID | None = None


class DepartmentUpdate(_NamedPayload):
    name: str | None = Field(default=None, min_length=2, max_length=MAX_NAME_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    parent_id: UUID | None = None
    is_active: bool | None = None


class DepartmentOut(BaseModel):
    id: UUID
    name: str
    description: str | None
    is_active: bool
    parent_id: UUID | None
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class DepartmentNode(DepartmentOut):
    children: list[DepartmentNode] = Field(default_factory=list)


class CategoryCreate(_NamedPayload):
    name: str = Field(min_length=2, max_length=MAX_NAME_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    department_id: UUID


class CategoryUpdate(_NamedPayload):
    name: str | None = Field(default=None, min_length=2, max_length=MAX_NAME_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    department_id: UUID | None = None
    is_active: bool | None = None


class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: str | None
    is_active: bool
    department_id: UUID

    class Config:
        from_attributes = True
