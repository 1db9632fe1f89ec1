"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel

from helpdesk.models.enums import UserRole


class UserOut(BaseModel):
    id: UUID
    email: str
    display_name: str
    role: UserRole
    department_id: UUID | None
    is_active: bool
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserDepartmentUpdate(BaseModel):
    department_id: UUID | None = None
