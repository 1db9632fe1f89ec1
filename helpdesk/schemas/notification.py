"""Pydantic schemas for notifications."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

from helpdesk.models.enums import NotificationType


class NotificationOut(BaseModel):
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str | None = None
    data: dict = Field(default_factory=dict)
    created_at: dt.datetime
    read_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class NotificationUnreadCountOut(BaseModel):
    count: int
