"""Pydantic schemas for tickets, comments, and ticket statistics."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from helpdesk.core.sanitize import clean_list, clean_multiline, clean_single_line
from helpdesk.models.enums import CommentType, TicketPriority, TicketStatus

MAX_TITLE_LEN = 500
MAX_DESCRIPTION_LEN = 10000
MAX_COMMENT_LEN = 5000
MAX_TAGS = 12
MAX_TAG_LEN = 40


def _normalize_tags(value: list[str] | None) -> list[str]:
    return clean_list(value, max_items=MAX_TAGS, item_max_length=MAX_TAG_LEN)


class TicketCreate(BaseModel):
    title: str = Field(min_length=3, max_length=MAX_TITLE_LEN)
    description: str = Field(min_length=5, max_length=MAX_DESCRIPTION_LEN)
    priority: TicketPriority | None = None
    department_id: UUID | None = None
    category_id: UUID | None = None
    due_date: dt.datetime | None = None
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        return clean_multiline(value)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: list[str]) -> list[str]:
        return _normalize_tags(value)


class TicketUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=MAX_TITLE_LEN)
    description: str | None = Field(default=None, min_length=5, max_length=MAX_DESCRIPTION_LEN)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee_id: UUID | None = None
    category_id: UUID | None = None
    due_date: dt.datetime | None = None
    tags: list[str] | None = Field(default=None, max_length=MAX_TAGS)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        cleaned = clean_single_line(value)
        return cleaned or None

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _normalize_tags(value)


class TicketAssign(BaseModel):
    assignee_id: UUID
    comment: str | None = Field(default=None, max_length=MAX_COMMENT_LEN)

    @field_validator("comment", mode="before")
    @classmethod
    def normalize_comment(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None


class TicketEscalate(BaseModel):
    reason: str = Field(min_length=3, max_length=MAX_COMMENT_LEN)
    escalate_to: UUID | None = None
    priority: TicketPriority | None = None

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str) -> str:
        return clean_multiline(value)


class TicketCommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_COMMENT_LEN)
    is_internal: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class TicketCommentOut(BaseModel):
    id: UUID
    user_id: UUID | None
    content: str
    comment_type: CommentType
    is_internal: bool
    meta: dict = Field(default_factory=dict)
    created_at: dt.datetime

    class Config:
        from_attributes = True


class TicketOut(BaseModel):
    id: UUID
    ticket_number: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority | None
    tags: list[str] = Field(default_factory=list)
    department_id: UUID | None
    category_id: UUID | None
    requester_id: UUID
    assignee_id: UUID | None
    created_by_id: UUID
    due_date: dt.datetime | None
    closed_at: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class TicketDetailOut(TicketOut):
    comments: list[TicketCommentOut] = Field(default_factory=list)


class TicketPage(BaseModel):
    tickets: list[TicketOut]
    total: int
    page: int
    limit: int


class TicketStats(BaseModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    overdue: int


class TicketEscalationOut(BaseModel):
    ticket: TicketOut
    comment: TicketCommentOut
    escalated_to: str
