"""Pydantic schemas for bulk ticket operations, team views and department reports."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from helpdesk.core.sanitize import clean_multiline
from helpdesk.models.enums import TicketStatus, UserRole
from helpdesk.schemas.ticket import TicketOut

MAX_REASON_LEN = 2000


def _clean_reason(value: str | None) -> str | None:
    cleaned = clean_multiline(value)
    return cleaned or None


class BulkAssignRequest(BaseModel):
    # Emptiness is checked by the service so it surfaces as a 400, not a 422.
    ticket_ids: list[UUID] = Field(default_factory=list)
    assignee_id: UUID
    reason: str | None = Field(default=None, max_length=MAX_REASON_LEN)

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        return _clean_reason(value)


class BulkStatusRequest(BaseModel):
    ticket_ids: list[UUID] = Field(default_factory=list)
    status: TicketStatus
    reason: str | None = Field(default=None, max_length=MAX_REASON_LEN)

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        return _clean_reason(value)


class BulkTransferRequest(BaseModel):
    ticket_ids: list[UUID] = Field(default_factory=list)
    target_department_id: UUID
    reason: str | None = Field(default=None, max_length=MAX_REASON_LEN)
    maintain_assignee: bool = False

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value: str | None) -> str | None:
        return _clean_reason(value)


class BulkOperationResult(BaseModel):
    success_count: int = 0
    failure_count: int = 0
    errors: list[str] = Field(default_factory=list)


class TeamMemberOut(BaseModel):
    id: UUID
    display_name: str
    email: str
    role: UserRole
    assigned_tickets: int
    active_tickets: int
    workload_level: str


class TeamWorkloadOut(BaseModel):
    team_size: int
    total_active_tickets: int
    average_workload: float
    members: list[TeamMemberOut]
    overloaded_members: list[TeamMemberOut]


class DashboardDepartment(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    team_size: int


class DashboardStatistics(BaseModel):
    total_tickets: int
    open_tickets: int
    in_progress_tickets: int
    resolved_tickets: int
    recent_tickets: int
    average_response_time_hours: int


class DashboardSummary(BaseModel):
    active_tickets: int
    completion_rate: float
    workload: str


class DepartmentDashboardOut(BaseModel):
    department: DashboardDepartment
    statistics: DashboardStatistics
    urgent_tickets: list[TicketOut]
    summary: DashboardSummary


class AnalyticsPeriod(BaseModel):
    start_date: dt.datetime
    end_date: dt.datetime


class AnalyticsSummary(BaseModel):
    total_tickets: int
    resolved_tickets: int
    closed_tickets: int
    completion_rate: float


class DailyCount(BaseModel):
    date: str
    count: int


class AnalyticsDistributions(BaseModel):
    status: dict[str, int]
    priority: dict[str, int]


class AnalyticsTrends(BaseModel):
    daily: list[DailyCount]


class DepartmentAnalyticsOut(BaseModel):
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    distributions: AnalyticsDistributions
    trends: AnalyticsTrends
