"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    end_user = "end_user"
    agent = "agent"
    team_lead = "team_lead"
    manager = "manager"
    admin = "admin"
    super_admin = "super_admin"


class TicketStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    pending = "pending"
    resolved = "resolved"
    closed = "closed"
    cancelled = "cancelled"


class TicketPriority(str, enum.Enum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


class CommentType(str, enum.Enum):
    comment = "comment"
    status_change = "status_change"
    assignment = "assignment"
    escalation = "escalation"
    reply = "reply"


class NotificationType(str, enum.Enum):
    ticket_assigned = "ticket_assigned"
    ticket_updated = "ticket_updated"
    ticket_commented = "ticket_commented"
    ticket_status_changed = "ticket_status_changed"
    ticket_created = "ticket_created"
    ticket_resolved = "ticket_resolved"
    ticket_closed = "ticket_closed"
