"""Ticket lifecycle: status state machine and assignment side effects.

Only pure transitions live here. Permission checks happen before these are
called, and persistence/audit/notification happen after.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from helpdesk.core.exceptions import BadRequestError
from helpdesk.models.enums import TicketStatus

ACTIVE_STATUSES = frozenset({TicketStatus.open, TicketStatus.in_progress, TicketStatus.pending})
EXIT_STATUSES = frozenset({TicketStatus.resolved, TicketStatus.closed, TicketStatus.cancelled})
CLOSED_STAMP_STATUSES = frozenset({TicketStatus.resolved, TicketStatus.closed})

ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.open: frozenset(
        {TicketStatus.in_progress, TicketStatus.resolved, TicketStatus.closed, TicketStatus.cancelled}
    ),
    TicketStatus.in_progress: frozenset(
        {
            TicketStatus.open,
            TicketStatus.pending,
            TicketStatus.resolved,
            TicketStatus.closed,
            TicketStatus.cancelled,
        }
    ),
    TicketStatus.pending: frozenset(
        {
            TicketStatus.open,
            TicketStatus.in_progress,
            TicketStatus.resolved,
            TicketStatus.closed,
            TicketStatus.cancelled,
        }
    ),
    # reopen
    TicketStatus.resolved: frozenset({TicketStatus.open, TicketStatus.in_progress, TicketStatus.closed}),
    TicketStatus.closed: frozenset({TicketStatus.open, TicketStatus.in_progress}),
    TicketStatus.cancelled: frozenset({TicketStatus.open, TicketStatus.in_progress}),
}


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def can_transition(src: TicketStatus, dst: TicketStatus) -> bool:
    if src == dst:
        return True
    return dst in ALLOWED_TRANSITIONS.get(src, frozenset())


def apply_status(ticket: Any, status: TicketStatus, *, now: dt.datetime | None = None) -> TicketStatus:
    """Move ``ticket`` to ``status`` and return the previous status.

    Entering RESOLVED or CLOSED stamps ``closed_at``; going back to an active
    status clears it. Moving between exit states keeps the original stamp.
    """
    previous = TicketStatus(ticket.status)
    if not can_transition(previous, status):
        raise BadRequestError(
            "invalid_status_transition",
            details={"from": previous.value, "to": status.value},
        )
    now = now or utcnow()
    ticket.status = status
    if status in CLOSED_STAMP_STATUSES:
        if ticket.closed_at is None or previous in ACTIVE_STATUSES:
            ticket.closed_at = now
    elif status in ACTIVE_STATUSES:
        ticket.closed_at = None
    ticket.updated_at = now
    return previous


def apply_assignment(ticket: Any, assignee_id: Any, *, now: dt.datetime | None = None) -> TicketStatus:
    """Set the assignee; an OPEN ticket advances to IN_PROGRESS.

    An in-flight ticket keeps its status. Returns the previous status.
    """
    previous = TicketStatus(ticket.status)
    ticket.assignee_id = assignee_id
    if previous == TicketStatus.open:
        ticket.status = TicketStatus.in_progress
    ticket.updated_at = now or utcnow()
    return previous


def status_change_note(previous: TicketStatus, status: TicketStatus) -> str:
    return f"Status changed from {previous.value} to {status.value}"


def assignment_note(assignee_name: str | None) -> str:
    if not assignee_name:
        return "Ticket assigned"
    return f"Ticket assigned to {assignee_name}"
