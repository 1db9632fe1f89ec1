"""Administrative ticket operations: bulk work, escalation, team workload and department reports."""

from __future__ import annotations

import datetime as dt
import logging
from collections import Counter
from collections.abc import Callable
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.exceptions import BadRequestError, HelpdeskException, NotFoundError
from helpdesk.core.rbac import (
    can_access_ticket,
    can_assign_ticket,
    can_operate_on_department,
    can_transfer_ticket_department,
    can_update_ticket,
    ensure_allowed,
)
from helpdesk.models.department import Department
from helpdesk.models.enums import CommentType, TicketPriority, TicketStatus, UserRole
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import User
from helpdesk.schemas.admin import BulkOperationResult
from helpdesk.services import notifications_service
from helpdesk.services.lifecycle import (
    CLOSED_STAMP_STATUSES,
    apply_assignment,
    apply_status,
    assignment_note,
    status_change_note,
    utcnow,
)
from helpdesk.services.tickets import load_active_user, load_ticket, load_tickets, record_audit_comment

logger = logging.getLogger(__name__)

TEAM_ROLES = (UserRole.agent, UserRole.team_lead, UserRole.manager)
WORKLOAD_HIGH_THRESHOLD = 15
WORKLOAD_MEDIUM_THRESHOLD = 8
# per-person active tickets for the department-level workload
DEPARTMENT_HIGH_PER_PERSON = 10
DEPARTMENT_MEDIUM_PER_PERSON = 5
RECENT_DAYS = 30
URGENT_LIMIT = 10
RESPONSE_TIME_SAMPLE = 100
ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90}
PRIORITY_RANK = {
    TicketPriority.critical: 0,
    TicketPriority.high: 1,
    TicketPriority.medium: 2,
    TicketPriority.low: 3,
}


def _unique_ids(ticket_ids: list[UUID]) -> list[UUID]:
    seen: set[str] = set()
    result = []
    for ticket_id in ticket_ids:
        key = str(ticket_id)
        if key not in seen:
            seen.add(key)
            result.append(ticket_id)
    return result


def _load_batch(db: Session, ticket_ids: list[UUID], *, actor: User) -> list[Ticket]:
    """Resolve every id and pre-check department scope; any miss fails the batch."""
    ids = _unique_ids(ticket_ids)
    if not ids:
        raise BadRequestError("ticket_ids_required")
    if len(ids) > settings.BULK_MAX_TICKETS:
        raise BadRequestError("too_many_tickets", details={"max": settings.BULK_MAX_TICKETS})

    found = {str(ticket.id): ticket for ticket in load_tickets(db, ids)}
    missing = [str(ticket_id) for ticket_id in ids if str(ticket_id) not in found]
    if missing:
        logger.warning("Bulk operation rejected, unknown tickets: %s", missing)
        raise BadRequestError("some_tickets_not_found", details={"missing": missing})
    tickets = [found[str(ticket_id)] for ticket_id in ids]

    checked: set[str] = set()
    for ticket in tickets:
        key = str(ticket.department_id)
        if key in checked:
            continue
        checked.add(key)
        ensure_allowed(
            can_operate_on_department(actor, ticket.department_id),
            details={"department_id": str(ticket.department_id) if ticket.department_id else None},
        )
    return tickets


def _run_batch(
    db: Session,
    tickets: list[Ticket],
    apply: Callable[[Ticket], Callable[[], Any] | None],
) -> BulkOperationResult:
    """Apply ``apply`` to each ticket; per-ticket domain errors are collected.

    ``apply`` may return a follow-up callable that runs after the commit
    (notifications).
    """
    result = BulkOperationResult()
    follow_ups: list[Callable[[], Any]] = []
    for ticket in tickets:
        try:
            follow_up = apply(ticket)
        except HelpdeskException as exc:
            result.failure_count += 1
            result.errors.append(f"Ticket {ticket.ticket_number}: {exc.message}")
            continue
        result.success_count += 1
        if follow_up is not None:
            follow_ups.append(follow_up)
    if result.success_count:
        db.commit()
    for follow_up in follow_ups:
        follow_up()
    return result


def bulk_assign_tickets(
    db: Session,
    ticket_ids: list[UUID],
    assignee_id: UUID,
    *,
    actor: User,
    reason: str | None = None,
) -> BulkOperationResult:
    if not ticket_ids:
        raise BadRequestError("ticket_ids_required")
    assignee = load_active_user(db, assignee_id)
    if assignee is None:
        raise NotFoundError("assignee_not_found")
    tickets = _load_batch(db, ticket_ids, actor=actor)
    now = utcnow()

    def apply(ticket: Ticket) -> Callable[[], Any]:
        ensure_allowed(can_access_ticket(actor, ticket))
        ensure_allowed(can_assign_ticket(actor, ticket, assignee))
        previous_assignee = ticket.assignee_id
        apply_assignment(ticket, assignee.id, now=now)
        record_audit_comment(
            db,
            ticket,
            actor=actor,
            content=reason or assignment_note(assignee.display_name),
            comment_type=CommentType.assignment,
            meta={
                "previous_assignee": str(previous_assignee) if previous_assignee else None,
                "new_assignee": str(assignee.id),
                "bulk": True,
            },
        )
        return lambda: notifications_service.notify_ticket_assigned(db, ticket, assignee, actor=actor)

    result = _run_batch(db, tickets, apply)
    logger.info(
        "Bulk assign by %s: %s ok, %s failed",
        actor.id,
        result.success_count,
        result.failure_count,
    )
    return result


def bulk_update_status(
    db: Session,
    ticket_ids: list[UUID],
    status: TicketStatus,
    *,
    actor: User,
    reason: str | None = None,
) -> BulkOperationResult:
    tickets = _load_batch(db, ticket_ids, actor=actor)
    now = utcnow()

    def apply(ticket: Ticket) -> Callable[[], Any] | None:
        ensure_allowed(can_update_ticket(actor, ticket))
        if ticket.status == status:
            return None
        previous = apply_status(ticket, status, now=now)
        record_audit_comment(
            db,
            ticket,
            actor=actor,
            content=reason or status_change_note(previous, status),
            comment_type=CommentType.status_change,
            meta={"from": previous.value, "to": status.value, "bulk": True},
        )
        return lambda: notifications_service.notify_ticket_status_changed(
            db, ticket, previous, status, actor=actor
        )

    result = _run_batch(db, tickets, apply)
    logger.info(
        "Bulk status -> %s by %s: %s ok, %s failed",
        status.value,
        actor.id,
        result.success_count,
        result.failure_count,
    )
    return result


def transfer_tickets(
    db: Session,
    ticket_ids: list[UUID],
    target_department_id: UUID,
    *,
    actor: User,
    reason: str | None,
    maintain_assignee: bool = False,
) -> BulkOperationResult:
    if not ticket_ids:
        raise BadRequestError("ticket_ids_required")
    if not (reason or "").strip():
        raise BadRequestError("transfer_reason_required")
    target = db.get(Department, target_department_id)
    if target is None or not target.is_active:
        raise NotFoundError("target_department_not_found")
    ensure_allowed(can_transfer_ticket_department(actor))
    tickets = _load_batch(db, ticket_ids, actor=actor)
    now = utcnow()

    def apply(ticket: Ticket) -> None:
        ensure_allowed(can_access_ticket(actor, ticket))
        source = db.get(Department, ticket.department_id) if ticket.department_id else None
        source_name = source.name if source else "no department"
        previous_department = ticket.department_id
        ticket.department_id = target.id
        if ticket.assignee_id is not None:
            assignee = db.get(User, ticket.assignee_id)
            keep = maintain_assignee and assignee is not None and str(assignee.department_id) == str(target.id)
            if not keep:
                ticket.assignee_id = None
        ticket.updated_at = now
        record_audit_comment(
            db,
            ticket,
            actor=actor,
            content=f"Ticket transferred from {source_name} to {target.name}. Reason: {reason}",
            comment_type=CommentType.assignment,
            meta={
                "previous_department": str(previous_department) if previous_department else None,
                "new_department": str(target.id),
                "reason": reason,
            },
        )
        return None

    result = _run_batch(db, tickets, apply)
    logger.info(
        "Bulk transfer -> %s by %s: %s ok, %s failed",
        target.id,
        actor.id,
        result.success_count,
        result.failure_count,
    )
    return result


def escalate_ticket(
    db: Session,
    ticket_id: UUID | str,
    *,
    actor: User,
    reason: str,
    escalate_to: UUID | None = None,
    priority: TicketPriority | None = None,
) -> dict[str, Any]:
    ticket = load_ticket(db, ticket_id)
    if ticket is None:
        raise NotFoundError("ticket_not_found")
    ensure_allowed(can_update_ticket(actor, ticket))

    target = None
    if escalate_to is not None:
        target = load_active_user(db, escalate_to)
        if target is None:
            raise NotFoundError("escalation_target_not_found")
        ensure_allowed(can_assign_ticket(actor, ticket, target))

    now = utcnow()
    previous_priority = ticket.priority
    if priority is not None:
        ticket.priority = priority
    escalated_to = "Team Lead"
    if target is not None:
        apply_assignment(ticket, target.id, now=now)
        escalated_to = target.display_name
    ticket.updated_at = now
    comment = record_audit_comment(
        db,
        ticket,
        actor=actor,
        content=f"Ticket escalated to {escalated_to}. Reason: {reason}",
        comment_type=CommentType.escalation,
        meta={
            "escalated_to": escalated_to,
            "reason": reason,
            "previous_priority": previous_priority.value if previous_priority else None,
            "new_priority": priority.value if priority else None,
        },
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket escalated: %s -> %s by %s", ticket.ticket_number, escalated_to, actor.id)
    if target is not None:
        notifications_service.notify_ticket_assigned(db, ticket, target, actor=actor)
    else:
        notifications_service.notify_ticket_updated(db, ticket, actor=actor)
    return {"ticket": ticket, "comment": comment, "escalated_to": escalated_to}


# ===== TEAM WORKLOAD =====


def workload_level(active_tickets: int) -> str:
    if active_tickets > WORKLOAD_HIGH_THRESHOLD:
        return "High"
    if active_tickets > WORKLOAD_MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def _ticket_counts(db: Session, user_ids: list[UUID]) -> tuple[dict[str, int], dict[str, int]]:
    if not user_ids:
        return {}, {}
    base = db.query(Ticket.assignee_id, func.count(Ticket.id)).filter(
        Ticket.assignee_id.in_(user_ids),
        Ticket.deleted_at.is_(None),
    )
    assigned = dict(base.group_by(Ticket.assignee_id).all())
    active = dict(
        base.filter(Ticket.status.in_([TicketStatus.open, TicketStatus.in_progress]))
        .group_by(Ticket.assignee_id)
        .all()
    )
    return (
        {str(key): int(value) for key, value in assigned.items()},
        {str(key): int(value) for key, value in active.items()},
    )


def get_department_team(db: Session, department_id: UUID, *, actor: User) -> list[dict[str, Any]]:
    ensure_allowed(can_operate_on_department(actor, department_id))
    members = (
        db.query(User)
        .filter(User.department_id == department_id, User.is_active.is_(True), User.role.in_(TEAM_ROLES))
        .order_by(User.display_name.asc())
        .all()
    )
    assigned, active = _ticket_counts(db, [member.id for member in members])
    team = []
    for member in members:
        active_count = active.get(str(member.id), 0)
        team.append(
            {
                "id": member.id,
                "display_name": member.display_name,
                "email": member.email,
                "role": member.role,
                "assigned_tickets": assigned.get(str(member.id), 0),
                "active_tickets": active_count,
                "workload_level": workload_level(active_count),
            }
        )
    return team


def get_team_workload(db: Session, department_id: UUID, *, actor: User) -> dict[str, Any]:
    team = get_department_team(db, department_id, actor=actor)
    total_active = sum(member["active_tickets"] for member in team)
    return {
        "team_size": len(team),
        "total_active_tickets": total_active,
        "average_workload": round(total_active / len(team), 2) if team else 0.0,
        "members": team,
        "overloaded_members": [member for member in team if member["workload_level"] == "High"],
    }


# ===== DEPARTMENT DASHBOARD & ANALYTICS =====


def _aware(value: dt.datetime) -> dt.datetime:
    return value if value.tzinfo else value.replace(tzinfo=dt.timezone.utc)


def department_workload_level(active_tickets: int, team_size: int) -> str:
    per_person = active_tickets / team_size if team_size else 0
    if per_person > DEPARTMENT_HIGH_PER_PERSON:
        return "High"
    if per_person > DEPARTMENT_MEDIUM_PER_PERSON:
        return "Medium"
    return "Low"


def average_response_hours(tickets: list[Ticket]) -> int:
    """Mean hours from creation to resolution over a sample of finished tickets."""
    finished = [ticket for ticket in tickets if ticket.status in CLOSED_STAMP_STATUSES][:RESPONSE_TIME_SAMPLE]
    if not finished:
        return 0
    total = sum(
        (_aware(ticket.closed_at or ticket.updated_at) - _aware(ticket.created_at)).total_seconds()
        for ticket in finished
    )
    return round(total / len(finished) / 3600)


def _urgency_key(ticket: Ticket) -> tuple[int, float]:
    rank = PRIORITY_RANK.get(ticket.priority, len(PRIORITY_RANK))
    return rank, -_aware(ticket.created_at).timestamp()


def compute_department_dashboard(
    department: Department,
    tickets: list[Ticket],
    *,
    team_size: int,
    now: dt.datetime,
) -> dict[str, Any]:
    recent_cutoff = now - dt.timedelta(days=RECENT_DAYS)
    counts = Counter(TicketStatus(ticket.status) for ticket in tickets)
    open_count = counts[TicketStatus.open]
    in_progress_count = counts[TicketStatus.in_progress]
    resolved_count = counts[TicketStatus.resolved]
    active = [ticket for ticket in tickets if ticket.status in (TicketStatus.open, TicketStatus.in_progress)]
    total = len(tickets)
    return {
        "department": {
            "id": department.id,
            "name": department.name,
            "description": department.description,
            "team_size": team_size,
        },
        "statistics": {
            "total_tickets": total,
            "open_tickets": open_count,
            "in_progress_tickets": in_progress_count,
            "resolved_tickets": resolved_count,
            "recent_tickets": sum(1 for ticket in tickets if _aware(ticket.created_at) >= recent_cutoff),
            "average_response_time_hours": average_response_hours(tickets),
        },
        "urgent_tickets": sorted(active, key=_urgency_key)[:URGENT_LIMIT],
        "summary": {
            "active_tickets": open_count + in_progress_count,
            "completion_rate": round(resolved_count / total * 100, 2) if total else 0.0,
            "workload": department_workload_level(open_count + in_progress_count, team_size),
        },
    }


def parse_period(period: str, *, now: dt.datetime) -> tuple[dt.datetime, dt.datetime]:
    days = ANALYTICS_PERIODS.get(period)
    if days is None:
        raise BadRequestError("invalid_period", details={"allowed": list(ANALYTICS_PERIODS)})
    return now - dt.timedelta(days=days), now


def compute_department_analytics(
    tickets: list[Ticket],
    *,
    start: dt.datetime,
    end: dt.datetime,
) -> dict[str, Any]:
    in_window = [ticket for ticket in tickets if start <= _aware(ticket.created_at) <= end]
    total = len(in_window)
    statuses = Counter(TicketStatus(ticket.status).value for ticket in in_window)
    priorities = Counter(
        TicketPriority(ticket.priority).value if ticket.priority else "unknown" for ticket in in_window
    )
    finished = statuses[TicketStatus.resolved.value] + statuses[TicketStatus.closed.value]

    daily: dict[str, int] = {}
    day = start.date()
    while day <= end.date():
        daily[day.isoformat()] = 0
        day += dt.timedelta(days=1)
    for ticket in in_window:
        key = _aware(ticket.created_at).date().isoformat()
        daily[key] = daily.get(key, 0) + 1

    return {
        "period": {"start_date": start, "end_date": end},
        "summary": {
            "total_tickets": total,
            "resolved_tickets": statuses[TicketStatus.resolved.value],
            "closed_tickets": statuses[TicketStatus.closed.value],
            "completion_rate": round(finished / total * 100, 2) if total else 0.0,
        },
        "distributions": {"status": dict(statuses), "priority": dict(priorities)},
        "trends": {"daily": [{"date": date, "count": count} for date, count in daily.items()]},
    }


def _department_tickets(db: Session, department_id: UUID, *, since: dt.datetime | None = None) -> list[Ticket]:
    query = db.query(Ticket).filter(Ticket.department_id == department_id, Ticket.deleted_at.is_(None))
    if since is not None:
        query = query.filter(Ticket.created_at >= since)
    return query.order_by(Ticket.created_at.desc()).all()


def _load_department(db: Session, department_id: UUID) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise NotFoundError("department_not_found")
    return department


def get_department_dashboard(
    db: Session,
    department_id: UUID,
    *,
    actor: User,
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    ensure_allowed(can_operate_on_department(actor, department_id))
    department = _load_department(db, department_id)
    team_size = db.query(User).filter(User.department_id == department_id, User.is_active.is_(True)).count()
    return compute_department_dashboard(
        department,
        _department_tickets(db, department_id),
        team_size=team_size,
        now=now or utcnow(),
    )


def get_department_analytics(
    db: Session,
    department_id: UUID,
    *,
    actor: User,
    period: str = "30d",
    now: dt.datetime | None = None,
) -> dict[str, Any]:
    ensure_allowed(can_operate_on_department(actor, department_id))
    _load_department(db, department_id)
    start, end = parse_period(period, now=now or utcnow())
    tickets = _department_tickets(db, department_id, since=start)
    return compute_department_analytics(tickets, start=start, end=end)
