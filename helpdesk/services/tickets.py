"""Service helpers for ticket CRUD, comments and statistics."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from helpdesk.core.config import settings
from helpdesk.core.exceptions import ForbiddenError, NotFoundError
from helpdesk.core.rbac import (
    DenyReason,
    can_access_ticket,
    can_assign_ticket,
    can_delete_ticket,
    can_update_ticket,
    can_view_internal_comments,
    ensure_allowed,
    filter_tickets_for_user,
)
from helpdesk.models.department import Category, Department
from helpdesk.models.enums import CommentType, TicketPriority, TicketStatus
from helpdesk.models.ticket import Ticket, TicketComment
from helpdesk.models.user import User
from helpdesk.schemas.ticket import TicketAssign, TicketCommentCreate, TicketCreate, TicketUpdate
from helpdesk.services import notifications_service
from helpdesk.services.lifecycle import (
    EXIT_STATUSES,
    apply_assignment,
    apply_status,
    assignment_note,
    status_change_note,
    utcnow,
)

logger = logging.getLogger(__name__)

TICKET_NUMBER_PREFIX = "HD"
TICKET_NUMBER_DIGITS = 6
CONTENT_FIELDS = ("title", "description", "priority", "category_id", "due_date", "tags")


# ===== LOADERS =====


def load_ticket(db: Session, ticket_id: UUID | str) -> Ticket | None:
    ticket = db.get(Ticket, ticket_id)
    if ticket is None or ticket.deleted_at is not None:
        return None
    return ticket


def load_tickets(db: Session, ticket_ids: list[UUID]) -> list[Ticket]:
    if not ticket_ids:
        return []
    return db.query(Ticket).filter(Ticket.id.in_(ticket_ids), Ticket.deleted_at.is_(None)).all()


def load_active_user(db: Session, user_id: UUID | str) -> User | None:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def record_audit_comment(
    db: Session,
    ticket: Ticket,
    *,
    actor: Any,
    content: str,
    comment_type: CommentType,
    meta: dict[str, Any] | None = None,
) -> TicketComment:
    comment = TicketComment(
        ticket_id=ticket.id,
        user_id=actor.id,
        content=content,
        comment_type=comment_type,
        is_internal=True,
        meta=meta or {},
        created_at=utcnow(),
    )
    db.add(comment)
    return comment


def _next_ticket_number(db: Session, *, now: dt.datetime | None = None) -> str:
    prefix = f"{TICKET_NUMBER_PREFIX}-{(now or utcnow()).year}-"
    latest = db.query(func.max(Ticket.ticket_number)).filter(Ticket.ticket_number.like(f"{prefix}%")).scalar()
    sequence = 0
    if latest:
        try:
            sequence = int(str(latest).rsplit("-", 1)[-1])
        except ValueError:
            sequence = 0
    return f"{prefix}{sequence + 1:0{TICKET_NUMBER_DIGITS}d}"


# ===== CREATION =====


def _classification_candidates(db: Session) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    departments = db.query(Department).filter(Department.is_active.is_(True)).all()
    names = {str(department.id): department.name for department in departments}
    categories = db.query(Category).filter(Category.is_active.is_(True)).all()
    return (
        [{"id": str(d.id), "name": d.name, "description": d.description} for d in departments],
        [
            {
                "id": str(c.id),
                "name": c.name,
                "description": c.description,
                "department_id": str(c.department_id),
                "department_name": names.get(str(c.department_id)),
            }
            for c in categories
        ],
    )


def _fill_missing_fields(db: Session, data: TicketCreate) -> dict[str, Any]:
    """Return the triage fields, completing missing ones with the AI classifier.

    Provided values always win. Any classifier failure leaves the gaps as-is.
    """
    from helpdesk.services.ai import classify_ticket_fields

    fields: dict[str, Any] = {
        "department_id": data.department_id,
        "category_id": data.category_id,
        "priority": data.priority,
    }
    if all(value is not None for value in fields.values()) or not settings.ai_classification_ready:
        return fields
    try:
        departments, categories = _classification_candidates(db)
        suggestion = classify_ticket_fields(
            data.title,
            data.description,
            departments,
            categories,
            [priority.value for priority in TicketPriority],
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("AI classification failed, creating ticket without it: %s", exc)
        return fields
    if suggestion is None:
        return fields
    if fields["department_id"] is None and suggestion.department_id:
        fields["department_id"] = UUID(suggestion.department_id)
    if fields["category_id"] is None and suggestion.category_id:
        # a suggested category must belong to the department the ticket ends up in
        owner = next((row["department_id"] for row in categories if row["id"] == suggestion.category_id), None)
        if fields["department_id"] is None or owner == str(fields["department_id"]):
            fields["category_id"] = UUID(suggestion.category_id)
    if fields["priority"] is None and suggestion.priority is not None:
        fields["priority"] = suggestion.priority
    return fields


def create_ticket(db: Session, data: TicketCreate, *, actor: User) -> Ticket:
    fields = _fill_missing_fields(db, data)
    if data.department_id is not None:
        department = db.get(Department, data.department_id)
        if department is None or not department.is_active:
            raise NotFoundError("department_not_found")

    now = utcnow()
    ticket = Ticket(
        ticket_number=_next_ticket_number(db, now=now),
        title=data.title,
        description=data.description,
        status=TicketStatus.open,
        priority=fields["priority"],
        department_id=fields["department_id"],
        category_id=fields["category_id"],
        requester_id=actor.id,
        created_by_id=actor.id,
        due_date=data.due_date,
        tags=list(data.tags),
        created_at=now,
        updated_at=now,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket created: %s by %s", ticket.ticket_number, actor.id)
    return ticket


# ===== READS =====


def _candidate_tickets(
    db: Session,
    *,
    status: TicketStatus | None = None,
    assignee_id: UUID | None = None,
    department_id: UUID | None = None,
    search: str | None = None,
) -> list[Ticket]:
    query = db.query(Ticket).filter(Ticket.deleted_at.is_(None))
    if status is not None:
        query = query.filter(Ticket.status == status)
    if assignee_id is not None:
        query = query.filter(Ticket.assignee_id == assignee_id)
    if department_id is not None:
        query = query.filter(Ticket.department_id == department_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Ticket.title.ilike(pattern),
                Ticket.description.ilike(pattern),
                Ticket.ticket_number.ilike(pattern),
            )
        )
    return query.order_by(Ticket.created_at.desc()).all()


def _matches_tags(ticket: Ticket, tags: list[str]) -> bool:
    wanted = {tag.casefold() for tag in tags}
    return any(str(tag).casefold() in wanted for tag in (ticket.tags or []))


def list_tickets_for_user(
    db: Session,
    user: User,
    *,
    page: int = 1,
    limit: int | None = None,
    status: TicketStatus | None = None,
    assignee_id: UUID | None = None,
    department_id: UUID | None = None,
    search: str | None = None,
    tags: list[str] | None = None,
) -> dict[str, Any]:
    page = max(1, page)
    limit = max(1, min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))
    tickets = filter_tickets_for_user(
        user,
        _candidate_tickets(
            db,
            status=status,
            assignee_id=assignee_id,
            department_id=department_id,
            search=search,
        ),
    )
    if tags:
        tickets = [ticket for ticket in tickets if _matches_tags(ticket, tags)]
    offset = (page - 1) * limit
    return {"tickets": tickets[offset : offset + limit], "total": len(tickets), "page": page, "limit": limit}


def get_ticket_for_user(db: Session, ticket_id: UUID | str, user: User) -> Ticket:
    ticket = load_ticket(db, ticket_id)
    if ticket is None:
        logger.warning("Ticket lookup failed (not found): %s", ticket_id)
        raise NotFoundError("ticket_not_found")
    decision = can_access_ticket(user, ticket)
    if not decision:
        logger.warning("Ticket access denied: %s for %s (%s)", ticket.ticket_number, user.id, decision.reason_code)
    ensure_allowed(decision)
    return ticket


def compute_ticket_stats(tickets: list[Ticket], *, now: dt.datetime | None = None) -> dict[str, int]:
    now = now or utcnow()
    overdue = 0
    for ticket in tickets:
        if ticket.due_date is None or ticket.status in EXIT_STATUSES:
            continue
        due = ticket.due_date if ticket.due_date.tzinfo else ticket.due_date.replace(tzinfo=dt.timezone.utc)
        if due < now:
            overdue += 1
    return {
        "total": len(tickets),
        "open": sum(1 for t in tickets if t.status == TicketStatus.open),
        "in_progress": sum(1 for t in tickets if t.status == TicketStatus.in_progress),
        "resolved": sum(1 for t in tickets if t.status == TicketStatus.resolved),
        "overdue": overdue,
    }


def get_ticket_stats(db: Session, user: User) -> dict[str, int]:
    return compute_ticket_stats(filter_tickets_for_user(user, _candidate_tickets(db)))


# ===== MUTATIONS =====


def update_ticket(db: Session, ticket_id: UUID | str, payload: TicketUpdate, *, actor: User) -> Ticket:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    ensure_allowed(can_update_ticket(actor, ticket))
    changes = payload.model_dump(exclude_unset=True)

    assignee = None
    if changes.get("assignee_id") is not None:
        assignee = load_active_user(db, changes["assignee_id"])
        if assignee is None:
            raise NotFoundError("assignee_not_found")
        ensure_allowed(can_assign_ticket(actor, ticket, assignee))

    now = utcnow()
    if assignee is not None:
        apply_assignment(ticket, assignee.id, now=now)
        record_audit_comment(
            db,
            ticket,
            actor=actor,
            content=assignment_note(assignee.display_name),
            comment_type=CommentType.assignment,
            meta={"assignee_id": str(assignee.id)},
        )

    status_change = None
    new_status = changes.get("status")
    if new_status is not None and new_status != ticket.status:
        previous = apply_status(ticket, new_status, now=now)
        status_change = (previous, new_status)
        record_audit_comment(
            db,
            ticket,
            actor=actor,
            content=status_change_note(previous, new_status),
            comment_type=CommentType.status_change,
            meta={"from": previous.value, "to": new_status.value},
        )

    content_changed = False
    for field in CONTENT_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(ticket, field, changes[field])
            content_changed = True
    if content_changed:
        ticket.updated_at = now

    db.commit()
    db.refresh(ticket)
    logger.info("Ticket updated: %s by %s", ticket.ticket_number, actor.id)

    if assignee is not None:
        notifications_service.notify_ticket_assigned(db, ticket, assignee, actor=actor)
    if status_change is not None:
        notifications_service.notify_ticket_status_changed(db, ticket, *status_change, actor=actor)
    elif content_changed and assignee is None:
        notifications_service.notify_ticket_updated(db, ticket, actor=actor)
    return ticket


def assign_ticket(db: Session, ticket_id: UUID | str, payload: TicketAssign, *, actor: User) -> Ticket:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    ensure_allowed(can_assign_ticket(actor))
    assignee = load_active_user(db, payload.assignee_id)
    if assignee is None:
        raise NotFoundError("assignee_not_found")
    ensure_allowed(can_assign_ticket(actor, ticket, assignee))

    now = utcnow()
    apply_assignment(ticket, assignee.id, now=now)
    record_audit_comment(
        db,
        ticket,
        actor=actor,
        content=assignment_note(assignee.display_name),
        comment_type=CommentType.assignment,
        meta={"assignee_id": str(assignee.id)},
    )
    if payload.comment:
        db.add(
            TicketComment(
                ticket_id=ticket.id,
                user_id=actor.id,
                content=payload.comment,
                comment_type=CommentType.assignment,
                is_internal=False,
                meta={"assignee_id": str(assignee.id)},
                created_at=now,
            )
        )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket assigned: %s -> %s by %s", ticket.ticket_number, assignee.id, actor.id)
    notifications_service.notify_ticket_assigned(db, ticket, assignee, actor=actor)
    return ticket


def add_comment(db: Session, ticket_id: UUID | str, payload: TicketCommentCreate, *, actor: User) -> TicketComment:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    if payload.is_internal and not can_view_internal_comments(actor):
        raise ForbiddenError(
            "You cannot post internal comments",
            reason_code=DenyReason.role_insufficient.value,
        )
    comment = TicketComment(
        ticket_id=ticket.id,
        user_id=actor.id,
        content=payload.content,
        comment_type=CommentType.comment,
        is_internal=payload.is_internal,
        meta={},
        created_at=utcnow(),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info("Comment added: %s on %s", comment.id, ticket.ticket_number)
    notifications_service.notify_ticket_commented(
        db,
        ticket,
        payload.content,
        actor=actor,
        is_internal=payload.is_internal,
    )
    return comment


def list_comments(db: Session, ticket_id: UUID | str, *, actor: User) -> list[TicketComment]:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    comments = (
        db.query(TicketComment)
        .filter(TicketComment.ticket_id == ticket.id)
        .order_by(TicketComment.created_at.asc())
        .all()
    )
    if can_view_internal_comments(actor):
        return comments
    return [comment for comment in comments if not comment.is_internal]


def delete_ticket(db: Session, ticket_id: UUID | str, *, actor: User) -> None:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    ensure_allowed(can_delete_ticket(actor))
    ticket.deleted_at = utcnow()
    db.commit()
    logger.info("Ticket deleted: %s by %s", ticket.ticket_number, actor.id)
