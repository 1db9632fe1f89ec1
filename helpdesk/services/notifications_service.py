"""Service helpers for notifications CRUD, read-state updates and ticket dispatch."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from helpdesk.core.exceptions import NotFoundError
from helpdesk.models.enums import NotificationType, TicketStatus, UserRole
from helpdesk.models.notification import Notification
from helpdesk.models.user import User
from helpdesk.services.lifecycle import EXIT_STATUSES

logger = logging.getLogger(__name__)

COMMENT_PREVIEW_LEN = 100


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def list_notifications(
    db: Session,
    *,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read_at.is_(None))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def count_unread_notifications(db: Session, *, user_id: UUID) -> int:
    return db.query(Notification).filter(Notification.user_id == user_id, Notification.read_at.is_(None)).count()


def create_notification(
    db: Session,
    *,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str | None = None,
    data: dict[str, Any] | None = None,
    commit: bool = True,
) -> Notification:
    record = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data or {},
        created_at=utcnow(),
    )
    db.add(record)
    if commit:
        db.commit()
        db.refresh(record)
    return record


def mark_notification_as_read(
    db: Session,
    *,
    user_id: UUID,
    notification_id: UUID,
) -> Notification:
    record = db.get(Notification, notification_id)
    if not record or str(record.user_id) != str(user_id):
        raise NotFoundError("notification_not_found")
    if record.read_at is None:
        record.read_at = utcnow()
        db.commit()
        db.refresh(record)
    return record


def mark_all_notifications_as_read(db: Session, *, user_id: UUID) -> int:
    now = utcnow()
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
        .update({"read_at": now}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


# ===== TICKET DISPATCH =====


def _ticket_data(ticket: Any, **extra: Any) -> dict[str, Any]:
    data = {"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number}
    data.update({key: value for key, value in extra.items() if value is not None})
    return data


def _recipients(ids: Iterable[Any], *, exclude: Any = None) -> list[Any]:
    seen: set[str] = set()
    result = []
    for value in ids:
        if value is None:
            continue
        key = str(value)
        if key in seen or (exclude is not None and key == str(exclude)):
            continue
        seen.add(key)
        result.append(value)
    return result


def _department_leader_ids(db: Session, department_id: Any) -> list[Any]:
    if department_id is None:
        return []
    rows = (
        db.query(User.id)
        .filter(
            User.department_id == department_id,
            User.role.in_([UserRole.manager, UserRole.team_lead]),
            User.is_active.is_(True),
        )
        .all()
    )
    return [row[0] for row in rows]


def _dispatch(
    db: Session,
    recipients: list[Any],
    *,
    type: NotificationType,
    title: str,
    message: str,
    data: dict[str, Any],
) -> int:
    """Write one notification per recipient; failures are logged and swallowed."""
    if not recipients:
        return 0
    try:
        for user_id in recipients:
            create_notification(db, user_id=user_id, type=type, title=title, message=message, data=data, commit=False)
        db.commit()
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        logger.warning("Notification dispatch failed (%s): %s", type.value, exc)
        return 0
    return len(recipients)


def notify_ticket_assigned(db: Session, ticket: Any, assignee: Any, *, actor: Any) -> int:
    recipients = _recipients([assignee.id], exclude=actor.id)
    return _dispatch(
        db,
        recipients,
        type=NotificationType.ticket_assigned,
        title="New Ticket Assigned",
        message=f"You have been assigned ticket {ticket.ticket_number}: {ticket.title}",
        data=_ticket_data(ticket, assigned_by=getattr(actor, "display_name", None)),
    )


def notify_ticket_updated(db: Session, ticket: Any, *, actor: Any) -> int:
    recipients = _recipients([ticket.requester_id, ticket.assignee_id], exclude=actor.id)
    actor_name = getattr(actor, "display_name", None) or "a team member"
    return _dispatch(
        db,
        recipients,
        type=NotificationType.ticket_updated,
        title="Ticket Updated",
        message=f"Ticket {ticket.ticket_number} has been updated by {actor_name}",
        data=_ticket_data(ticket, updated_by=getattr(actor, "display_name", None)),
    )


def notify_ticket_commented(db: Session, ticket: Any, content: str, *, actor: Any, is_internal: bool = False) -> int:
    candidates = [ticket.assignee_id] if is_internal else [ticket.requester_id, ticket.assignee_id]
    recipients = _recipients(candidates, exclude=actor.id)
    preview = content if len(content) <= COMMENT_PREVIEW_LEN else content[:COMMENT_PREVIEW_LEN] + "..."
    actor_name = getattr(actor, "display_name", None) or "Someone"
    return _dispatch(
        db,
        recipients,
        type=NotificationType.ticket_commented,
        title="New Comment",
        message=f"{actor_name} commented on ticket {ticket.ticket_number}: {preview}",
        data=_ticket_data(ticket, commented_by=getattr(actor, "display_name", None)),
    )


def notify_ticket_status_changed(
    db: Session,
    ticket: Any,
    previous: TicketStatus,
    status: TicketStatus,
    *,
    actor: Any,
) -> int:
    """Requester and assignee hear about every change; leaders only about exits."""
    candidates = [ticket.requester_id, ticket.assignee_id]
    try:
        if status in EXIT_STATUSES:
            candidates.extend(_department_leader_ids(db, ticket.department_id))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Department leader lookup failed for ticket %s: %s", ticket.id, exc)
    recipients = _recipients(candidates, exclude=actor.id)
    if status == TicketStatus.resolved:
        type_ = NotificationType.ticket_resolved
    elif status == TicketStatus.closed:
        type_ = NotificationType.ticket_closed
    else:
        type_ = NotificationType.ticket_status_changed
    return _dispatch(
        db,
        recipients,
        type=type_,
        title="Ticket Status Changed",
        message=f"Ticket {ticket.ticket_number} changed from {previous.value} to {status.value}",
        data=_ticket_data(ticket, previous_status=previous.value, status=status.value),
    )
