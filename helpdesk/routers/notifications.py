"""Notifications API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_user
from helpdesk.core.rate_limit import rate_limit
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.notification import NotificationOut, NotificationUnreadCountOut
from helpdesk.services.notifications_service import (
    count_unread_notifications,
    list_notifications,
    mark_all_notifications_as_read,
    mark_notification_as_read,
)

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=list[NotificationOut])
def get_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[NotificationOut]:
    records = list_notifications(db, user_id=current_user.id, unread_only=unread_only, limit=limit)
    return [NotificationOut.model_validate(record) for record in records]


@router.get("/unread-count", response_model=NotificationUnreadCountOut)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationUnreadCountOut:
    return NotificationUnreadCountOut(count=count_unread_notifications(db, user_id=current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def read_notification(
    notification_id: UUID = Path(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationOut:
    record = mark_notification_as_read(db, user_id=current_user.id, notification_id=notification_id)
    return NotificationOut.model_validate(record)


@router.post("/read-all")
def read_all_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, int]:
    return {"updated": mark_all_notifications_as_read(db, user_id=current_user.id)}
