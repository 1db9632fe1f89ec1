"""Ticket API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_user
from helpdesk.core.rate_limit import rate_limit
from helpdesk.db.session import get_db
from helpdesk.models.enums import TicketStatus
from helpdesk.models.user import User
from helpdesk.schemas.ticket import (
    TicketAssign,
    TicketCommentCreate,
    TicketCommentOut,
    TicketCreate,
    TicketDetailOut,
    TicketOut,
    TicketPage,
    TicketStats,
    TicketUpdate,
)
from helpdesk.services import tickets as ticket_service

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=TicketPage)
def get_tickets(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    assignee_id: UUID | None = Query(default=None),
    department_id: UUID | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    tags: list[str] | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketPage:
    result = ticket_service.list_tickets_for_user(
        db,
        current_user,
        page=page,
        limit=limit,
        status=status_filter,
        assignee_id=assignee_id,
        department_id=department_id,
        search=search,
        tags=tags,
    )
    return TicketPage(
        tickets=[TicketOut.model_validate(ticket) for ticket in result["tickets"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
    )


@router.get("/stats", response_model=TicketStats)
def get_stats(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> TicketStats:
    return TicketStats(**ticket_service.get_ticket_stats(db, current_user))


@router.post("/", response_model=TicketOut, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketOut:
    return TicketOut.model_validate(ticket_service.create_ticket(db, payload, actor=current_user))


@router.get("/{ticket_id}", response_model=TicketDetailOut)
def get_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketDetailOut:
    ticket = ticket_service.get_ticket_for_user(db, ticket_id, current_user)
    comments = ticket_service.list_comments(db, ticket.id, actor=current_user)
    return TicketDetailOut(
        **TicketOut.model_validate(ticket).model_dump(),
        comments=[TicketCommentOut.model_validate(comment) for comment in comments],
    )


@router.patch("/{ticket_id}", response_model=TicketOut)
def patch_ticket(
    ticket_id: UUID,
    payload: TicketUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketOut:
    return TicketOut.model_validate(ticket_service.update_ticket(db, ticket_id, payload, actor=current_user))


@router.post("/{ticket_id}/assign", response_model=TicketOut)
def assign_ticket(
    ticket_id: UUID,
    payload: TicketAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketOut:
    return TicketOut.model_validate(ticket_service.assign_ticket(db, ticket_id, payload, actor=current_user))


@router.get("/{ticket_id}/comments", response_model=list[TicketCommentOut])
def get_comments(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[TicketCommentOut]:
    comments = ticket_service.list_comments(db, ticket_id, actor=current_user)
    return [TicketCommentOut.model_validate(comment) for comment in comments]


@router.post("/{ticket_id}/comments", response_model=TicketCommentOut, status_code=status.HTTP_201_CREATED)
def post_comment(
    ticket_id: UUID,
    payload: TicketCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketCommentOut:
    return TicketCommentOut.model_validate(ticket_service.add_comment(db, ticket_id, payload, actor=current_user))


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def delete_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    ticket_service.delete_ticket(db, ticket_id, actor=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
