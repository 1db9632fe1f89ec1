"""Administrative endpoints: bulk ticket operations, escalation, team workload and department reports."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_user
from helpdesk.core.rate_limit import rate_limit
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.admin import (
    BulkAssignRequest,
    BulkOperationResult,
    BulkStatusRequest,
    BulkTransferRequest,
    DepartmentAnalyticsOut,
    DepartmentDashboardOut,
    TeamMemberOut,
    TeamWorkloadOut,
)
from helpdesk.schemas.ticket import TicketCommentOut, TicketEscalate, TicketEscalationOut, TicketOut
from helpdesk.services import admin as admin_service

router = APIRouter()
bulk_limit = Depends(rate_limit("bulk"))


@router.post("/tickets/bulk-assign", response_model=BulkOperationResult, dependencies=[bulk_limit])
def bulk_assign(
    payload: BulkAssignRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BulkOperationResult:
    return admin_service.bulk_assign_tickets(
        db,
        payload.ticket_ids,
        payload.assignee_id,
        actor=current_user,
        reason=payload.reason,
    )


@router.post("/tickets/bulk-status", response_model=BulkOperationResult, dependencies=[bulk_limit])
def bulk_status(
    payload: BulkStatusRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BulkOperationResult:
    return admin_service.bulk_update_status(
        db,
        payload.ticket_ids,
        payload.status,
        actor=current_user,
        reason=payload.reason,
    )


@router.post("/tickets/transfer", response_model=BulkOperationResult, dependencies=[bulk_limit])
def bulk_transfer(
    payload: BulkTransferRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BulkOperationResult:
    return admin_service.transfer_tickets(
        db,
        payload.ticket_ids,
        payload.target_department_id,
        actor=current_user,
        reason=payload.reason,
        maintain_assignee=payload.maintain_assignee,
    )


@router.post("/tickets/{ticket_id}/escalate", response_model=TicketEscalationOut, dependencies=[Depends(rate_limit())])
def escalate(
    ticket_id: UUID,
    payload: TicketEscalate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TicketEscalationOut:
    result = admin_service.escalate_ticket(
        db,
        ticket_id,
        actor=current_user,
        reason=payload.reason,
        escalate_to=payload.escalate_to,
        priority=payload.priority,
    )
    return TicketEscalationOut(
        ticket=TicketOut.model_validate(result["ticket"]),
        comment=TicketCommentOut.model_validate(result["comment"]),
        escalated_to=result["escalated_to"],
    )


@router.get("/departments/{department_id}/team", response_model=list[TeamMemberOut], dependencies=[Depends(rate_limit())])
def department_team(
    department_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[TeamMemberOut]:
    return [TeamMemberOut(**member) for member in admin_service.get_department_team(db, department_id, actor=current_user)]


@router.get("/departments/{department_id}/workload", response_model=TeamWorkloadOut, dependencies=[Depends(rate_limit())])
def department_workload(
    department_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> TeamWorkloadOut:
    return TeamWorkloadOut(**admin_service.get_team_workload(db, department_id, actor=current_user))


@router.get(
    "/departments/{department_id}/dashboard",
    response_model=DepartmentDashboardOut,
    dependencies=[Depends(rate_limit())],
)
def department_dashboard(
    department_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DepartmentDashboardOut:
    report = admin_service.get_department_dashboard(db, department_id, actor=current_user)
    return DepartmentDashboardOut.model_validate(report, from_attributes=True)


@router.get(
    "/departments/{department_id}/analytics",
    response_model=DepartmentAnalyticsOut,
    dependencies=[Depends(rate_limit())],
)
def department_analytics(
    department_id: UUID,
    period: str = "30d",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DepartmentAnalyticsOut:
    report = admin_service.get_department_analytics(db, department_id, actor=current_user, period=period)
    return DepartmentAnalyticsOut(**report)
