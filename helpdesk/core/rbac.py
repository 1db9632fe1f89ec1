"""Centralized RBAC policy and ticket scope helpers.

Every ``can_*`` function is a pure predicate over an actor and a target. It
always returns a :class:`Decision` and never raises for valid inputs; a deny
carries a machine-checkable :class:`DenyReason`. Callers translate a deny into
``ForbiddenError`` (see :func:`ensure_allowed`).

Actors and tickets are duck-typed: ORM rows, ``SimpleNamespace`` records or the
boundary dataclasses :class:`Actor` / :class:`TicketRef` all work, as long as
they expose ``id``/``role``/``department_id`` and
``department_id``/``requester_id``/``assignee_id``/``created_by_id``/``status``.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from helpdesk.core.exceptions import ForbiddenError
from helpdesk.core.roles import (
    ASSIGNER_ROLES,
    DELETER_ROLES,
    DEPARTMENT_ROLES,
    SUPER_ROLES,
    coerce_role,
    has_role_at_least,
    role_rank,
)
from helpdesk.models.enums import TicketStatus, UserRole

T = TypeVar("T")

END_USER_LOCKED_STATUSES = frozenset({TicketStatus.closed, TicketStatus.resolved})


class DenyReason(str, enum.Enum):
    department_mismatch = "DEPARTMENT_MISMATCH"
    no_relationship = "NO_RELATIONSHIP"
    role_insufficient = "ROLE_INSUFFICIENT"
    ticket_closed = "TICKET_CLOSED"
    has_active_dependents = "HAS_ACTIVE_DEPENDENTS"


class ManageOp(str, enum.Enum):
    create = "create"
    update = "update"
    delete = "delete"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def reason_code(self) -> str | None:
        return self.reason.value if self.reason else None

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "reason_code": self.reason_code}


ALLOW = Decision(allowed=True)


def _deny(reason: DenyReason, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


@dataclass(frozen=True)
class Actor:
    """Who is asking."""

    id: Any
    role: UserRole
    department_id: Any = None


@dataclass(frozen=True)
class TicketRef:
    """The slice of a ticket the policy looks at."""

    department_id: Any = None
    requester_id: Any = None
    assignee_id: Any = None
    created_by_id: Any = None
    status: TicketStatus | None = None


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def _role(actor: Any) -> UserRole | None:
    return coerce_role(getattr(actor, "role", None))


def _status(ticket: Any) -> TicketStatus | None:
    value = getattr(ticket, "status", None)
    if value is None or isinstance(value, TicketStatus):
        return value
    try:
        return TicketStatus(str(value))
    except ValueError:
        return None


def _in_department(actor: Any, department_id: Any) -> bool:
    return _same_id(getattr(actor, "department_id", None), department_id)


def _is_related(actor: Any, ticket: Any, *, include_assignee: bool) -> bool:
    actor_id = getattr(actor, "id", None)
    related = [getattr(ticket, "requester_id", None), getattr(ticket, "created_by_id", None)]
    if include_assignee:
        related.append(getattr(ticket, "assignee_id", None))
    return any(_same_id(actor_id, value) for value in related)


def can_access_ticket(actor: Any, ticket: Any) -> Decision:
    role = _role(actor)
    ticket_department = getattr(ticket, "department_id", None)

    if role in SUPER_ROLES:
        return ALLOW

    if role in DEPARTMENT_ROLES:
        if _in_department(actor, ticket_department):
            return ALLOW
        return _deny(DenyReason.department_mismatch, "You do not have access to tickets from other departments")

    if role == UserRole.agent:
        # Department is checked before any ownership field.
        if not _in_department(actor, ticket_department):
            return _deny(DenyReason.department_mismatch, "You can only access tickets from your own department")
        if _is_related(actor, ticket, include_assignee=True):
            return ALLOW
        return _deny(DenyReason.no_relationship, "You can only access tickets assigned to you or created by you")

    if role == UserRole.end_user:
        if _is_related(actor, ticket, include_assignee=False):
            return ALLOW
        return _deny(DenyReason.no_relationship, "You can only access your own tickets")

    return _deny(DenyReason.role_insufficient, "You do not have access to this ticket")


def can_update_ticket(actor: Any, ticket: Any) -> Decision:
    decision = can_access_ticket(actor, ticket)
    if not decision:
        return decision
    if _role(actor) == UserRole.end_user and _status(ticket) in END_USER_LOCKED_STATUSES:
        return _deny(DenyReason.ticket_closed, "Closed or resolved tickets cannot be modified by the requester")
    return ALLOW


def can_list_ticket(actor: Any, ticket: Any) -> Decision:
    """Listing scope.

    Differs from :func:`can_access_ticket` for agents only: an agent also lists
    the unassigned queue of its own department, even though opening one of those
    tickets by id is denied with ``NO_RELATIONSHIP``.
    """
    decision = can_access_ticket(actor, ticket)
    if decision or _role(actor) != UserRole.agent:
        return decision
    if decision.reason == DenyReason.no_relationship and getattr(ticket, "assignee_id", None) is None:
        return ALLOW
    return decision


def filter_tickets_for_user(actor: Any, tickets: Iterable[T]) -> list[T]:
    if _role(actor) in SUPER_ROLES:
        return list(tickets)
    return [ticket for ticket in tickets if can_list_ticket(actor, ticket)]


def can_assign_ticket(actor: Any, ticket: Any = None, assignee: Any = None) -> Decision:
    role = _role(actor)
    if role not in ASSIGNER_ROLES:
        return _deny(DenyReason.role_insufficient, "You do not have permission to assign tickets")
    if role in SUPER_ROLES or ticket is None:
        return ALLOW

    ticket_department = getattr(ticket, "department_id", None)
    if not _in_department(actor, ticket_department):
        return _deny(DenyReason.department_mismatch, "You can only assign tickets in your own department")
    if assignee is not None and not _same_id(getattr(assignee, "department_id", None), ticket_department):
        return _deny(
            DenyReason.department_mismatch,
            "Cannot assign ticket to user from different department",
        )
    return ALLOW


def can_delete_ticket(actor: Any) -> Decision:
    if _role(actor) in DELETER_ROLES:
        return ALLOW
    return _deny(DenyReason.role_insufficient, "You do not have permission to delete tickets")


def can_operate_on_department(actor: Any, department_id: Any) -> Decision:
    role = _role(actor)
    if role in SUPER_ROLES:
        return ALLOW
    if role in DEPARTMENT_ROLES:
        if _in_department(actor, department_id):
            return ALLOW
        return _deny(DenyReason.department_mismatch, "You can only perform operations in your own department")
    return _deny(DenyReason.role_insufficient, "You do not have permission to perform bulk operations")


def can_transfer_ticket_department(actor: Any) -> Decision:
    if _role(actor) in SUPER_ROLES:
        return ALLOW
    return _deny(
        DenyReason.role_insufficient,
        "Only system administrators can transfer tickets between departments",
    )


def can_manage_department_or_category(
    actor: Any,
    op: ManageOp | str,
    dependents: Mapping[str, int] | None = None,
) -> Decision:
    op = ManageOp(op)
    role = _role(actor)

    if op == ManageOp.delete:
        if role != UserRole.super_admin:
            return _deny(DenyReason.role_insufficient, "Only super administrators can delete")
        for kind, count in (dependents or {}).items():
            if count:
                label = kind.replace("_", " ")
                return _deny(DenyReason.has_active_dependents, f"Cannot delete with active {label}")
        return ALLOW

    if role in SUPER_ROLES:
        return ALLOW
    return _deny(DenyReason.role_insufficient, f"You do not have permission to {op.value}")


def can_view_user(actor: Any, user: Any) -> Decision:
    if _role(actor) in SUPER_ROLES:
        return ALLOW
    if _same_id(getattr(actor, "id", None), getattr(user, "id", None)):
        return ALLOW
    if _in_department(actor, getattr(user, "department_id", None)):
        return ALLOW
    return _deny(DenyReason.department_mismatch, "You do not have permission to view this user")


def can_manage_users(actor: Any, new_role: UserRole | str | None = None, target: Any = None) -> Decision:
    """Admins manage users, but never someone who outranks them or into a higher role."""
    role = _role(actor)
    if role not in SUPER_ROLES:
        return _deny(DenyReason.role_insufficient, "You do not have permission to manage users")
    if target is not None and role_rank(getattr(target, "role", None)) > role_rank(role):
        return _deny(DenyReason.role_insufficient, "Cannot modify a user with a higher role")
    if new_role is not None and role_rank(new_role) > role_rank(role):
        return _deny(DenyReason.role_insufficient, "Cannot grant a role above your own")
    return ALLOW


def can_view_internal_comments(actor: Any) -> bool:
    return has_role_at_least(_role(actor), UserRole.agent)


def ensure_allowed(decision: Decision, *, details: dict[str, Any] | None = None) -> None:
    if decision:
        return
    raise ForbiddenError(decision.message or "forbidden", reason_code=decision.reason_code, details=details)
