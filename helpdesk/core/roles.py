"""Role hierarchy: authority ranking and role groupings used by the RBAC policy."""

from __future__ import annotations

from helpdesk.models.enums import UserRole

ROLE_RANK: dict[UserRole, int] = {
    UserRole.end_user: 0,
    UserRole.agent: 1,
    UserRole.team_lead: 2,
    UserRole.manager: 3,
    UserRole.admin: 4,
    UserRole.super_admin: 5,
}

# Roles that bypass department and ownership scoping.
SUPER_ROLES = frozenset({UserRole.admin, UserRole.super_admin})
# Roles scoped to their own department only.
DEPARTMENT_ROLES = frozenset({UserRole.manager, UserRole.team_lead})
ASSIGNER_ROLES = frozenset({UserRole.team_lead, UserRole.manager, UserRole.admin, UserRole.super_admin})
DELETER_ROLES = frozenset({UserRole.manager, UserRole.admin, UserRole.super_admin})
STAFF_ROLES = frozenset(role for role in UserRole if role != UserRole.end_user)


def coerce_role(value: UserRole | str | None) -> UserRole | None:
    if value is None or isinstance(value, UserRole):
        return value
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        return None


def role_rank(role: UserRole | str | None) -> int:
    return ROLE_RANK.get(coerce_role(role), -1)


def is_super_role(role: UserRole | str | None) -> bool:
    return coerce_role(role) in SUPER_ROLES


def has_role_at_least(role: UserRole | str | None, minimum: UserRole) -> bool:
    return role_rank(role) >= ROLE_RANK[minimum]
