"""Service helpers for user lookup and admin user management."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from helpdesk.core.exceptions import NotFoundError
from helpdesk.core.rbac import can_manage_users, can_operate_on_department, can_view_user, ensure_allowed
from helpdesk.core.roles import STAFF_ROLES, is_super_role
from helpdesk.models.department import Department
from helpdesk.models.enums import UserRole
from helpdesk.models.user import User

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def list_users(db: Session, *, actor: User) -> list[User]:
    ensure_allowed(can_manage_users(actor))
    return db.query(User).order_by(User.created_at.desc()).all()


def list_users_by_department(db: Session, department_id: UUID, *, actor: User) -> list[User]:
    ensure_allowed(can_operate_on_department(actor, department_id))
    return (
        db.query(User)
        .filter(User.department_id == department_id, User.is_active.is_(True))
        .order_by(User.display_name.asc())
        .all()
    )


def _scoped_department(actor: User, department_id: UUID | None) -> UUID | None:
    if department_id is not None:
        ensure_allowed(can_operate_on_department(actor, department_id))
        return department_id
    if is_super_role(actor.role):
        return None
    return actor.department_id


def list_assignable_users(db: Session, *, actor: User, department_id: UUID | None = None) -> list[User]:
    """Active staff a ticket can be assigned to; non-admins see their own department."""
    scope = _scoped_department(actor, department_id)
    if scope is None and not is_super_role(actor.role):
        return []
    query = db.query(User).filter(User.is_active.is_(True), User.role.in_(list(STAFF_ROLES)))
    if scope is not None:
        query = query.filter(User.department_id == scope)
    return query.order_by(User.display_name.asc()).all()


def search_users(db: Session, term: str, *, actor: User, department_id: UUID | None = None) -> list[User]:
    scope = _scoped_department(actor, department_id)
    if scope is None and not is_super_role(actor.role):
        return []
    pattern = f"%{term.strip()}%"
    query = db.query(User).filter(
        User.is_active.is_(True),
        or_(User.display_name.ilike(pattern), User.email.ilike(pattern)),
    )
    if scope is not None:
        query = query.filter(User.department_id == scope)
    return query.order_by(User.display_name.asc()).limit(SEARCH_LIMIT).all()


def get_user(db: Session, user_id: UUID | str, *, actor: User) -> User:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning("User lookup failed (not found): %s", user_id)
        raise NotFoundError("user_not_found")
    ensure_allowed(can_view_user(actor, user))
    return user


def update_role(db: Session, user_id: UUID | str, role: UserRole, *, actor: User) -> User:
    ensure_allowed(can_manage_users(actor, role))
    user = db.get(User, user_id)
    if user is None:
        logger.warning("User role update failed (not found): %s", user_id)
        raise NotFoundError("user_not_found")
    ensure_allowed(can_manage_users(actor, role, target=user))
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("User role updated: %s -> %s by %s", user.email, role.value, actor.id)
    return user


def update_department(db: Session, user_id: UUID | str, department_id: UUID | None, *, actor: User) -> User:
    ensure_allowed(can_manage_users(actor))
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("user_not_found")
    ensure_allowed(can_manage_users(actor, target=user))
    if department_id is not None:
        department = db.get(Department, department_id)
        if department is None or not department.is_active:
            raise NotFoundError("department_not_found")
    user.department_id = department_id
    db.commit()
    db.refresh(user)
    logger.info("User department updated: %s -> %s by %s", user.email, department_id, actor.id)
    return user
