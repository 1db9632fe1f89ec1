"""Category CRUD scoped to departments."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from helpdesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from helpdesk.core.rbac import ManageOp, can_manage_department_or_category, ensure_allowed
from helpdesk.models.department import Category, Department
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import User
from helpdesk.schemas.department import CategoryCreate, CategoryUpdate
from helpdesk.services.lifecycle import ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def list_categories(
    db: Session,
    *,
    department_id: UUID | None = None,
    active_only: bool = False,
) -> list[Category]:
    query = db.query(Category)
    if department_id is not None:
        query = query.filter(Category.department_id == department_id)
    if active_only:
        query = query.filter(Category.is_active.is_(True))
    return query.order_by(Category.name.asc()).all()


def get_category(db: Session, category_id: UUID | str) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise NotFoundError("category_not_found")
    return category


def _active_department(db: Session, department_id: UUID) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise NotFoundError("department_not_found")
    if not department.is_active:
        raise BadRequestError("department_inactive")
    return department


def _ensure_unique_name(db: Session, name: str, department_id: Any, *, exclude_id: Any = None) -> None:
    """Category names are unique within a department, ignoring case."""
    wanted = name.casefold()
    rows = db.query(Category).filter(Category.department_id == department_id).all()
    for category in rows:
        if (
            str(category.department_id) == str(department_id)
            and category.name.casefold() == wanted
            and str(category.id) != str(exclude_id)
        ):
            raise ConflictError("category_name_taken", details={"name": name})


def create_category(db: Session, payload: CategoryCreate, *, actor: User) -> Category:
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.create))
    _active_department(db, payload.department_id)
    _ensure_unique_name(db, payload.name, payload.department_id)
    category = Category(
        name=payload.name,
        description=payload.description,
        department_id=payload.department_id,
        is_active=True,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("Category created: %s (%s) by %s", category.id, category.name, actor.id)
    return category


def update_category(db: Session, category_id: UUID | str, payload: CategoryUpdate, *, actor: User) -> Category:
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.update))
    category = get_category(db, category_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("department_id") is not None:
        _active_department(db, changes["department_id"])
    if changes.get("name") is not None or changes.get("department_id") is not None:
        _ensure_unique_name(
            db,
            changes.get("name") or category.name,
            changes.get("department_id") or category.department_id,
            exclude_id=category.id,
        )
    for field in ("name", "description", "department_id", "is_active"):
        if changes.get(field) is not None:
            setattr(category, field, changes[field])
    db.commit()
    db.refresh(category)
    logger.info("Category updated: %s by %s", category.id, actor.id)
    return category


def category_dependents(db: Session, category_id: UUID) -> dict[str, int]:
    active_tickets = (
        db.query(Ticket)
        .filter(
            Ticket.category_id == category_id,
            Ticket.status.in_(ACTIVE_STATUSES),
            Ticket.deleted_at.is_(None),
        )
        .count()
    )
    return {"tickets": active_tickets}


def delete_category(db: Session, category_id: UUID | str, *, actor: User) -> Category:
    """Deactivate a category that no open work references."""
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.delete))
    category = get_category(db, category_id)
    ensure_allowed(
        can_manage_department_or_category(actor, ManageOp.delete, dependents=category_dependents(db, category.id))
    )
    category.is_active = False
    db.commit()
    logger.info("Category deactivated: %s by %s", category.id, actor.id)
    return category
