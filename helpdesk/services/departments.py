"""Department CRUD, hierarchy and deletion guards."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from helpdesk.core.exceptions import BadRequestError, ConflictError, NotFoundError
from helpdesk.core.rbac import ManageOp, can_manage_department_or_category, ensure_allowed
from helpdesk.models.department import Department
from helpdesk.models.user import User
from helpdesk.schemas.department import DepartmentCreate, DepartmentUpdate

logger = logging.getLogger(__name__)


def list_departments(db: Session, *, active_only: bool = False) -> list[Department]:
    query = db.query(Department)
    if active_only:
        query = query.filter(Department.is_active.is_(True))
    return query.order_by(Department.name.asc()).all()


def get_department(db: Session, department_id: UUID | str) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise NotFoundError("department_not_found")
    return department


def _parent_map(db: Session) -> dict[str, str | None]:
    rows = db.query(Department.id, Department.parent_id).all()
    return {str(row[0]): str(row[1]) if row[1] else None for row in rows}


def would_create_cycle(department_id: Any, parent_id: Any, parents: Mapping[str, str | None]) -> bool:
    """True when ``parent_id`` is ``department_id`` or one of its descendants."""
    target = str(department_id)
    current = str(parent_id) if parent_id is not None else None
    seen: set[str] = set()
    while current is not None:
        if current == target:
            return True
        if current in seen:
            # existing data already loops; refuse to extend it
            return True
        seen.add(current)
        current = parents.get(current)
    return False


def _ensure_unique_name(db: Session, name: str, *, exclude_id: Any = None) -> None:
    wanted = name.casefold()
    for department in db.query(Department).all():
        if department.name.casefold() == wanted and str(department.id) != str(exclude_id):
            raise ConflictError("department_name_taken", details={"name": name})


def _active_parent(db: Session, parent_id: UUID) -> Department:
    parent = db.get(Department, parent_id)
    if parent is None:
        raise NotFoundError("parent_department_not_found")
    if not parent.is_active:
        raise BadRequestError("parent_department_inactive")
    return parent


def create_department(db: Session, payload: DepartmentCreate, *, actor: User) -> Department:
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.create))
    _ensure_unique_name(db, payload.name)
    if payload.parent_id is not None:
        _active_parent(db, payload.parent_id)
    department = Department(
        name=payload.name,
        description=payload.description,
        parent_id=payload.parent_id,
        is_active=True,
    )
    db.add(department)
    db.commit()
    db.refresh(department)
    logger.info("Department created: %s (%s) by %s", department.id, department.name, actor.id)
    return department


def update_department(db: Session, department_id: UUID | str, payload: DepartmentUpdate, *, actor: User) -> Department:
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.update))
    department = get_department(db, department_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("name") is not None:
        _ensure_unique_name(db, changes["name"], exclude_id=department.id)
    if changes.get("parent_id") is not None:
        parent_id = changes["parent_id"]
        if str(parent_id) == str(department.id):
            raise BadRequestError("department_cannot_be_own_parent")
        _active_parent(db, parent_id)
        if would_create_cycle(department.id, parent_id, _parent_map(db)):
            raise BadRequestError("department_hierarchy_cycle")
        department.parent_id = parent_id
    elif "parent_id" in changes:
        department.parent_id = None

    for field in ("name", "description", "is_active"):
        if changes.get(field) is not None:
            setattr(department, field, changes[field])
    db.commit()
    db.refresh(department)
    logger.info("Department updated: %s by %s", department.id, actor.id)
    return department


def department_dependents(db: Session, department_id: UUID) -> dict[str, int]:
    return {
        "child_departments": db.query(Department)
        .filter(Department.parent_id == department_id, Department.is_active.is_(True))
        .count(),
        "users": db.query(User).filter(User.department_id == department_id, User.is_active.is_(True)).count(),
    }


def delete_department(db: Session, department_id: UUID | str, *, actor: User) -> Department:
    """Deactivate a department; rows are never hard-deleted."""
    ensure_allowed(can_manage_department_or_category(actor, ManageOp.delete))
    department = get_department(db, department_id)
    decision = can_manage_department_or_category(
        actor,
        ManageOp.delete,
        dependents=department_dependents(db, department.id),
    )
    if not decision:
        logger.warning("Department delete refused: %s (%s)", department.id, decision.message)
    ensure_allowed(decision)
    department.is_active = False
    db.commit()
    logger.info("Department deactivated: %s by %s", department.id, actor.id)
    return department


def build_hierarchy(departments: list[Any]) -> list[dict[str, Any]]:
    nodes: dict[str, dict[str, Any]] = {}
    for department in departments:
        nodes[str(department.id)] = {
            "id": department.id,
            "name": department.name,
            "description": department.description,
            "is_active": department.is_active,
            "parent_id": department.parent_id,
            "created_at": getattr(department, "created_at", None),
            "children": [],
        }
    roots = []
    for department in departments:
        node = nodes[str(department.id)]
        parent = nodes.get(str(department.parent_id)) if department.parent_id else None
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


def get_hierarchy(db: Session) -> list[dict[str, Any]]:
    return build_hierarchy(list_departments(db))
