"""Department and category endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_user
from helpdesk.core.rate_limit import rate_limit
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.department import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    DepartmentCreate,
    DepartmentNode,
    DepartmentOut,
    DepartmentUpdate,
)
from helpdesk.services import categories as category_service
from helpdesk.services import departments as department_service

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])
categories_router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])


@router.get("/", response_model=list[DepartmentOut])
def get_departments(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[DepartmentOut]:
    departments = department_service.list_departments(db, active_only=active_only)
    return [DepartmentOut.model_validate(department) for department in departments]


@router.get("/hierarchy", response_model=list[DepartmentNode])
def get_hierarchy(db: Session = Depends(get_db)) -> list[DepartmentNode]:
    return [DepartmentNode.model_validate(node) for node in department_service.get_hierarchy(db)]


@router.get("/{department_id}", response_model=DepartmentOut)
def get_department(department_id: UUID, db: Session = Depends(get_db)) -> DepartmentOut:
    return DepartmentOut.model_validate(department_service.get_department(db, department_id))


@router.post("/", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def post_department(
    payload: DepartmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DepartmentOut:
    return DepartmentOut.model_validate(department_service.create_department(db, payload, actor=current_user))


@router.patch("/{department_id}", response_model=DepartmentOut)
def patch_department(
    department_id: UUID,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DepartmentOut:
    department = department_service.update_department(db, department_id, payload, actor=current_user)
    return DepartmentOut.model_validate(department)


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def delete_department(
    department_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    department_service.delete_department(db, department_id, actor=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@categories_router.get("/", response_model=list[CategoryOut])
def get_categories(
    department_id: UUID | None = Query(default=None),
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[CategoryOut]:
    categories = category_service.list_categories(db, department_id=department_id, active_only=active_only)
    return [CategoryOut.model_validate(category) for category in categories]


@categories_router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: UUID, db: Session = Depends(get_db)) -> CategoryOut:
    return CategoryOut.model_validate(category_service.get_category(db, category_id))


@categories_router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def post_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryOut:
    return CategoryOut.model_validate(category_service.create_category(db, payload, actor=current_user))


@categories_router.patch("/{category_id}", response_model=CategoryOut)
def patch_category(
    category_id: UUID,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryOut:
    return CategoryOut.model_validate(category_service.update_category(db, category_id, payload, actor=current_user))


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def delete_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    category_service.delete_category(db, category_id, actor=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
