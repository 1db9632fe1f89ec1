"""User lookup and management endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from helpdesk.core.deps import get_current_user
from helpdesk.core.rate_limit import rate_limit
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.user import UserDepartmentUpdate, UserOut, UserRoleUpdate
from helpdesk.services import users as user_service

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=list[UserOut])
def get_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)) -> list[UserOut]:
    return [UserOut.model_validate(u) for u in user_service.list_users(db, actor=current_user)]


@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)


@router.get("/assignable", response_model=list[UserOut])
def get_assignable(
    department_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserOut]:
    users = user_service.list_assignable_users(db, actor=current_user, department_id=department_id)
    return [UserOut.model_validate(u) for u in users]


@router.get("/search", response_model=list[UserOut])
def search(
    q: str = Query(..., min_length=1, max_length=100),
    department_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserOut]:
    users = user_service.search_users(db, q, actor=current_user, department_id=department_id)
    return [UserOut.model_validate(u) for u in users]


@router.get("/department/{department_id}", response_model=list[UserOut])
def get_department_users(
    department_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[UserOut]:
    users = user_service.list_users_by_department(db, department_id, actor=current_user)
    return [UserOut.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    return UserOut.model_validate(user_service.get_user(db, user_id, actor=current_user))


@router.patch("/{user_id}/role", response_model=UserOut)
def set_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    return UserOut.model_validate(user_service.update_role(db, user_id, payload.role, actor=current_user))


@router.patch("/{user_id}/department", response_model=UserOut)
def set_department(
    user_id: UUID,
    payload: UserDepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> UserOut:
    user = user_service.update_department(db, user_id, payload.department_id, actor=current_user)
    return UserOut.model_validate(user)
