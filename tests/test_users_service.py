from __future__ import annotations

from uuid import uuid4

import pytest

from helpdesk.core.exceptions import ForbiddenError, NotFoundError
from helpdesk.models.department import Department
from helpdesk.models.enums import UserRole
from helpdesk.models.user import User
from helpdesk.services import users

DEPT_A = uuid4()


class _FakeDb:
    def __init__(self, *records):  # noqa: ANN001
        self.records = list(records)
        self.commits = 0

    def get(self, model, ident):  # noqa: ANN001
        for record in self.records:
            if isinstance(record, model) and str(record.id) == str(ident):
                return record
        return None

    def commit(self) -> None:
        self.commits += 1

    def refresh(self, obj) -> None:  # noqa: ANN001
        return None


def _user(role: UserRole, department_id=DEPT_A) -> User:  # noqa: ANN001
    return User(
        id=uuid4(),
        email=f"{uuid4().hex[:8]}@example.com",
        display_name=role.value,
        role=role,
        department_id=department_id,
        is_active=True,
    )


def test_user_visibility_follows_department() -> None:
    agent = _user(UserRole.agent)
    colleague = _user(UserRole.end_user)
    outsider = _user(UserRole.end_user, department_id=uuid4())
    db = _FakeDb(agent, colleague, outsider)

    assert users.get_user(db, colleague.id, actor=agent) is colleague
    assert users.get_user(db, agent.id, actor=agent) is agent
    with pytest.raises(ForbiddenError):
        users.get_user(db, outsider.id, actor=agent)
    with pytest.raises(NotFoundError):
        users.get_user(db, uuid4(), actor=agent)


def test_admin_cannot_grant_super_admin() -> None:
    admin = _user(UserRole.admin)
    target = _user(UserRole.agent)
    db = _FakeDb(admin, target)

    with pytest.raises(ForbiddenError, match="above your own"):
        users.update_role(db, target.id, UserRole.super_admin, actor=admin)

    users.update_role(db, target.id, UserRole.team_lead, actor=admin)
    assert target.role == UserRole.team_lead


def test_department_change_needs_active_department() -> None:
    admin = _user(UserRole.super_admin)
    target = _user(UserRole.agent)
    retired = Department(id=uuid4(), name="Legacy", is_active=False)
    db = _FakeDb(admin, target, retired)

    with pytest.raises(NotFoundError):
        users.update_department(db, target.id, retired.id, actor=admin)

    users.update_department(db, target.id, None, actor=admin)
    assert target.department_id is None


def test_assignable_users_empty_without_department_scope() -> None:
    lead = _user(UserRole.team_lead, department_id=None)
    assert users.list_assignable_users(_FakeDb(lead), actor=lead) == []


def test_admin_cannot_modify_a_super_admin() -> None:
    admin = _user(UserRole.admin)
    boss = _user(UserRole.super_admin)
    db = _FakeDb(admin, boss)

    with pytest.raises(ForbiddenError) as exc:
        users.update_role(db, boss.id, UserRole.end_user, actor=admin)
    assert exc.value.reason_code == "ROLE_INSUFFICIENT"
    with pytest.raises(ForbiddenError, match="higher role"):
        users.update_department(db, boss.id, None, actor=admin)

    assert boss.role == UserRole.super_admin
    assert boss.department_id == DEPT_A
    assert db.commits == 0


def test_super_admin_can_modify_an_admin() -> None:
    boss = _user(UserRole.super_admin)
    admin = _user(UserRole.admin)
    db = _FakeDb(boss, admin)

    users.update_role(db, admin.id, UserRole.manager, actor=boss)
    assert admin.role == UserRole.manager


def test_inactive_user_is_not_found() -> None:
    admin = _user(UserRole.admin)
    former = _user(UserRole.agent)
    former.is_active = False
    db = _FakeDb(admin, former)

    with pytest.raises(NotFoundError) as exc:
        users.get_user(db, former.id, actor=admin)
    assert exc.value.message == "user_not_found"
