from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from helpdesk.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from helpdesk.models.department import Category, Department
from helpdesk.models.enums import UserRole
from helpdesk.schemas.department import CategoryCreate, CategoryUpdate, DepartmentCreate, DepartmentUpdate
from helpdesk.services import categories, departments


class _Query:
    def __init__(self, rows=None, *, count=0):  # noqa: ANN001
        self._rows = list(rows or [])
        self._count = count

    def filter(self, *args, **kwargs):  # noqa: ANN001
        return self

    def order_by(self, *args, **kwargs):  # noqa: ANN001
        return self

    def all(self):  # noqa: ANN201
        return list(self._rows)

    def count(self) -> int:
        return self._count


class _FakeDb:
    def __init__(self, *records, counts=None):  # noqa: ANN001
        self.records = list(records)
        self.counts = dict(counts or {})
        self.commits = 0

    def get(self, model, ident):  # noqa: ANN001
        for record in self.records:
            if isinstance(record, model) and str(record.id) == str(ident):
                return record
        return None

    def query(self, *entities):  # noqa: ANN001
        model = entities[0]
        if len(entities) == 2:
            return _Query([(d.id, d.parent_id) for d in self.records if isinstance(d, Department)])
        return _Query(
            [r for r in self.records if isinstance(r, model)],
            count=self.counts.get(model.__name__, 0),
        )

    def add(self, obj) -> None:  # noqa: ANN001
        if getattr(obj, "id", None) is None:
            obj.id = uuid4()
        self.records.append(obj)

    def commit(self) -> None:
        self.commits += 1

    def refresh(self, obj) -> None:  # noqa: ANN001
        return None


def _actor(role: UserRole) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=role, department_id=None)


def _department(name: str, parent=None, *, is_active: bool = True) -> Department:  # noqa: ANN001
    return Department(id=uuid4(), name=name, parent_id=parent.id if parent else None, is_active=is_active)


def test_would_create_cycle_walks_ancestors() -> None:
    parents = {"root": None, "child": "root", "grandchild": "child"}

    assert departments.would_create_cycle("root", "grandchild", parents)
    assert departments.would_create_cycle("child", "child", parents)
    assert not departments.would_create_cycle("grandchild", "root", parents)
    assert not departments.would_create_cycle("child", None, parents)


def test_would_create_cycle_stops_on_corrupt_loops() -> None:
    parents = {"a": "b", "b": "a"}
    assert departments.would_create_cycle("x", "a", parents)


def test_update_rejects_moving_under_a_descendant() -> None:
    admin = _actor(UserRole.admin)
    root = _department("IT")
    child = _department("Networking", root)
    grandchild = _department("Wi-Fi", child)
    db = _FakeDb(root, child, grandchild)

    with pytest.raises(BadRequestError, match="department_hierarchy_cycle"):
        departments.update_department(db, root.id, DepartmentUpdate(parent_id=grandchild.id), actor=admin)
    with pytest.raises(BadRequestError, match="department_cannot_be_own_parent"):
        departments.update_department(db, root.id, DepartmentUpdate(parent_id=root.id), actor=admin)
    assert root.parent_id is None


def test_create_requires_active_parent() -> None:
    admin = _actor(UserRole.super_admin)
    retired = _department("Legacy", is_active=False)
    db = _FakeDb(retired)

    with pytest.raises(NotFoundError):
        departments.create_department(db, DepartmentCreate(name="HR", parent_id=uuid4()), actor=admin)
    with pytest.raises(BadRequestError, match="parent_department_inactive"):
        departments.create_department(db, DepartmentCreate(name="HR", parent_id=retired.id), actor=admin)

    created = departments.create_department(db, DepartmentCreate(name="  Human   Resources "), actor=admin)
    assert created.name == "Human Resources"
    assert created.is_active


@pytest.mark.parametrize("role", [UserRole.manager, UserRole.team_lead, UserRole.agent])
def test_only_admins_manage_departments(role: UserRole) -> None:
    with pytest.raises(ForbiddenError):
        departments.create_department(_FakeDb(), DepartmentCreate(name="HR"), actor=_actor(role))


def test_delete_is_super_admin_only_and_guarded_by_dependents() -> None:
    department = _department("IT")

    with pytest.raises(ForbiddenError, match="Only super administrators can delete"):
        departments.delete_department(_FakeDb(department), department.id, actor=_actor(UserRole.admin))

    busy = _FakeDb(department, counts={"User": 3})
    with pytest.raises(ForbiddenError) as exc_info:
        departments.delete_department(busy, department.id, actor=_actor(UserRole.super_admin))
    assert exc_info.value.reason_code == "HAS_ACTIVE_DEPENDENTS"
    assert department.is_active

    departments.delete_department(_FakeDb(department), department.id, actor=_actor(UserRole.super_admin))
    assert department.is_active is False


def test_build_hierarchy_nests_children_under_parents() -> None:
    root = _department("IT")
    child = _department("Networking", root)
    orphan = Department(id=uuid4(), name="Orphan", parent_id=uuid4(), is_active=True)

    tree = departments.build_hierarchy([root, child, orphan])

    assert [node["name"] for node in tree] == ["IT", "Orphan"]
    assert [node["name"] for node in tree[0]["children"]] == ["Networking"]


def test_category_requires_active_department() -> None:
    admin = _actor(UserRole.admin)
    retired = _department("Legacy", is_active=False)
    db = _FakeDb(retired)

    with pytest.raises(NotFoundError):
        categories.create_category(db, CategoryCreate(name="Printers", department_id=uuid4()), actor=admin)
    with pytest.raises(BadRequestError, match="department_inactive"):
        categories.create_category(db, CategoryCreate(name="Printers", department_id=retired.id), actor=admin)


def test_category_delete_blocked_by_open_tickets() -> None:
    category = Category(id=uuid4(), name="Printers", department_id=uuid4(), is_active=True)

    with pytest.raises(ForbiddenError, match="Cannot delete with active tickets"):
        categories.delete_category(
            _FakeDb(category, counts={"Ticket": 1}),
            category.id,
            actor=_actor(UserRole.super_admin),
        )

    categories.delete_category(_FakeDb(category), category.id, actor=_actor(UserRole.super_admin))
    assert category.is_active is False


def test_department_names_are_unique_ignoring_case() -> None:
    admin = _actor(UserRole.admin)
    it = _department("IT Support")
    hr = _department("HR")
    db = _FakeDb(it, hr)

    with pytest.raises(ConflictError) as exc:
        departments.create_department(db, DepartmentCreate(name="it support"), actor=admin)
    assert exc.value.error_code == "CONFLICT"
    assert exc.value.status_code == 409
    with pytest.raises(ConflictError):
        departments.update_department(db, hr.id, DepartmentUpdate(name="IT SUPPORT"), actor=admin)

    departments.update_department(db, it.id, DepartmentUpdate(name="IT support"), actor=admin)
    assert it.name == "IT support"


def test_category_names_are_unique_within_a_department() -> None:
    admin = _actor(UserRole.admin)
    it = _department("IT")
    hr = _department("HR")
    laptops = Category(id=uuid4(), name="Laptops", department_id=it.id, is_active=True)
    db = _FakeDb(it, hr, laptops)

    with pytest.raises(ConflictError, match="category_name_taken"):
        categories.create_category(db, CategoryCreate(name="laptops", department_id=it.id), actor=admin)

    moved = categories.create_category(db, CategoryCreate(name="Laptops", department_id=hr.id), actor=admin)
    assert moved.department_id == hr.id

    with pytest.raises(ConflictError):
        categories.update_category(db, moved.id, CategoryUpdate(department_id=it.id), actor=admin)
    categories.update_category(db, laptops.id, CategoryUpdate(name="LAPTOPS"), actor=admin)
    assert laptops.name == "LAPTOPS"
