from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest

from helpdesk.core.exceptions import NotFoundError
from helpdesk.models.enums import NotificationType, TicketStatus
from helpdesk.models.notification import Notification
from helpdesk.services import notifications_service


class _Query:
    def __init__(self, rows=None):  # noqa: ANN001
        self._rows = list(rows or [])

    def filter(self, *args, **kwargs):  # noqa: ANN001
        return self

    def all(self):  # noqa: ANN201
        return list(self._rows)


class _FakeDb:
    def __init__(self, *, leader_ids=(), fail_on_commit: bool = False, records=()):  # noqa: ANN001
        self.leader_ids = list(leader_ids)
        self.fail_on_commit = fail_on_commit
        self.records = list(records)
        self.added = []
        self.commits = 0
        self.rollbacks = 0

    def query(self, *entities):  # noqa: ANN001
        return _Query([(leader_id,) for leader_id in self.leader_ids])

    def get(self, model, ident):  # noqa: ANN001
        for record in self.records:
            if isinstance(record, model) and str(record.id) == str(ident):
                return record
        return None

    def add(self, obj) -> None:  # noqa: ANN001
        self.added.append(obj)

    def commit(self) -> None:
        if self.fail_on_commit:
            raise RuntimeError("database is read-only")
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def refresh(self, obj) -> None:  # noqa: ANN001
        return None


def _ticket(**overrides) -> SimpleNamespace:  # noqa: ANN003
    values = {
        "id": uuid4(),
        "ticket_number": "HD-2026-000007",
        "title": "Badge reader offline",
        "requester_id": uuid4(),
        "assignee_id": uuid4(),
        "department_id": uuid4(),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _recipients(db: _FakeDb) -> list:
    return [record.user_id for record in db.added]


def test_recipients_skip_actor_blanks_and_duplicates() -> None:
    actor, other = uuid4(), uuid4()
    assert notifications_service._recipients([actor, None, other, str(other)], exclude=str(actor)) == [other]


def test_assignee_is_not_notified_of_self_assignment() -> None:
    db = _FakeDb()
    ticket = _ticket()
    assignee = SimpleNamespace(id=ticket.assignee_id, display_name="Sam")

    assert notifications_service.notify_ticket_assigned(db, ticket, assignee, actor=assignee) == 0
    assert db.added == []


def test_status_change_notifies_leaders_only_on_exit() -> None:
    leader = uuid4()
    actor = SimpleNamespace(id=uuid4(), display_name="Lead")
    ticket = _ticket()

    db = _FakeDb(leader_ids=[leader])
    notifications_service.notify_ticket_status_changed(db, ticket, TicketStatus.open, TicketStatus.in_progress, actor=actor)
    assert _recipients(db) == [ticket.requester_id, ticket.assignee_id]
    assert {record.type for record in db.added} == {NotificationType.ticket_status_changed}

    db = _FakeDb(leader_ids=[leader])
    notifications_service.notify_ticket_status_changed(db, ticket, TicketStatus.in_progress, TicketStatus.resolved, actor=actor)
    assert _recipients(db) == [ticket.requester_id, ticket.assignee_id, leader]
    assert {record.type for record in db.added} == {NotificationType.ticket_resolved}


def test_internal_comment_reaches_assignee_only() -> None:
    actor = SimpleNamespace(id=uuid4(), display_name="Agent")
    ticket = _ticket()
    db = _FakeDb()

    notifications_service.notify_ticket_commented(db, ticket, "x" * 150, actor=actor, is_internal=True)

    [record] = db.added
    assert record.user_id == ticket.assignee_id
    assert record.message.endswith("x" * 100 + "...")


def test_dispatch_failure_is_swallowed() -> None:
    db = _FakeDb(fail_on_commit=True)
    actor = SimpleNamespace(id=uuid4(), display_name="Lead")

    sent = notifications_service.notify_ticket_updated(db, _ticket(), actor=actor)

    assert sent == 0
    assert db.rollbacks == 1


def test_mark_as_read_is_owner_scoped() -> None:
    owner = uuid4()
    record = Notification(id=uuid4(), user_id=owner, type=NotificationType.ticket_updated, title="Ticket Updated")
    db = _FakeDb(records=[record])

    with pytest.raises(NotFoundError):
        notifications_service.mark_notification_as_read(db, user_id=uuid4(), notification_id=record.id)

    notifications_service.mark_notification_as_read(db, user_id=owner, notification_id=record.id)
    assert record.read_at is not None
    assert db.commits == 1
