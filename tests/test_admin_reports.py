from __future__ import annotations

import datetime as dt
from uuid import uuid4

import pytest

from helpdesk.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from helpdesk.models.department import Department
from helpdesk.models.enums import TicketPriority, TicketStatus, UserRole
from helpdesk.models.ticket import Ticket
from helpdesk.models.user import User
from helpdesk.services import admin

NOW = dt.datetime(2024, 5, 20, 12, 0, tzinfo=dt.timezone.utc)
DEPT = uuid4()


class _Query:
    def __init__(self, rows=None):  # noqa: ANN001
        self._rows = list(rows or [])

    def filter(self, *args, **kwargs):  # noqa: ANN001
        return self

    def order_by(self, *args, **kwargs):  # noqa: ANN001
        return self

    def all(self):  # noqa: ANN201
        return list(self._rows)

    def count(self) -> int:
        return len(self._rows)


class _FakeDb:
    def __init__(self, *records):  # noqa: ANN001
        self.records = list(records)

    def get(self, model, ident):  # noqa: ANN001
        for record in self.records:
            if isinstance(record, model) and str(record.id) == str(ident):
                return record
        return None

    def query(self, model):  # noqa: ANN001
        return _Query([r for r in self.records if isinstance(r, model)])


def _user(role: UserRole, department_id=DEPT) -> User:  # noqa: ANN001
    return User(
        id=uuid4(),
        email=f"{uuid4().hex[:8]}@example.com",
        display_name=role.value,
        role=role,
        department_id=department_id,
        is_active=True,
    )


def _ticket(status: TicketStatus, *, days_ago: float = 1, priority=TicketPriority.medium, **extra) -> Ticket:  # noqa: ANN001
    created = NOW - dt.timedelta(days=days_ago)
    fields = {
        "id": uuid4(),
        "ticket_number": f"HD-2024-{uuid4().int % 1000000:06d}",
        "title": "Printer jammed",
        "description": "Paper stuck in tray 2",
        "status": status,
        "priority": priority,
        "tags": [],
        "department_id": DEPT,
        "requester_id": uuid4(),
        "created_by_id": uuid4(),
        "created_at": created,
        "updated_at": created,
    }
    fields.update(extra)
    return Ticket(**fields)


def _department() -> Department:
    return Department(id=DEPT, name="IT", description="Infrastructure", is_active=True)


def test_department_workload_level_uses_per_person_thresholds() -> None:
    assert admin.department_workload_level(0, 0) == "Low"
    assert admin.department_workload_level(10, 2) == "Low"
    assert admin.department_workload_level(12, 2) == "Medium"
    assert admin.department_workload_level(21, 2) == "High"


def test_average_response_hours_only_counts_finished_tickets() -> None:
    done = _ticket(TicketStatus.resolved, days_ago=2, closed_at=NOW - dt.timedelta(days=2) + dt.timedelta(hours=4))
    closed = _ticket(TicketStatus.closed, days_ago=1, closed_at=NOW - dt.timedelta(days=1) + dt.timedelta(hours=8))
    still_open = _ticket(TicketStatus.open, days_ago=30)

    assert admin.average_response_hours([done, closed, still_open]) == 6
    assert admin.average_response_hours([still_open]) == 0


def test_dashboard_counts_and_orders_urgent_tickets_by_priority_then_age() -> None:
    old_critical = _ticket(TicketStatus.open, days_ago=40, priority=TicketPriority.critical)
    new_low = _ticket(TicketStatus.in_progress, days_ago=1, priority=TicketPriority.low)
    new_high = _ticket(TicketStatus.open, days_ago=1, priority=TicketPriority.high)
    older_high = _ticket(TicketStatus.open, days_ago=3, priority=TicketPriority.high)
    resolved = _ticket(TicketStatus.resolved, days_ago=5, closed_at=NOW - dt.timedelta(days=5) + dt.timedelta(hours=2))

    report = admin.compute_department_dashboard(
        _department(),
        [old_critical, new_low, new_high, older_high, resolved],
        team_size=2,
        now=NOW,
    )

    assert report["department"]["team_size"] == 2
    assert report["statistics"] == {
        "total_tickets": 5,
        "open_tickets": 3,
        "in_progress_tickets": 1,
        "resolved_tickets": 1,
        "recent_tickets": 4,
        "average_response_time_hours": 2,
    }
    assert report["urgent_tickets"] == [old_critical, new_high, older_high, new_low]
    assert report["summary"] == {"active_tickets": 4, "completion_rate": 20.0, "workload": "Low"}


def test_dashboard_with_no_tickets_reports_zero_completion() -> None:
    report = admin.compute_department_dashboard(_department(), [], team_size=0, now=NOW)

    assert report["summary"] == {"active_tickets": 0, "completion_rate": 0.0, "workload": "Low"}
    assert report["urgent_tickets"] == []


def test_dashboard_caps_urgent_list() -> None:
    tickets = [_ticket(TicketStatus.open, days_ago=i + 1) for i in range(admin.URGENT_LIMIT + 3)]

    report = admin.compute_department_dashboard(_department(), tickets, team_size=1, now=NOW)

    assert len(report["urgent_tickets"]) == admin.URGENT_LIMIT
    assert report["summary"]["workload"] == "High"


def test_parse_period_accepts_known_windows_only() -> None:
    start, end = admin.parse_period("7d", now=NOW)
    assert end == NOW
    assert start == NOW - dt.timedelta(days=7)

    with pytest.raises(BadRequestError) as exc:
        admin.parse_period("1y", now=NOW)
    assert exc.value.message == "invalid_period"


def test_analytics_fills_every_day_and_counts_distributions() -> None:
    start, end = admin.parse_period("7d", now=NOW)
    tickets = [
        _ticket(TicketStatus.resolved, days_ago=1),
        _ticket(TicketStatus.closed, days_ago=1, priority=None),
        _ticket(TicketStatus.open, days_ago=3),
        _ticket(TicketStatus.open, days_ago=10),
    ]

    report = admin.compute_department_analytics(tickets, start=start, end=end)

    assert report["summary"] == {
        "total_tickets": 3,
        "resolved_tickets": 1,
        "closed_tickets": 1,
        "completion_rate": 66.67,
    }
    assert report["distributions"]["status"] == {"resolved": 1, "closed": 1, "open": 1}
    assert report["distributions"]["priority"] == {"medium": 2, "unknown": 1}
    daily = report["trends"]["daily"]
    assert len(daily) == 8
    assert daily[0] == {"date": "2024-05-13", "count": 0}
    assert {"date": "2024-05-19", "count": 2} in daily
    assert {"date": "2024-05-17", "count": 1} in daily
    assert sum(day["count"] for day in daily) == 3


def test_get_department_dashboard_for_manager_of_department() -> None:
    manager = _user(UserRole.manager)
    agent = _user(UserRole.agent)
    ticket = _ticket(TicketStatus.open)
    db = _FakeDb(_department(), manager, agent, ticket)

    report = admin.get_department_dashboard(db, DEPT, actor=manager, now=NOW)

    assert report["department"]["name"] == "IT"
    assert report["department"]["team_size"] == 2
    assert report["urgent_tickets"] == [ticket]


def test_get_department_dashboard_denies_other_department() -> None:
    outsider = _user(UserRole.manager, department_id=uuid4())
    db = _FakeDb(_department(), outsider)

    with pytest.raises(ForbiddenError) as exc:
        admin.get_department_dashboard(db, DEPT, actor=outsider, now=NOW)
    assert exc.value.reason_code == "DEPARTMENT_MISMATCH"


def test_get_department_analytics_denies_end_users() -> None:
    requester = _user(UserRole.end_user)
    db = _FakeDb(_department(), requester)

    with pytest.raises(ForbiddenError) as exc:
        admin.get_department_analytics(db, DEPT, actor=requester, now=NOW)
    assert exc.value.reason_code == "ROLE_INSUFFICIENT"


def test_get_department_analytics_unknown_department() -> None:
    boss = _user(UserRole.admin)

    with pytest.raises(NotFoundError):
        admin.get_department_analytics(_FakeDb(boss), uuid4(), actor=boss, period="90d", now=NOW)


def test_get_department_analytics_for_admin() -> None:
    boss = _user(UserRole.admin, department_id=None)
    db = _FakeDb(_department(), boss, _ticket(TicketStatus.open, days_ago=2))

    report = admin.get_department_analytics(db, DEPT, actor=boss, period="30d", now=NOW)

    assert report["summary"]["total_tickets"] == 1
    assert len(report["trends"]["daily"]) == 31
