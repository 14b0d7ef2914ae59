"""End-to-end service scenarios over the in-memory container."""

from __future__ import annotations

from datetime import date

import pytest

from src.onboarding_portal.onboarding_portal.core.enums import (
    AttendanceStatus,
    CalendarStatus,
    EmployeeType,
    LifecycleState,
    Role,
    RosterStatus,
)
from src.onboarding_portal.onboarding_portal.core.exceptions import DuplicateAttendanceError, ValidationError

PAYLOAD = {
    "personal_info": {"phone": "9876543210", "address": {"city": "Pune", "pin": "411001"}},
    "bank_info": {"account": "001122334455", "ifsc": "SBIN0000001"},
    "education_info": [{"degree": "B.E.", "year": 2024, "honours": None}],
    "aadhar_number": "123412341234",
    "pan_number": "ABCDE1234F",
}


def test_intern_from_account_to_roster(container, hr_user, seed_manager):
    created = container.account_service.create_employee(
        current_role=Role.HR,
        name="Kiran",
        email="kiran@company.com",
        employee_type="intern",
        department="Engineering",
    )
    user = created.user
    assert user.employee_type == EmployeeType.INTERN
    assert not user.form_submitted and not user.onboarded

    form = container.onboarding_service.submit_form(user_id=user.user_id, payload=PAYLOAD)
    user = container.account_service.get_employee(user.user_id)
    assert user.form_submitted and not user.onboarded

    fetched = container.onboarding_service.get_form(user.user_id)
    assert fetched == form
    for name in ("personal_info", "bank_info", "education_info"):
        assert getattr(fetched, name) == PAYLOAD[name]

    user = container.lifecycle_service.approve(current_role=Role.HR, actor_id=hr_user.user_id, user_id=user.user_id)
    assert user.hr_approved and user.onboarded

    record = container.lifecycle_service.add_to_master(
        current_role=Role.HR,
        actor_id=hr_user.user_id,
        user_id=user.user_id,
        employee_id="100001",
        manager_id=seed_manager.employee_id,
    )
    assert container.roster_service.get("100001") == record
    assert record.status == RosterStatus.ACTIVE


def test_duplicate_mark_on_a_monday(container, make_user):
    emp = make_user(state=LifecycleState.APPROVED)
    monday = date(2024, 6, 10)

    container.attendance_service.mark(user_id=emp.user_id, status="present", on=monday)
    with pytest.raises(DuplicateAttendanceError):
        container.attendance_service.mark(user_id=emp.user_id, status="present", on=monday)


@pytest.mark.parametrize("status", ["present", "wfh", "leave"])
def test_weekends_always_refused(container, make_user, status):
    emp = make_user(state=LifecycleState.APPROVED)
    for weekend_day in (date(2024, 6, 8), date(2024, 6, 9)):
        with pytest.raises(ValidationError):
            container.attendance_service.mark(user_id=emp.user_id, status=status, reason="x", on=weekend_day)


def test_leave_shows_on_calendar_with_reason(container, make_user, repos, clock):
    emp = make_user(state=LifecycleState.APPROVED)
    container.attendance_service.mark(user_id=emp.user_id, status="leave", reason="medical", on=date(2024, 6, 12))
    repos.attendance.insert(
        user_id=emp.user_id,
        work_date=date(2024, 6, 15),
        status=AttendanceStatus.PRESENT,
        reason=None,
        marked_at=clock(),
    )

    days = {d.day: d for d in container.attendance_service.build_calendar(emp.user_id, 6, 2024)}

    assert days[date(2024, 6, 12)].status == CalendarStatus.LEAVE
    assert days[date(2024, 6, 12)].reason == "medical"
    weekend = [d for d in days.values() if d.day.weekday() >= 5]
    assert len(weekend) == 10
    assert all(d.status == CalendarStatus.WEEKEND for d in weekend)
