from __future__ import annotations

from dataclasses import replace

import pytest
from werkzeug.security import check_password_hash

from src.onboarding_portal.onboarding_portal.core.enums import EmployeeType, LifecycleState, Role
from src.onboarding_portal.onboarding_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    EmailTakenError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from src.onboarding_portal.onboarding_portal.roster.model import NewMasterEmployee
from src.onboarding_portal.onboarding_portal.users.service import generate_temp_password


def _create(accounts, **overrides):
    kwargs = dict(
        current_role=Role.HR,
        name="Ravi Kumar",
        email="Ravi.Kumar@Company.com",
        employee_type="fulltime",
        department="Engineering",
    )
    kwargs.update(overrides)
    return accounts.create_employee(**kwargs)


def test_temp_password_mixes_letters_and_digits():
    for _ in range(20):
        pw = generate_temp_password()
        assert len(pw) == 10
        assert any(c.isdigit() for c in pw) and any(c.isalpha() for c in pw)


def test_create_employee_starts_in_new_account(container, mailer):
    created = _create(container.account_service)

    user = created.user
    assert user.email == "ravi.kumar@company.com"
    assert user.role == Role.EMPLOYEE
    assert user.employee_type == EmployeeType.FULLTIME
    assert user.lifecycle_state == LifecycleState.NEW_ACCOUNT
    assert user.is_first_login
    assert check_password_hash(user.password_hash, created.temp_password)
    assert created.email_sent
    assert mailer.sent[0][0] == "ravi.kumar@company.com"
    assert created.temp_password in mailer.sent[0][2]


def test_create_employee_with_unconfigured_mail_still_succeeds(container, mailer):
    mailer.configured = False

    created = _create(container.account_service)

    assert created.email_sent is False
    assert created.user.user_id


def test_duplicate_email_is_rejected(container):
    _create(container.account_service)
    with pytest.raises(EmailTakenError):
        _create(container.account_service, email="ravi.kumar@company.com")


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": "  "}, "Name"),
        ({"email": "nope"}, "valid email"),
        ({"employee_type": "freelance"}, "Employee type"),
        ({"department": ""}, "Department"),
        ({"manager_id": 404}, "Manager does not exist"),
    ],
)
def test_create_employee_validates_input(container, overrides, message):
    with pytest.raises(ValidationError, match=message):
        _create(container.account_service, **overrides)


def test_only_hr_creates_employees(container):
    with pytest.raises(AuthorizationError):
        _create(container.account_service, current_role=Role.EMPLOYEE)


def test_authenticate_checks_password_and_state(container, make_user, repos):
    user = make_user(email="emp@company.com", password="pass1234")
    auth = container.auth_service

    assert auth.authenticate(" EMP@company.com ", "pass1234").user_id == user.user_id
    with pytest.raises(AuthenticationError):
        auth.authenticate("emp@company.com", "wrong")
    with pytest.raises(ValidationError):
        auth.authenticate("", "")

    repos.users.force_state(user.user_id, LifecycleState.REJECTED)
    with pytest.raises(AuthorizationError, match="rejected"):
        auth.authenticate("emp@company.com", "pass1234")

    repos.users.force_state(user.user_id, LifecycleState.DELETED)
    with pytest.raises(AuthorizationError, match="deactivated"):
        auth.authenticate("emp@company.com", "pass1234")


def test_placeholder_hash_never_matches(container, repos, make_user):
    user = make_user(email="seed@company.com")
    repos.users.by_id[user.user_id] = replace(user, password_hash="CHANGE_ME")

    with pytest.raises(AuthenticationError):
        container.auth_service.authenticate("seed@company.com", "CHANGE_ME")


def test_change_password_clears_first_login(container, make_user, repos):
    user = make_user(password="oldpass1", is_first_login=True)
    auth = container.auth_service

    with pytest.raises(ValidationError, match="incorrect"):
        auth.change_password(user_id=user.user_id, current_password="nope", new_password="newpass1")
    with pytest.raises(ValidationError, match="different"):
        auth.change_password(user_id=user.user_id, current_password="oldpass1", new_password="oldpass1")
    with pytest.raises(ValidationError, match="at least"):
        auth.change_password(user_id=user.user_id, current_password="oldpass1", new_password="abc")

    auth.change_password(user_id=user.user_id, current_password="oldpass1", new_password="newpass1")

    stored = repos.users.get_by_id(user.user_id)
    assert not stored.is_first_login
    assert check_password_hash(stored.password_hash, "newpass1")


def test_resend_credentials_resets_password_and_sessions(container, make_user, repos, mailer):
    user = make_user(password="original1")
    issued = container.session_service.issue(user.user_id)

    result = container.account_service.resend_credentials(current_role=Role.HR, user_id=user.user_id)

    stored = repos.users.get_by_id(user.user_id)
    assert stored.is_first_login
    assert check_password_hash(stored.password_hash, result.temp_password)
    assert result.temp_password in mailer.sent[-1][2]
    with pytest.raises(AuthenticationError):
        container.session_service.validate(issued.token)


@pytest.mark.parametrize("breakage", ["configured", "fail"])
def test_resend_credentials_failed_mail_keeps_current_login(container, make_user, repos, mailer, breakage):
    user = make_user(password="original1")
    issued = container.session_service.issue(user.user_id)
    before = repos.users.get_by_id(user.user_id).password_hash
    if breakage == "configured":
        mailer.configured = False
    else:
        mailer.fail = True

    with pytest.raises(NotificationError):
        container.account_service.resend_credentials(current_role=Role.HR, user_id=user.user_id)

    stored = repos.users.get_by_id(user.user_id)
    assert stored.password_hash == before
    assert not stored.is_first_login
    assert check_password_hash(stored.password_hash, "original1")
    assert container.session_service.validate(issued.token) == user.user_id


def test_resend_credentials_refuses_deleted_employee(container, make_user):
    user = make_user(state=LifecycleState.DELETED)
    with pytest.raises(ValidationError, match="deleted"):
        container.account_service.resend_credentials(current_role=Role.HR, user_id=user.user_id)


def test_assign_manager_syncs_roster(container, make_user, repos):
    boss = make_user(name="Boss")
    emp = make_user()
    repos.roster.create(NewMasterEmployee(employee_id="100001", name="Boss", email=boss.email, user_id=boss.user_id))
    repos.roster.create(NewMasterEmployee(employee_id="100002", name="Emp", email=emp.email, user_id=emp.user_id))

    updated = container.account_service.assign_manager(
        current_role=Role.HR, user_id=emp.user_id, manager_id=boss.user_id
    )

    assert updated.manager_id == boss.user_id
    assert repos.roster.get("100002").manager_id == "100001"

    with pytest.raises(ValidationError, match="own manager"):
        container.account_service.assign_manager(current_role=Role.HR, user_id=emp.user_id, manager_id=emp.user_id)


def test_get_employee_hides_hr_accounts(container, hr_user):
    with pytest.raises(NotFoundError):
        container.account_service.get_employee(hr_user.user_id)


def test_statistics_counts_states(container, make_user, hr_user):
    make_user(state=LifecycleState.FORM_SUBMITTED, department="Sales")
    make_user(state=LifecycleState.FORM_SUBMITTED, department="Sales")
    make_user(state=LifecycleState.APPROVED, department="Engineering")

    stats = container.account_service.statistics(current_role=Role.HR)

    assert stats.total_employees == 3
    assert stats.pending_approvals == 2
    assert stats.by_department == {"Sales": 2, "Engineering": 1}
