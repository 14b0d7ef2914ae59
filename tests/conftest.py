from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterable, Optional

import pytest
from flask import Flask
from werkzeug.security import generate_password_hash

from src.onboarding_portal.onboarding_portal.attendance.model import (
    AttendanceFilters,
    AttendanceRecord,
    AttendanceReportRow,
)
from src.onboarding_portal.onboarding_portal.audit.model import AuditEntry, AuditPage
from src.onboarding_portal.onboarding_portal.container import Repositories, assemble_container
from src.onboarding_portal.onboarding_portal.core.enums import (
    AttendanceStatus,
    EmployeeType,
    LifecycleState,
    NotifyFailurePolicy,
    Role,
    RosterStatus,
)
from src.onboarding_portal.onboarding_portal.core.exceptions import (
    AlreadyInRosterError,
    DuplicateAttendanceError,
    EmailTakenError,
    EmployeeIdTakenError,
    ManagerInUseError,
    ManagerNotInRosterError,
    NotFoundError,
    NotificationError,
    ValidationError,
)
from src.onboarding_portal.onboarding_portal.lifecycle import transitions
from src.onboarding_portal.onboarding_portal.lifecycle.model import OnboardedEmployee
from src.onboarding_portal.onboarding_portal.main import register_routes
from src.onboarding_portal.onboarding_portal.onboarding.model import (
    FORM_FIELDS,
    Document,
    FormSummary,
    OnboardingForm,
)
from src.onboarding_portal.onboarding_portal.onboarding.storage import DocumentStorage
from src.onboarding_portal.onboarding_portal.roster.model import MasterEmployee, NewMasterEmployee, RosterPage
from src.onboarding_portal.onboarding_portal.sessions.model import Session
from src.onboarding_portal.onboarding_portal.users.model import EmployeeStatistics, User

# Fast hash for tests; production uses werkzeug's default method.
TEST_HASH_METHOD = "pbkdf2:sha256:1000"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


class InMemoryUsers:
    def __init__(self):
        self.by_id: dict[int, User] = {}
        self._next_id = 1

    def add(self, user: User) -> User:
        self.by_id[user.user_id] = user
        self._next_id = max(self._next_id, user.user_id + 1)
        return user

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.by_id.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self.by_id.values() if u.email == email), None)

    def create_user(
        self,
        *,
        name,
        email,
        password_hash,
        role,
        employee_type,
        department,
        manager_id=None,
        join_date=None,
    ) -> int:
        if self.get_by_email(email):
            raise EmailTakenError("Email already exists")
        if manager_id is not None and manager_id not in self.by_id:
            raise ValidationError("Manager does not exist")
        user_id = self._next_id
        self._next_id += 1
        self.by_id[user_id] = User(
            user_id=user_id,
            name=name,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            employee_type=employee_type,
            manager_id=manager_id,
            department=department,
            join_date=join_date,
            is_first_login=True,
            lifecycle_state=LifecycleState.NEW_ACCOUNT,
        )
        return user_id

    def update_password(self, user_id, *, password_hash, is_first_login) -> bool:
        user = self.by_id.get(int(user_id))
        if not user:
            return False
        self.by_id[user.user_id] = replace(user, password_hash=password_hash, is_first_login=is_first_login)
        return True

    def set_manager(self, user_id, *, manager_id) -> bool:
        user = self.by_id.get(int(user_id))
        if not user:
            return False
        self.by_id[user.user_id] = replace(user, manager_id=manager_id)
        return True

    def transition_state(self, user_id, *, from_states: Iterable[LifecycleState], to_state, rejection_reason=None) -> bool:
        user = self.by_id.get(int(user_id))
        if not user or user.lifecycle_state not in set(from_states):
            return False
        self.by_id[user.user_id] = replace(user, lifecycle_state=to_state, rejection_reason=rejection_reason)
        return True

    def force_state(self, user_id: int, state: LifecycleState) -> None:
        self.by_id[user_id] = replace(self.by_id[user_id], lifecycle_state=state)

    def remove(self, user_id: int) -> None:
        self.by_id.pop(int(user_id), None)
        for other in list(self.by_id.values()):
            if other.manager_id == user_id:
                self.by_id[other.user_id] = replace(other, manager_id=None)

    def list_employees(self, *, state=None, department=None, search=None):
        out = [u for u in self.by_id.values() if u.role == Role.EMPLOYEE]
        if state:
            out = [u for u in out if u.lifecycle_state == state]
        if department:
            out = [u for u in out if u.department == department]
        if search:
            s = search.lower()
            out = [u for u in out if s in u.name.lower() or s in u.email.lower()]
        return sorted(out, key=lambda u: u.user_id, reverse=True)

    def list_departments(self):
        return sorted({u.department for u in self.by_id.values() if u.department})

    def statistics(self) -> EmployeeStatistics:
        employees = [u for u in self.by_id.values() if u.role == Role.EMPLOYEE]
        by_state: dict[str, int] = {}
        by_department: dict[str, int] = {}
        for u in employees:
            by_state[u.lifecycle_state.value] = by_state.get(u.lifecycle_state.value, 0) + 1
            if u.department:
                by_department[u.department] = by_department.get(u.department, 0) + 1
        return EmployeeStatistics(
            total_employees=len(employees),
            total_forms=0,
            pending_approvals=by_state.get(LifecycleState.FORM_SUBMITTED.value, 0),
            by_state=by_state,
            by_department=by_department,
        )


class InMemorySessions:
    def __init__(self):
        self.by_hash: dict[str, Session] = {}

    def create(self, *, token_hash, user_id, created_at, expires_at, ip_address=None, user_agent=None) -> int:
        if token_hash in self.by_hash:
            raise ValidationError("duplicate token")
        sid = len(self.by_hash) + 1
        self.by_hash[token_hash] = Session(
            session_id=sid,
            token_hash=token_hash,
            user_id=int(user_id),
            created_at=created_at,
            expires_at=expires_at,
        )
        return sid

    def get_by_token_hash(self, token_hash):
        return self.by_hash.get(token_hash)

    def revoke(self, token_hash, *, revoked_at) -> bool:
        s = self.by_hash.get(token_hash)
        if not s or s.revoked_at is not None:
            return False
        self.by_hash[token_hash] = replace(s, revoked_at=revoked_at)
        return True

    def revoke_all_for_user(self, user_id, *, revoked_at) -> int:
        count = 0
        for h, s in list(self.by_hash.items()):
            if s.user_id == int(user_id) and s.revoked_at is None:
                self.by_hash[h] = replace(s, revoked_at=revoked_at)
                count += 1
        return count

    def purge_expired(self, *, now) -> int:
        expired = [h for h, s in self.by_hash.items() if s.expires_at <= now or s.revoked_at is not None]
        for h in expired:
            del self.by_hash[h]
        return len(expired)


class InMemoryForms:
    def __init__(self, users: InMemoryUsers, clock: FakeClock):
        self._users = users
        self._clock = clock
        self.forms: dict[int, OnboardingForm] = {}
        self.documents: list[Document] = []
        self.fail_next_save = False

    def get_form(self, user_id):
        return self.forms.get(int(user_id))

    def save_submission(self, user_id, *, values, documents, allowed_states, to_state):
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.lifecycle_state not in set(allowed_states):
            return user.lifecycle_state
        if self.fail_next_save:
            self.fail_next_save = False
            raise RuntimeError("storage unavailable")

        now = self._clock()
        existing = self.forms.get(user.user_id)
        self.forms[user.user_id] = OnboardingForm(
            user_id=user.user_id,
            submitted_at=existing.submitted_at if existing else now,
            updated_at=now,
            **{name: values.get(name) for name in FORM_FIELDS},
        )
        for doc in documents:
            self.documents.append(
                Document(
                    document_id=len(self.documents) + 1,
                    user_id=user.user_id,
                    document_type=doc.document_type,
                    original_name=doc.original_name,
                    file_path=doc.file_path,
                    file_size=doc.file_size,
                    mime_type=doc.mime_type,
                    is_required=doc.is_required,
                    uploaded_at=now,
                )
            )
        self._users.force_state(user.user_id, to_state)
        return None

    def update_form(self, user_id, changes):
        form = self.forms.get(int(user_id))
        if not form:
            return None
        fields = {k: v for k, v in changes.items() if k in FORM_FIELDS}
        updated = replace(form, updated_at=self._clock(), **fields)
        self.forms[form.user_id] = updated
        return updated

    def delete_form(self, user_id) -> bool:
        return self.forms.pop(int(user_id), None) is not None

    def list_forms(self, *, state=None, search=None):
        out = []
        for form in self.forms.values():
            user = self._users.get_by_id(form.user_id)
            if state and user.lifecycle_state != state:
                continue
            if search and search.lower() not in (user.name + user.email).lower():
                continue
            out.append(
                FormSummary(
                    user_id=user.user_id,
                    name=user.name,
                    email=user.email,
                    employee_type=user.employee_type,
                    department=user.department,
                    lifecycle_state=user.lifecycle_state,
                    submitted_at=form.submitted_at,
                    updated_at=form.updated_at,
                    document_count=len([d for d in self.documents if d.user_id == user.user_id]),
                )
            )
        return out

    def list_documents(self, user_id):
        return [d for d in self.documents if d.user_id == int(user_id)]


class InMemoryRoster:
    def __init__(self):
        self.records: dict[str, MasterEmployee] = {}

    def _with_manager_name(self, record: MasterEmployee) -> MasterEmployee:
        manager = self.records.get(record.manager_id) if record.manager_id else None
        return replace(record, manager_name=manager.name if manager else None)

    def get(self, employee_id):
        record = self.records.get(str(employee_id))
        return self._with_manager_name(record) if record else None

    def get_by_user_id(self, user_id):
        if user_id is None:
            return None
        record = next((r for r in self.records.values() if r.user_id == int(user_id)), None)
        return self._with_manager_name(record) if record else None

    def list_page(self, *, page, limit, department=None, status=None, search=None, manager_id=None) -> RosterPage:
        items = sorted(self.records.values(), key=lambda r: r.employee_id)
        if department:
            items = [r for r in items if r.department == department]
        if status:
            items = [r for r in items if r.status == status]
        if manager_id:
            items = [r for r in items if r.manager_id == manager_id]
        if search:
            s = search.lower()
            items = [r for r in items if s in r.name.lower() or s in r.email.lower() or s in r.employee_id]
        start = (page - 1) * limit
        return RosterPage(
            items=[self._with_manager_name(r) for r in items[start : start + limit]],
            total=len(items),
            page=page,
            limit=limit,
        )

    def create(self, record: NewMasterEmployee) -> MasterEmployee:
        if record.employee_id in self.records:
            raise EmployeeIdTakenError("Employee ID already exists")
        if any(r.email.lower() == record.email.lower() for r in self.records.values()):
            raise EmailTakenError("Email already exists in the master roster")
        if record.user_id is not None and self.get_by_user_id(record.user_id):
            raise AlreadyInRosterError("Employee is already in the master roster")
        if record.manager_id and record.manager_id not in self.records:
            raise ManagerNotInRosterError("Manager must already be in the master roster")
        self.records[record.employee_id] = MasterEmployee(
            employee_id=record.employee_id,
            user_id=record.user_id,
            name=record.name,
            email=record.email,
            personal_email=record.personal_email,
            employee_type=record.employee_type,
            role=record.role,
            status=RosterStatus.ACTIVE,
            department=record.department,
            join_date=record.join_date,
            manager_id=record.manager_id,
        )
        return self.get(record.employee_id)

    def update(self, employee_id, changes):
        record = self.records.get(employee_id)
        if not record:
            return None
        if "email" in changes and any(
            r.email.lower() == changes["email"].lower() and r.employee_id != employee_id for r in self.records.values()
        ):
            raise EmailTakenError("Email already exists in the master roster")
        if changes.get("manager_id") and changes["manager_id"] not in self.records:
            raise ManagerNotInRosterError("Manager must already be in the master roster")
        self.records[employee_id] = replace(record, **changes)
        return self.get(employee_id)

    def set_status(self, employee_id, status) -> bool:
        record = self.records.get(employee_id)
        if not record:
            return False
        self.records[employee_id] = replace(record, status=status)
        return True

    def count_reports(self, employee_id) -> int:
        return len([r for r in self.records.values() if r.manager_id == employee_id])

    def list_reports(self, employee_id):
        return [self._with_manager_name(r) for r in self.records.values() if r.manager_id == employee_id]

    def delete(self, employee_id) -> bool:
        if self.count_reports(employee_id):
            raise ManagerInUseError("Employee is assigned as manager to other employees")
        return self.records.pop(employee_id, None) is not None

    def remove_for_user(self, user_id: int) -> None:
        record = self.get_by_user_id(user_id)
        if record:
            self.delete(record.employee_id)

    def list_managers(self):
        return [r for r in sorted(self.records.values(), key=lambda r: r.name) if r.status == RosterStatus.ACTIVE]

    def list_departments(self):
        return sorted({r.department for r in self.records.values() if r.department})


class InMemoryLifecycle:
    def __init__(self, users: InMemoryUsers, roster: InMemoryRoster, sessions: InMemorySessions):
        self._users = users
        self._roster = roster
        self._sessions = sessions

    def promote_to_master(self, user_id, *, employee_id, manager_id, personal_email=None, department=None, join_date=None):
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        transitions.ensure_can_promote(user.lifecycle_state)
        if self._roster.get_by_user_id(user.user_id):
            raise AlreadyInRosterError("Employee is already in the master roster")
        manager = self._roster.get(manager_id)
        if not manager or manager.status != RosterStatus.ACTIVE:
            raise ManagerNotInRosterError("Manager must be an active member of the master roster")
        record = self._roster.create(
            NewMasterEmployee(
                employee_id=employee_id,
                user_id=user.user_id,
                name=user.name,
                email=user.email,
                personal_email=personal_email,
                employee_type=user.employee_type,
                role=user.role.value,
                department=department or user.department,
                join_date=join_date or user.join_date,
                manager_id=manager_id,
            )
        )
        if manager.user_id is not None:
            self._users.set_manager(user.user_id, manager_id=manager.user_id)
        return record

    def soft_delete_employee(self, user_id, *, revoked_at) -> bool:
        if not self._users.transition_state(
            user_id, from_states=transitions.DELETABLE_FROM, to_state=LifecycleState.DELETED
        ):
            return False
        record = self._roster.get_by_user_id(user_id)
        if record:
            self._roster.set_status(record.employee_id, RosterStatus.DELETED)
        self._sessions.revoke_all_for_user(user_id, revoked_at=revoked_at)
        return True

    def hard_delete_employee(self, user_id) -> bool:
        user = self._users.get_by_id(user_id)
        if not user or user.role != Role.EMPLOYEE:
            return False
        self._roster.remove_for_user(user.user_id)
        self._users.remove(user.user_id)
        return True

    def list_onboarded(self):
        out = []
        for user in self._users.list_employees(state=LifecycleState.APPROVED):
            record = self._roster.get_by_user_id(user.user_id)
            out.append(OnboardedEmployee(user=user, employee_id=record.employee_id if record else None))
        return out


class InMemoryAttendance:
    def __init__(self, users: InMemoryUsers):
        self._users = users
        self.records: dict[int, AttendanceRecord] = {}
        self._next_id = 1
        self.queries = 0

    def insert(self, *, user_id, work_date, status, reason, marked_at):
        if any(r.user_id == user_id and r.work_date == work_date for r in self.records.values()):
            raise DuplicateAttendanceError("Attendance already marked for today")
        record = AttendanceRecord(
            record_id=self._next_id,
            user_id=int(user_id),
            work_date=work_date,
            status=status,
            reason=reason,
            marked_at=marked_at,
        )
        self.records[record.record_id] = record
        self._next_id += 1
        return record

    def get(self, record_id):
        return self.records.get(int(record_id))

    def get_for_user_and_date(self, user_id, work_date):
        return next(
            (r for r in self.records.values() if r.user_id == int(user_id) and r.work_date == work_date),
            None,
        )

    def iter_for_user(self, user_id, *, start=None, end=None, limit=None):
        self.queries += 1
        rows = [r for r in self.records.values() if r.user_id == int(user_id)]
        if start:
            rows = [r for r in rows if r.work_date >= start]
        if end:
            rows = [r for r in rows if r.work_date <= end]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        if limit is not None:
            rows = rows[:limit]
        for r in rows:
            yield r

    @staticmethod
    def _in_range(r, filters: AttendanceFilters) -> bool:
        if filters.start and r.work_date < filters.start:
            return False
        if filters.end and r.work_date > filters.end:
            return False
        if filters.month and filters.year and (r.work_date.month, r.work_date.year) != (filters.month, filters.year):
            return False
        return True

    def _leave_counts(self, filters: AttendanceFilters) -> dict[int, int]:
        counts: dict[int, int] = {}
        for r in self.records.values():
            if r.status == AttendanceStatus.LEAVE and self._in_range(r, filters):
                counts[r.user_id] = counts.get(r.user_id, 0) + 1
        return counts

    def query(self, filters: AttendanceFilters):
        leaves = self._leave_counts(filters)
        out = []
        for r in self.records.values():
            user = self._users.get_by_id(r.user_id)
            if filters.user_id is not None and r.user_id != filters.user_id:
                continue
            if filters.department and user.department != filters.department:
                continue
            if not self._in_range(r, filters):
                continue
            if filters.status and r.status != filters.status:
                continue
            if filters.leaves_greater_than and leaves.get(r.user_id, 0) <= filters.leaves_greater_than:
                continue
            out.append(
                AttendanceReportRow(
                    record_id=r.record_id,
                    user_id=r.user_id,
                    employee_name=user.name,
                    employee_email=user.email,
                    department=user.department,
                    employee_type=user.employee_type,
                    work_date=r.work_date,
                    status=r.status,
                    reason=r.reason,
                    marked_at=r.marked_at,
                )
            )
        out.sort(key=lambda row: (-row.work_date.toordinal(), row.employee_name))
        return out

    def count_by_status(self, *, start=None, end=None, leaves_greater_than=None):
        rows = self.query(AttendanceFilters(start=start, end=end, leaves_greater_than=leaves_greater_than))
        counts: dict[AttendanceStatus, int] = {}
        for row in rows:
            counts[row.status] = counts.get(row.status, 0) + 1
        return counts

    def count_active_employees(self) -> int:
        return len(self._users.list_employees(state=LifecycleState.APPROVED))

    def update(self, record_id, *, status, reason, updated_by, updated_at):
        record = self.records.get(int(record_id))
        if not record:
            return None
        self.records[record.record_id] = replace(
            record, status=status, reason=reason, updated_by=updated_by, updated_at=updated_at
        )
        return self.records[record.record_id]

    def delete(self, record_id) -> bool:
        return self.records.pop(int(record_id), None) is not None


class InMemoryAudit:
    def __init__(self, clock: FakeClock):
        self._clock = clock
        self.entries: list[AuditEntry] = []

    def append(self, *, user_id, action, details, ip_address, user_agent) -> int:
        entry = AuditEntry(
            entry_id=len(self.entries) + 1,
            user_id=user_id,
            action=action,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=self._clock(),
        )
        self.entries.append(entry)
        return entry.entry_id

    def list_page(self, *, page, limit, user_id=None, action=None) -> AuditPage:
        items = [e for e in reversed(self.entries)]
        if user_id is not None:
            items = [e for e in items if e.user_id == user_id]
        if action:
            items = [e for e in items if e.action == action]
        start = (page - 1) * limit
        return AuditPage(items=items[start : start + limit], total=len(items), page=page, limit=limit)

    def actions(self) -> list[str]:
        return [e.action for e in self.entries]


class FakeMailer:
    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False
        self.configured = True

    def send(self, to: str, subject: str, html_body: str) -> bool:
        if self.fail:
            raise NotificationError(f"Failed to send email to {to}")
        if not self.configured:
            return False
        self.sent.append((to, subject, html_body))
        return True


@pytest.fixture
def fixed_now() -> datetime:
    # A Wednesday.
    return datetime(2026, 3, 4, 9, 30, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def repos(clock) -> Repositories:
    users = InMemoryUsers()
    sessions = InMemorySessions()
    roster = InMemoryRoster()
    return Repositories(
        users=users,
        sessions=sessions,
        onboarding=InMemoryForms(users, clock),
        roster=roster,
        lifecycle=InMemoryLifecycle(users, roster, sessions),
        attendance=InMemoryAttendance(users),
        audit=InMemoryAudit(clock),
    )


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def storage(tmp_path) -> DocumentStorage:
    return DocumentStorage(tmp_path / "uploads", max_bytes=1024)


@pytest.fixture
def container(repos, mailer, storage, clock):
    return assemble_container(
        repos,
        mailer=mailer,
        storage=storage,
        session_ttl_hours=24,
        notify_policy=NotifyFailurePolicy.LOG,
        clock=clock,
    )


@pytest.fixture
def make_user(repos):
    """Factory that seeds a user directly into the in-memory store."""

    def _make(
        *,
        name: str = "Asha Rao",
        email: Optional[str] = None,
        password: str = "secret123",
        role: Role = Role.EMPLOYEE,
        employee_type: Optional[EmployeeType] = EmployeeType.INTERN,
        state: LifecycleState = LifecycleState.NEW_ACCOUNT,
        department: Optional[str] = "Engineering",
        manager_id: Optional[int] = None,
        join_date: Optional[date] = None,
        is_first_login: bool = False,
    ) -> User:
        user_id = repos.users._next_id
        user = User(
            user_id=user_id,
            name=name,
            email=(email or f"user{user_id}@company.com").lower(),
            password_hash=generate_password_hash(password, method=TEST_HASH_METHOD),
            role=role,
            employee_type=None if role == Role.HR else employee_type,
            manager_id=manager_id,
            department=department,
            join_date=join_date,
            is_first_login=is_first_login,
            lifecycle_state=LifecycleState.APPROVED if role == Role.HR else state,
        )
        return repos.users.add(user)

    return _make


@pytest.fixture
def hr_user(make_user) -> User:
    return make_user(name="HR Admin", email="admin@company.com", password="admin123", role=Role.HR)


@pytest.fixture
def seed_manager(repos) -> MasterEmployee:
    return repos.roster.create(
        NewMasterEmployee(employee_id="100000", name="Default Manager", email="manager@company.com", role="manager")
    )


@pytest.fixture
def app(container) -> Flask:
    app = Flask(__name__)
    app.config["TESTING"] = True
    register_routes(app, container)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(container):
    """Issue a real session for `user` and return the Authorization header."""

    def _headers(user: User) -> dict[str, Any]:
        issued = container.session_service.issue(user.user_id)
        return {"Authorization": f"Bearer {issued.token}"}

    return _headers
