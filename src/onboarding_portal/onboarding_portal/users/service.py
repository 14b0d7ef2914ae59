from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_email, require_enum, require_hr, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH, TEMP_PASSWORD_LENGTH
from ..core.enums import EmployeeType, LifecycleState, NotifyFailurePolicy, Role, RosterStatus
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from ..notifications.service import NotificationService
from ..roster.repository import RosterRepository
from ..sessions.service import SessionService
from .model import EmployeeStatistics, User
from .repository import UserRepository

logger = logging.getLogger(__name__)

_TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    while True:
        candidate = "".join(secrets.choice(_TEMP_PASSWORD_ALPHABET) for _ in range(length))
        if any(c.isdigit() for c in candidate) and any(c.isalpha() for c in candidate):
            return candidate


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (ValueError, TypeError):
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


@dataclass(frozen=True)
class CreatedAccount:
    user: User
    temp_password: str
    email_sent: bool


class AuthService:
    """Use case: authenticate users and manage their own password."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, email: str, password: str) -> User:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(email)
        if not user or not _password_matches(user.password_hash, password):
            raise AuthenticationError("Invalid credentials")

        self._ensure_may_sign_in(user)
        return user

    def resolve_user(self, user_id: int) -> User:
        """Load the acting user for an already-validated session."""
        user = self._users.get_by_id(user_id)
        if not user:
            raise AuthenticationError("User not found")
        self._ensure_may_sign_in(user)
        return user

    @staticmethod
    def _ensure_may_sign_in(user: User) -> None:
        if user.lifecycle_state == LifecycleState.DELETED:
            raise AuthorizationError("This account has been deactivated")
        if user.lifecycle_state == LifecycleState.REJECTED:
            raise AuthorizationError("Your onboarding was rejected. Please contact HR.")

    def change_password(self, *, user_id: int, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Current password and new password are required")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not _password_matches(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")

        self._users.update_password(
            user.user_id,
            password_hash=generate_password_hash(new_password),
            is_first_login=False,
        )


class AccountService:
    """Use case: HR-managed employee accounts."""

    def __init__(
        self,
        users: UserRepository,
        notifications: NotificationService,
        sessions: SessionService,
        roster: Optional[RosterRepository] = None,
    ):
        self._users = users
        self._notifications = notifications
        self._sessions = sessions
        self._roster = roster

    def create_employee(
        self,
        *,
        current_role: Role,
        name: str,
        email: str,
        employee_type: str,
        department: str,
        manager_id: Optional[int] = None,
        join_date: Optional[date] = None,
    ) -> CreatedAccount:
        require_hr(current_role)
        name = require_non_empty(name, "Name")
        email = require_email(email)
        emp_type = require_enum(EmployeeType, employee_type, "Employee type")
        department = require_non_empty(department, "Department")

        if manager_id is not None and not self._users.get_by_id(int(manager_id)):
            raise ValidationError("Manager does not exist")

        temp_password = generate_temp_password()
        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(temp_password),
            role=Role.EMPLOYEE,
            employee_type=emp_type,
            department=department,
            manager_id=int(manager_id) if manager_id is not None else None,
            join_date=join_date,
        )
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("Employee not found after creation")

        email_sent = self._notifications.welcome(user, temp_password)
        logger.info("employee account %s created (email_sent=%s)", user.email, email_sent)
        return CreatedAccount(user=user, temp_password=temp_password, email_sent=email_sent)

    def list_employees(
        self,
        *,
        status: Optional[str] = None,
        department: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        state = require_enum(LifecycleState, status, "Status") if status else None
        return self._users.list_employees(
            state=state,
            department=(department or "").strip() or None,
            search=(search or "").strip() or None,
        )

    def get_employee(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user or user.role != Role.EMPLOYEE:
            raise NotFoundError("Employee not found")
        return user

    def assign_manager(self, *, current_role: Role, user_id: int, manager_id: Optional[int]) -> User:
        require_hr(current_role)
        user = self.get_employee(user_id)

        if manager_id is not None:
            manager_id = int(manager_id)
            if manager_id == user.user_id:
                raise ValidationError("An employee cannot be their own manager")
            if not self._users.get_by_id(manager_id):
                raise ValidationError("Manager does not exist")

        self._users.set_manager(user.user_id, manager_id=manager_id)

        if self._roster is not None:
            record = self._roster.get_by_user_id(user.user_id)
            manager_record = self._roster.get_by_user_id(manager_id) if manager_id is not None else None
            if manager_record and manager_record.status != RosterStatus.ACTIVE:
                manager_record = None
            if record and (manager_record or manager_id is None):
                self._roster.update(
                    record.employee_id,
                    {"manager_id": manager_record.employee_id if manager_record else None},
                )

        return self.get_employee(user.user_id)

    def resend_credentials(self, *, current_role: Role, user_id: int) -> CreatedAccount:
        """Issue a fresh temporary password.

        The email is required here: HR has no other channel to hand the
        password over, so delivery failures always propagate. The new
        password is only stored once the email has gone out, so a failed
        send leaves the current password and sessions untouched.
        """
        require_hr(current_role)
        user = self.get_employee(user_id)
        if user.lifecycle_state == LifecycleState.DELETED:
            raise ValidationError("Cannot resend credentials to a deleted employee")

        temp_password = generate_temp_password()
        self._notifications.credentials_reset(user, temp_password, policy=NotifyFailurePolicy.RAISE)
        self._users.update_password(
            user.user_id,
            password_hash=generate_password_hash(temp_password),
            is_first_login=True,
        )
        self._sessions.revoke_all(user.user_id)
        return CreatedAccount(user=self.get_employee(user.user_id), temp_password=temp_password, email_sent=True)

    def departments(self) -> Sequence[str]:
        return self._users.list_departments()

    def statistics(self, *, current_role: Role) -> EmployeeStatistics:
        require_hr(current_role)
        return self._users.statistics()
