from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from ..audit.model import RequestOrigin
from ..audit.service import AuditService
from ..common.datetime_utils import now_local, parse_optional_date
from ..common.validators import optional_email, require_employee_id, require_hr
from ..core.enums import LifecycleState, Role
from ..core.exceptions import InvalidTransitionError, ManagerInUseError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..roster.model import MasterEmployee
from ..roster.repository import RosterRepository
from ..sessions.service import SessionService
from ..users.model import User
from ..users.repository import UserRepository
from . import transitions
from .model import OnboardedEmployee, OnboardingStatus
from .repository import LifecycleRepository

logger = logging.getLogger(__name__)


class LifecycleService:
    """HR-driven transitions: approve, reject, promote to roster, delete."""

    def __init__(
        self,
        users: UserRepository,
        lifecycle: LifecycleRepository,
        roster: RosterRepository,
        sessions: SessionService,
        notifications: NotificationService,
        audit: AuditService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._lifecycle = lifecycle
        self._roster = roster
        self._sessions = sessions
        self._notifications = notifications
        self._audit = audit
        self._clock = clock

    def approve(
        self,
        *,
        current_role: Role,
        actor_id: int,
        user_id: int,
        origin: Optional[RequestOrigin] = None,
    ) -> User:
        require_hr(current_role)
        user = self._require_employee(user_id)

        changed = self._users.transition_state(
            user.user_id,
            from_states=transitions.REVIEWABLE_FROM,
            to_state=LifecycleState.APPROVED,
        )
        if not changed:
            self._refuse_review(user.user_id)

        approved = self._require_employee(user.user_id)
        email_sent = self._notifications.approved(approved)
        self._audit.record(
            actor_id,
            "APPROVE_EMPLOYEE",
            {"employee_id": approved.user_id, "email": approved.email, "email_sent": email_sent},
            origin=origin,
        )
        logger.info("employee %s approved by %s", approved.user_id, actor_id)
        return approved

    def reject(
        self,
        *,
        current_role: Role,
        actor_id: int,
        user_id: int,
        reason: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> User:
        require_hr(current_role)
        user = self._require_employee(user_id)
        reason = (reason or "").strip() or None

        changed = self._users.transition_state(
            user.user_id,
            from_states=transitions.REVIEWABLE_FROM,
            to_state=LifecycleState.REJECTED,
            rejection_reason=reason,
        )
        if not changed:
            self._refuse_review(user.user_id)

        self._sessions.revoke_all(user.user_id)
        rejected = self._require_employee(user.user_id)
        email_sent = self._notifications.rejected(rejected, reason)
        self._audit.record(
            actor_id,
            "REJECT_EMPLOYEE",
            {"employee_id": rejected.user_id, "email": rejected.email, "reason": reason, "email_sent": email_sent},
            origin=origin,
        )
        logger.info("employee %s rejected by %s", rejected.user_id, actor_id)
        return rejected

    def add_to_master(
        self,
        *,
        current_role: Role,
        actor_id: int,
        user_id: int,
        employee_id: Any,
        manager_id: Any,
        personal_email: Optional[str] = None,
        department: Optional[str] = None,
        join_date: Any = None,
        origin: Optional[RequestOrigin] = None,
    ) -> MasterEmployee:
        require_hr(current_role)
        employee_id = require_employee_id(employee_id)
        if manager_id is None or not str(manager_id).strip():
            raise ValidationError("Manager is required")
        manager_id = str(manager_id).strip()
        if manager_id == employee_id:
            raise ValidationError("An employee cannot be their own manager")

        user = self._require_employee(user_id)
        transitions.ensure_can_promote(user.lifecycle_state)

        record = self._lifecycle.promote_to_master(
            user.user_id,
            employee_id=employee_id,
            manager_id=manager_id,
            personal_email=optional_email(personal_email, "Personal email"),
            department=(department or "").strip() or None,
            join_date=parse_optional_date(join_date, "Join date"),
        )
        self._audit.record(
            actor_id,
            "ADD_TO_MASTER",
            {"user_id": user.user_id, "employee_id": record.employee_id, "manager_id": manager_id},
            origin=origin,
        )
        logger.info("user %s added to master roster as %s", user.user_id, record.employee_id)
        return record

    def delete_employee(
        self,
        *,
        current_role: Role,
        actor_id: int,
        user_id: int,
        hard: bool = False,
        origin: Optional[RequestOrigin] = None,
    ) -> User:
        require_hr(current_role)
        user = self._require_employee(user_id)

        if hard:
            record = self._roster.get_by_user_id(user.user_id)
            if record:
                reports = self._roster.count_reports(record.employee_id)
                if reports:
                    raise ManagerInUseError(
                        f"Cannot delete: employee is assigned as manager to {reports} other employee(s)"
                    )
            if not self._lifecycle.hard_delete_employee(user.user_id):
                raise NotFoundError("Employee not found")
        else:
            transitions.ensure_can_delete(user.lifecycle_state)
            if not self._lifecycle.soft_delete_employee(user.user_id, revoked_at=self._clock()):
                transitions.ensure_can_delete(LifecycleState.DELETED)

        self._audit.record(
            actor_id,
            "HARD_DELETE_EMPLOYEE" if hard else "DELETE_EMPLOYEE",
            {"employee_id": user.user_id, "email": user.email},
            origin=origin,
        )
        logger.info("employee %s %s by %s", user.user_id, "hard-deleted" if hard else "deleted", actor_id)
        return user

    def onboarded_employees(self, *, current_role: Role) -> Sequence[OnboardedEmployee]:
        require_hr(current_role)
        return self._lifecycle.list_onboarded()

    def onboarding_status(self, user_id: int) -> OnboardingStatus:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return OnboardingStatus(user=user, master_record=self._roster.get_by_user_id(user.user_id))

    def _refuse_review(self, user_id: int) -> None:
        # The conditional update matched no row; explain using the state as it is now.
        transitions.ensure_can_review(self._require_employee(user_id).lifecycle_state)
        raise InvalidTransitionError("Employee state changed during review; please retry")

    def _require_employee(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user or user.role != Role.EMPLOYEE:
            raise NotFoundError("Employee not found")
        return user
