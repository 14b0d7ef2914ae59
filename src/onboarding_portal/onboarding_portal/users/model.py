from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EmployeeType, LifecycleState, Role
from ..lifecycle import transitions


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object (no DB access). `lifecycle_state` is the only stored
    onboarding status; the flags below are projections of it.
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    employee_type: Optional[EmployeeType]
    manager_id: Optional[int]
    department: Optional[str]
    join_date: Optional[date]
    is_first_login: bool
    lifecycle_state: LifecycleState
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def form_submitted(self) -> bool:
        return transitions.is_form_submitted(self.lifecycle_state)

    @property
    def hr_approved(self) -> bool:
        return transitions.is_onboarded(self.lifecycle_state)

    @property
    def onboarded(self) -> bool:
        return transitions.is_onboarded(self.lifecycle_state)

    @property
    def status(self) -> str:
        return transitions.legacy_status(self.lifecycle_state)

    @property
    def is_hr(self) -> bool:
        return self.role == Role.HR

    def to_public_dict(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "employee_type": self.employee_type.value if self.employee_type else None,
            "manager_id": self.manager_id,
            "department": self.department,
            "join_date": self.join_date.isoformat() if self.join_date else None,
            "is_first_login": self.is_first_login,
            "lifecycle_state": self.lifecycle_state.value,
            "status": self.status,
            "form_submitted": self.form_submitted,
            "hr_approved": self.hr_approved,
            "onboarded": self.onboarded,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class EmployeeStatistics:
    total_employees: int
    total_forms: int
    pending_approvals: int
    by_state: dict
    by_department: dict
