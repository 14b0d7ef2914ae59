from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..roster.model import MasterEmployee
from ..users.model import User
from . import transitions


@dataclass(frozen=True)
class OnboardedEmployee:
    """An approved user, with the roster record when one exists."""

    user: User
    employee_id: Optional[str] = None

    @property
    def in_master(self) -> bool:
        return self.employee_id is not None

    def to_dict(self) -> dict:
        out = self.user.to_public_dict()
        out["in_master"] = self.in_master
        out["employee_id"] = self.employee_id
        return out


@dataclass(frozen=True)
class OnboardingStatus:
    user: User
    master_record: Optional[MasterEmployee] = None

    def to_dict(self) -> dict:
        state = self.user.lifecycle_state
        return {
            "user_id": self.user.user_id,
            "lifecycle_state": state.value,
            "status": self.user.status,
            "review_status": transitions.review_status(state).value,
            "is_first_login": self.user.is_first_login,
            "form_submitted": self.user.form_submitted,
            "hr_approved": self.user.hr_approved,
            "onboarded": self.user.onboarded,
            "rejection_reason": self.user.rejection_reason,
            "in_master": self.master_record is not None,
            "employee_id": self.master_record.employee_id if self.master_record else None,
        }
