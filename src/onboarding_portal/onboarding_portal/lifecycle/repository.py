from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..roster.model import MasterEmployee
from .model import OnboardedEmployee


class LifecycleRepository(Protocol):
    """Multi-table lifecycle steps; each method is a single transaction."""

    def promote_to_master(
        self,
        user_id: int,
        *,
        employee_id: str,
        manager_id: str,
        personal_email: Optional[str] = None,
        department: Optional[str] = None,
        join_date: Optional[date] = None,
    ) -> MasterEmployee:
        raise NotImplementedError

    def soft_delete_employee(self, user_id: int, *, revoked_at: datetime) -> bool:
        raise NotImplementedError

    def hard_delete_employee(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_onboarded(self) -> Sequence[OnboardedEmployee]:
        raise NotImplementedError
