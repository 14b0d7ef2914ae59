from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import EmployeeType, LifecycleState, Role
from .model import EmployeeStatistics, User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: Role,
        employee_type: Optional[EmployeeType],
        department: Optional[str],
        manager_id: Optional[int] = None,
        join_date: Optional[date] = None,
    ) -> int:
        """Insert a user; raises EmailTakenError on the unique email index."""

        raise NotImplementedError

    def update_password(self, user_id: int, *, password_hash: str, is_first_login: bool) -> bool:
        raise NotImplementedError

    def set_manager(self, user_id: int, *, manager_id: Optional[int]) -> bool:
        raise NotImplementedError

    def transition_state(
        self,
        user_id: int,
        *,
        from_states: Iterable[LifecycleState],
        to_state: LifecycleState,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Conditional update: applies only while the row is in one of `from_states`."""

        raise NotImplementedError

    def list_employees(
        self,
        *,
        state: Optional[LifecycleState] = None,
        department: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        raise NotImplementedError

    def list_departments(self) -> Sequence[str]:
        raise NotImplementedError

    def statistics(self) -> EmployeeStatistics:
        raise NotImplementedError
