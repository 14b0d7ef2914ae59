from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import RosterStatus
from .model import MasterEmployee, NewMasterEmployee, RosterPage


class RosterRepository(Protocol):
    def get(self, employee_id: str) -> Optional[MasterEmployee]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: int) -> Optional[MasterEmployee]:
        raise NotImplementedError

    def list_page(
        self,
        *,
        page: int,
        limit: int,
        department: Optional[str] = None,
        status: Optional[RosterStatus] = None,
        search: Optional[str] = None,
        manager_id: Optional[str] = None,
    ) -> RosterPage:
        raise NotImplementedError

    def create(self, record: NewMasterEmployee) -> MasterEmployee:
        """Insert; unique violations surface as EmployeeIdTakenError / EmailTakenError / AlreadyInRosterError."""

        raise NotImplementedError

    def update(self, employee_id: str, changes: Mapping[str, Any]) -> Optional[MasterEmployee]:
        raise NotImplementedError

    def set_status(self, employee_id: str, status: RosterStatus) -> bool:
        raise NotImplementedError

    def count_reports(self, employee_id: str) -> int:
        raise NotImplementedError

    def list_reports(self, employee_id: str) -> Sequence[MasterEmployee]:
        raise NotImplementedError

    def delete(self, employee_id: str) -> bool:
        """Hard delete; raises ManagerInUseError if still referenced as a manager."""

        raise NotImplementedError

    def list_managers(self) -> Sequence[MasterEmployee]:
        raise NotImplementedError

    def list_departments(self) -> Sequence[str]:
        raise NotImplementedError
