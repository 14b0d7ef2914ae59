from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_optional_date
from ..common.validators import (
    is_valid_employee_id,
    optional_email,
    optional_enum,
    require_email,
    require_employee_id,
    require_enum,
    require_hr,
    require_non_empty,
)
from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from ..core.enums import EmployeeType, Role, RosterStatus
from ..core.exceptions import ManagerInUseError, ManagerNotInRosterError, NotFoundError, ValidationError
from .model import MasterEmployee, NewMasterEmployee, RosterPage, RosterProfile
from .repository import RosterRepository


class RosterService:
    """Use case: browse and maintain the master employee roster."""

    def __init__(self, roster: RosterRepository):
        self._roster = roster

    def list(
        self,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        department: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        manager_id: Optional[str] = None,
    ) -> RosterPage:
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_LIMIT, max(1, int(limit or DEFAULT_PAGE_LIMIT)))
        return self._roster.list_page(
            page=page,
            limit=limit,
            department=(department or "").strip() or None,
            status=optional_enum(RosterStatus, status, "Status"),
            search=(search or "").strip() or None,
            manager_id=(manager_id or "").strip() or None,
        )

    def get(self, employee_id: str) -> MasterEmployee:
        record = self._roster.get(str(employee_id).strip())
        if not record:
            raise NotFoundError("Employee not found in master roster")
        return record

    def profile(self, employee_id: str) -> RosterProfile:
        return self._profile_of(self.get(employee_id))

    def profile_for_user(self, user_id: int) -> RosterProfile:
        record = self._roster.get_by_user_id(int(user_id))
        if not record:
            raise NotFoundError("You have not been added to the master roster yet")
        return self._profile_of(record)

    def _profile_of(self, record: MasterEmployee) -> RosterProfile:
        manager = self._roster.get(record.manager_id) if record.manager_id else None
        return RosterProfile(
            record=record,
            manager=manager,
            direct_reports=tuple(self._roster.list_reports(record.employee_id)),
        )

    def create(
        self,
        *,
        current_role: Role,
        employee_id: str,
        name: str,
        email: str,
        personal_email: Optional[str] = None,
        employee_type: Optional[str] = None,
        role: Optional[str] = None,
        department: Optional[str] = None,
        join_date: Any = None,
        manager_id: Optional[str] = None,
    ) -> MasterEmployee:
        """Direct roster insert, used for records with no portal account (e.g. seeding managers)."""
        require_hr(current_role)
        employee_id = require_employee_id(employee_id)
        manager = self._require_manager(manager_id, for_employee_id=employee_id) if manager_id else None

        return self._roster.create(
            NewMasterEmployee(
                employee_id=employee_id,
                name=require_non_empty(name, "Name"),
                email=require_email(email),
                personal_email=optional_email(personal_email, "Personal email"),
                employee_type=optional_enum(EmployeeType, employee_type, "Employee type"),
                role=(role or "").strip() or "employee",
                department=(department or "").strip() or None,
                join_date=parse_optional_date(join_date, "Join date"),
                manager_id=manager.employee_id if manager else None,
            )
        )

    def update(self, *, current_role: Role, employee_id: str, changes: Mapping[str, Any]) -> MasterEmployee:
        """Partial update: only keys present in `changes` are written."""
        require_hr(current_role)
        current = self.get(employee_id)

        clean: dict[str, Any] = {}
        if "name" in changes:
            clean["name"] = require_non_empty(changes["name"], "Name")
        if "email" in changes:
            clean["email"] = require_email(changes["email"])
        if "personal_email" in changes:
            clean["personal_email"] = optional_email(changes["personal_email"], "Personal email")
        if "employee_type" in changes:
            clean["employee_type"] = optional_enum(EmployeeType, changes["employee_type"], "Employee type")
        if "role" in changes:
            clean["role"] = require_non_empty(changes["role"], "Role")
        if "status" in changes:
            clean["status"] = require_enum(RosterStatus, changes["status"], "Status")
        if "department" in changes:
            clean["department"] = (changes["department"] or "").strip() or None
        if "join_date" in changes:
            clean["join_date"] = parse_optional_date(changes["join_date"], "Join date")
        if "manager_id" in changes:
            manager_id = changes["manager_id"]
            clean["manager_id"] = (
                self._require_manager(manager_id, for_employee_id=current.employee_id).employee_id
                if manager_id
                else None
            )

        if not clean:
            raise ValidationError("No fields to update")

        updated = self._roster.update(current.employee_id, clean)
        if not updated:
            raise NotFoundError("Employee not found in master roster")
        return updated

    def deactivate(self, *, current_role: Role, employee_id: str) -> MasterEmployee:
        require_hr(current_role)
        record = self.get(employee_id)
        self._roster.set_status(record.employee_id, RosterStatus.INACTIVE)
        return self.get(record.employee_id)

    def delete_permanent(self, *, current_role: Role, employee_id: str) -> MasterEmployee:
        require_hr(current_role)
        record = self.get(employee_id)
        reports = self._roster.count_reports(record.employee_id)
        if reports:
            raise ManagerInUseError(
                f"Cannot delete: employee is assigned as manager to {reports} other employee(s)"
            )
        self._roster.delete(record.employee_id)
        return record

    def check_employee_id(self, employee_id: str) -> dict:
        employee_id = str(employee_id or "").strip()
        if not is_valid_employee_id(employee_id):
            return {"employee_id": employee_id, "valid": False, "available": False,
                    "message": "Employee ID must be exactly 6 digits"}
        available = self._roster.get(employee_id) is None
        return {
            "employee_id": employee_id,
            "valid": True,
            "available": available,
            "message": "Employee ID is available" if available else "Employee ID already exists",
        }

    def managers(self) -> Sequence[MasterEmployee]:
        return self._roster.list_managers()

    def departments(self) -> Sequence[str]:
        return self._roster.list_departments()

    def _require_manager(self, manager_id: Any, *, for_employee_id: str) -> MasterEmployee:
        manager_id = str(manager_id).strip()
        if manager_id == for_employee_id:
            raise ValidationError("An employee cannot be their own manager")
        manager = self._roster.get(manager_id)
        if not manager or manager.status != RosterStatus.ACTIVE:
            raise ManagerNotInRosterError("Manager must be an active member of the master roster")

        # Walk up the chain so a reassignment cannot create a reporting loop.
        seen = {for_employee_id}
        cursor = manager
        while cursor and cursor.manager_id:
            if cursor.manager_id in seen:
                raise ValidationError("Manager assignment would create a reporting cycle")
            seen.add(cursor.employee_id)
            cursor = self._roster.get(cursor.manager_id)
        return manager
