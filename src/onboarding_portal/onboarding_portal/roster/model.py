from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import EmployeeType, RosterStatus

UPDATABLE_FIELDS = (
    "name",
    "email",
    "personal_email",
    "employee_type",
    "role",
    "status",
    "department",
    "join_date",
    "manager_id",
)


@dataclass(frozen=True)
class MasterEmployee:
    """Domain entity: a record in the master employee roster."""

    employee_id: str
    user_id: Optional[int]
    name: str
    email: str
    personal_email: Optional[str]
    employee_type: Optional[EmployeeType]
    role: str
    status: RosterStatus
    department: Optional[str]
    join_date: Optional[date]
    manager_id: Optional[str]
    manager_name: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "personal_email": self.personal_email,
            "employee_type": self.employee_type.value if self.employee_type else None,
            "role": self.role,
            "status": self.status.value,
            "department": self.department,
            "join_date": self.join_date.isoformat() if self.join_date else None,
            "manager_id": self.manager_id,
            "manager_name": self.manager_name,
        }


@dataclass(frozen=True)
class NewMasterEmployee:
    employee_id: str
    name: str
    email: str
    user_id: Optional[int] = None
    personal_email: Optional[str] = None
    employee_type: Optional[EmployeeType] = None
    role: str = "employee"
    department: Optional[str] = None
    join_date: Optional[date] = None
    manager_id: Optional[str] = None


@dataclass(frozen=True)
class RosterPage:
    items: Sequence[MasterEmployee]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0

    def to_dict(self) -> dict:
        return {
            "employees": [e.to_dict() for e in self.items],
            "pagination": {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages},
        }


@dataclass(frozen=True)
class RosterProfile:
    record: MasterEmployee
    manager: Optional[MasterEmployee]
    direct_reports: Sequence[MasterEmployee] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "employee": self.record.to_dict(),
            "manager": self.manager.to_dict() if self.manager else None,
            "direct_reports": [r.to_dict() for r in self.direct_reports],
        }
