from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterator, Optional

from ..core.enums import AttendanceStatus, CalendarStatus, EmployeeType


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one working day."""

    record_id: int
    user_id: int
    work_date: date
    status: AttendanceStatus
    reason: Optional[str]
    marked_at: datetime
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "user_id": self.user_id,
            "date": self.work_date.isoformat(),
            "status": self.status.value,
            "reason": self.reason,
            "marked_at": self.marked_at.isoformat() if self.marked_at else None,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for HR listings and exports (record joined with its owner)."""

    record_id: int
    user_id: int
    employee_name: str
    employee_email: str
    department: Optional[str]
    employee_type: Optional[EmployeeType]
    work_date: date
    status: AttendanceStatus
    reason: Optional[str]
    marked_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "employee_id": self.user_id,
            "employee_name": self.employee_name,
            "employee_email": self.employee_email,
            "department": self.department,
            "employee_type": self.employee_type.value if self.employee_type else None,
            "date": self.work_date.isoformat(),
            "status": self.status.value,
            "reason": self.reason,
            "marked_at": self.marked_at.isoformat() if self.marked_at else None,
        }


@dataclass(frozen=True)
class AttendanceFilters:
    user_id: Optional[int] = None
    department: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None
    status: Optional[AttendanceStatus] = None
    month: Optional[int] = None
    year: Optional[int] = None
    leaves_greater_than: Optional[int] = None


@dataclass(frozen=True)
class AttendanceSummary:
    present: int
    wfh: int
    leave: int
    total: int
    total_employees: int

    def _percent(self, count: int) -> int:
        return round(count / self.total_employees * 100) if self.total_employees else 0

    def to_dict(self) -> dict:
        return {
            "present": self.present,
            "wfh": self.wfh,
            "leave": self.leave,
            "total": self.total,
            "total_employees": self.total_employees,
            "present_percentage": self._percent(self.present),
            "wfh_percentage": self._percent(self.wfh),
            "leave_percentage": self._percent(self.leave),
        }


@dataclass(frozen=True)
class CalendarDay:
    day: date
    is_weekend: bool
    status: CalendarStatus
    reason: Optional[str] = None

    @property
    def day_of_week(self) -> int:
        """0 = Sunday ... 6 = Saturday."""
        return (self.day.weekday() + 1) % 7

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "day_of_week": self.day_of_week,
            "is_weekend": self.is_weekend,
            "status": self.status.value,
            "reason": self.reason,
        }


class AttendanceHistory:
    """Lazy, restartable view over an employee's attendance (newest first).

    Each iteration asks `source` for a fresh iterator, so the history can be
    walked any number of times and always reflects current storage.
    """

    def __init__(self, source: Callable[[], Iterator[AttendanceRecord]]):
        self._source = source

    def __iter__(self) -> Iterator[AttendanceRecord]:
        return iter(self._source())

    def to_list(self) -> list[dict]:
        return [r.to_dict() for r in self]
