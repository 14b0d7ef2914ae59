from __future__ import annotations

from datetime import date, datetime
from typing import Iterator, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceFilters, AttendanceRecord, AttendanceReportRow


class AttendanceRepository(Protocol):
    def insert(
        self,
        *,
        user_id: int,
        work_date: date,
        status: AttendanceStatus,
        reason: Optional[str],
        marked_at: datetime,
    ) -> AttendanceRecord:
        """Insert-only; a second row for (user_id, work_date) raises DuplicateAttendanceError."""

        raise NotImplementedError

    def get(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def iter_for_user(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Iterator[AttendanceRecord]:
        raise NotImplementedError

    def query(self, filters: AttendanceFilters) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError

    def count_by_status(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        leaves_greater_than: Optional[int] = None,
    ) -> dict:
        raise NotImplementedError

    def count_active_employees(self) -> int:
        raise NotImplementedError

    def update(
        self,
        record_id: int,
        *,
        status: AttendanceStatus,
        reason: Optional[str],
        updated_by: int,
        updated_at: datetime,
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        raise NotImplementedError
