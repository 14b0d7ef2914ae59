from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..audit.model import RequestOrigin
from ..audit.service import AuditService
from ..common.datetime_utils import is_weekend, iter_month, month_bounds, now_local, parse_optional_date
from ..common.validators import is_blank, optional_enum, require_enum, require_hr
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, CalendarStatus, ExportFormat, Role
from ..core.exceptions import NotFoundError, NotOnboardedError, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .export import ExportFile, export_rows
from .model import (
    AttendanceFilters,
    AttendanceHistory,
    AttendanceRecord,
    AttendanceReportRow,
    AttendanceSummary,
    CalendarDay,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field_name} must be a number")


def _first(args: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = args.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_filters(args: Mapping[str, Any]) -> AttendanceFilters:
    """Build report filters from query-string style arguments (snake_case or camelCase)."""
    start = parse_optional_date(_first(args, "start_date", "startDate", "start"), "Start date")
    end = parse_optional_date(_first(args, "end_date", "endDate", "end"), "End date")
    if start and end and start > end:
        raise ValidationError("Start date must be on or before end date")

    month = _optional_int(args.get("month"), "Month")
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")

    leaves = _optional_int(_first(args, "leaves_greater_than", "leavesGreaterThan"), "Leaves greater than")
    return AttendanceFilters(
        user_id=_optional_int(_first(args, "employee_id", "employeeId", "user_id"), "Employee id"),
        department=(args.get("department") or "").strip() or None,
        start=start,
        end=end,
        status=optional_enum(AttendanceStatus, args.get("status"), "Status"),
        month=month,
        year=_optional_int(args.get("year"), "Year"),
        leaves_greater_than=leaves if leaves and leaves > 0 else None,
    )


class AttendanceService:
    """Use case: daily attendance marking, history, calendars and HR reporting."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        audit: AuditService,
        *,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._audit = audit
        self._history_limit = int(history_limit)
        self._clock = clock

    def mark(
        self,
        *,
        user_id: int,
        status: Any,
        reason: Optional[str] = None,
        on: Optional[date] = None,
    ) -> AttendanceRecord:
        user = self._require_user(user_id)
        if not user.onboarded:
            raise NotOnboardedError("Onboarding must be approved by HR before marking attendance")

        status = require_enum(AttendanceStatus, status, "Status")
        now = self._clock()
        work_date = on or now.date()
        if is_weekend(work_date):
            raise ValidationError("Attendance cannot be marked on weekends")

        reason = (reason or "").strip() or None
        if status == AttendanceStatus.LEAVE and is_blank(reason):
            raise ValidationError("Reason is required for leave")

        record = self._attendance.insert(
            user_id=user.user_id,
            work_date=work_date,
            status=status,
            reason=reason,
            marked_at=now,
        )
        logger.info("attendance %s marked for user %s on %s", status.value, user.user_id, work_date)
        return record

    def today(self, user_id: int) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(int(user_id), self._clock().date())

    def get_range(
        self,
        user_id: int,
        start: Any = None,
        end: Any = None,
    ) -> AttendanceHistory:
        start_d = parse_optional_date(start, "Start date")
        end_d = parse_optional_date(end, "End date")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("Start date must be on or before end date")

        limit = self._history_limit if not (start_d or end_d) else None
        uid = int(user_id)
        return AttendanceHistory(
            lambda: self._attendance.iter_for_user(uid, start=start_d, end=end_d, limit=limit)
        )

    def build_calendar(self, user_id: int, month: Any = None, year: Any = None) -> list[CalendarDay]:
        today = self._clock().date()
        month = _optional_int(month, "Month")
        year = _optional_int(year, "Year")
        if month is None:
            month = today.month
        if year is None:
            year = today.year
        first, last = month_bounds(year, month)

        by_date = {r.work_date: r for r in self._attendance.iter_for_user(int(user_id), start=first, end=last)}

        days: list[CalendarDay] = []
        for day in iter_month(year, month):
            if is_weekend(day):
                # Weekends always read as weekend, even if a stray record exists.
                days.append(CalendarDay(day=day, is_weekend=True, status=CalendarStatus.WEEKEND))
                continue
            record = by_date.get(day)
            if record:
                days.append(
                    CalendarDay(
                        day=day,
                        is_weekend=False,
                        status=CalendarStatus(record.status.value),
                        reason=record.reason,
                    )
                )
            else:
                days.append(CalendarDay(day=day, is_weekend=False, status=CalendarStatus.NOT_MARKED))
        return days

    def employee_calendar(
        self,
        *,
        current_role: Role,
        user_id: int,
        month: Any = None,
        year: Any = None,
    ) -> tuple[User, list[CalendarDay]]:
        require_hr(current_role)
        user = self._require_user(user_id)
        return user, self.build_calendar(user.user_id, month, year)

    def query(self, *, current_role: Role, filters: AttendanceFilters) -> Sequence[AttendanceReportRow]:
        require_hr(current_role)
        return self._attendance.query(filters)

    def summary(
        self,
        *,
        current_role: Role,
        start: Any = None,
        end: Any = None,
        leaves_greater_than: Any = None,
    ) -> AttendanceSummary:
        require_hr(current_role)
        start_d = parse_optional_date(start, "Start date")
        end_d = parse_optional_date(end, "End date")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("Start date must be on or before end date")
        leaves = _optional_int(leaves_greater_than, "Leaves greater than")

        counts = self._attendance.count_by_status(
            start=start_d,
            end=end_d,
            leaves_greater_than=leaves if leaves and leaves > 0 else None,
        )
        present = counts.get(AttendanceStatus.PRESENT, 0)
        wfh = counts.get(AttendanceStatus.WFH, 0)
        leave = counts.get(AttendanceStatus.LEAVE, 0)
        return AttendanceSummary(
            present=present,
            wfh=wfh,
            leave=leave,
            total=present + wfh + leave,
            total_employees=self._attendance.count_active_employees(),
        )

    def update_record(
        self,
        *,
        current_role: Role,
        actor_id: int,
        record_id: int,
        status: Any,
        reason: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> AttendanceRecord:
        require_hr(current_role)
        status = require_enum(AttendanceStatus, status, "Status")
        reason = (reason or "").strip() or None
        if status == AttendanceStatus.LEAVE and is_blank(reason):
            raise ValidationError("Reason is required for leave")

        before = self._attendance.get(int(record_id))
        if not before:
            raise NotFoundError("Attendance record not found")

        updated = self._attendance.update(
            before.record_id,
            status=status,
            reason=reason,
            updated_by=int(actor_id),
            updated_at=self._clock(),
        )
        if not updated:
            raise NotFoundError("Attendance record not found")

        self._audit.record(
            actor_id,
            "UPDATE_ATTENDANCE",
            {
                "attendance_id": before.record_id,
                "user_id": before.user_id,
                "old_status": before.status.value,
                "new_status": status.value,
                "reason": reason,
            },
            origin=origin,
        )
        return updated

    def delete_record(
        self,
        *,
        current_role: Role,
        actor_id: int,
        record_id: int,
        origin: Optional[RequestOrigin] = None,
    ) -> AttendanceRecord:
        require_hr(current_role)
        record = self._attendance.get(int(record_id))
        if not record or not self._attendance.delete(record.record_id):
            raise NotFoundError("Attendance record not found")

        self._audit.record(
            actor_id,
            "DELETE_ATTENDANCE",
            {"attendance_id": record.record_id, "user_id": record.user_id, "date": record.work_date.isoformat()},
            origin=origin,
        )
        return record

    def export(self, *, current_role: Role, filters: AttendanceFilters, fmt: Any = "csv") -> ExportFile:
        require_hr(current_role)
        fmt = require_enum(ExportFormat, fmt or "csv", "Format")
        rows = self._attendance.query(filters)
        stem = "attendance_{}_{}".format(
            filters.start.isoformat() if filters.start else "all",
            filters.end.isoformat() if filters.end else "data",
        )
        return export_rows(rows, fmt, filename_stem=stem, exported_at=self._clock())

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("Employee not found")
        return user
