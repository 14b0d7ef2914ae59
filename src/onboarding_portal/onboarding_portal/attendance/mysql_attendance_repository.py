from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterator, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus, EmployeeType, LifecycleState
from ..core.exceptions import DuplicateAttendanceError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, is_missing_parent
from .model import AttendanceFilters, AttendanceRecord, AttendanceReportRow
from .repository import AttendanceRepository

_RECORD_COLUMNS = "id, user_id, work_date, status, reason, marked_at, updated_by, updated_at"


def _leave_heavy_users(
    threshold: int,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> tuple[str, list[Any]]:
    """Users with more than `threshold` leaves inside the same date range as the outer query."""
    where = ["status = 'leave'"]
    params: list[Any] = []
    if start:
        where.append("work_date >= %s")
        params.append(start)
    if end:
        where.append("work_date <= %s")
        params.append(end)
    if month and year:
        where.append("MONTH(work_date)=%s AND YEAR(work_date)=%s")
        params.extend([int(month), int(year)])
    params.append(int(threshold))
    sql = f"""
    a.user_id IN (
        SELECT user_id FROM attendance
        WHERE {' AND '.join(where)}
        GROUP BY user_id
        HAVING COUNT(*) > %s
    )
    """
    return sql, params


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        reason=r.get("reason"),
        marked_at=r["marked_at"],
        updated_by=int(r["updated_by"]) if r.get("updated_by") is not None else None,
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(
        self,
        *,
        user_id: int,
        work_date: date,
        status: AttendanceStatus,
        reason: Optional[str],
        marked_at: datetime,
    ) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance(user_id, work_date, status, reason, marked_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(user_id), work_date, status.value, reason, marked_at),
                )
                record_id = int(cur.lastrowid)
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateAttendanceError("Attendance already marked for today") from e
            if is_missing_parent(e):
                raise NotFoundError("User not found") from e
            raise
        return AttendanceRecord(
            record_id=record_id,
            user_id=int(user_id),
            work_date=work_date,
            status=status,
            reason=reason,
            marked_at=marked_at,
        )

    def get(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE id=%s", (int(record_id),))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def iter_for_user(
        self,
        user_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> Iterator[AttendanceRecord]:
        where = ["user_id=%s"]
        params: list[Any] = [int(user_id)]
        if start:
            where.append("work_date >= %s")
            params.append(start)
        if end:
            where.append("work_date <= %s")
            params.append(end)
        limit_sql = ""
        if limit is not None:
            limit_sql = "LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance
                WHERE {' AND '.join(where)}
                ORDER BY work_date DESC
                {limit_sql}
                """,
                tuple(params),
            )
            rows = fetchall(cur)
        for r in rows:
            yield _row_to_record(r)

    def query(self, filters: AttendanceFilters) -> Sequence[AttendanceReportRow]:
        where: list[str] = []
        params: list[Any] = []
        if filters.user_id is not None:
            where.append("a.user_id=%s")
            params.append(int(filters.user_id))
        if filters.department:
            where.append("u.department=%s")
            params.append(filters.department)
        if filters.start:
            where.append("a.work_date >= %s")
            params.append(filters.start)
        if filters.end:
            where.append("a.work_date <= %s")
            params.append(filters.end)
        if filters.month and filters.year:
            where.append("MONTH(a.work_date)=%s AND YEAR(a.work_date)=%s")
            params.extend([int(filters.month), int(filters.year)])
        if filters.status:
            where.append("a.status=%s")
            params.append(filters.status.value)
        if filters.leaves_greater_than:
            sql, sub_params = _leave_heavy_users(
                filters.leaves_greater_than,
                start=filters.start,
                end=filters.end,
                month=filters.month,
                year=filters.year,
            )
            where.append(sql)
            params.extend(sub_params)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT a.id, a.user_id, a.work_date, a.status, a.reason, a.marked_at,
                       u.name AS employee_name, u.email AS employee_email, u.department, u.employee_type
                FROM attendance a
                JOIN users u ON u.id = a.user_id
                {where_sql}
                ORDER BY a.work_date DESC, u.name
                """,
                tuple(params),
            )
            return [
                AttendanceReportRow(
                    record_id=int(r["id"]),
                    user_id=int(r["user_id"]),
                    employee_name=r["employee_name"],
                    employee_email=r["employee_email"],
                    department=r.get("department"),
                    employee_type=EmployeeType(r["employee_type"]) if r.get("employee_type") else None,
                    work_date=r["work_date"],
                    status=AttendanceStatus(r["status"]),
                    reason=r.get("reason"),
                    marked_at=r.get("marked_at"),
                )
                for r in fetchall(cur)
            ]

    def count_by_status(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        leaves_greater_than: Optional[int] = None,
    ) -> dict:
        where: list[str] = []
        params: list[Any] = []
        if start:
            where.append("a.work_date >= %s")
            params.append(start)
        if end:
            where.append("a.work_date <= %s")
            params.append(end)
        if leaves_greater_than:
            sql, sub_params = _leave_heavy_users(leaves_greater_than, start=start, end=end)
            where.append(sql)
            params.extend(sub_params)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT a.status, COUNT(*) AS total FROM attendance a {where_sql} GROUP BY a.status",
                tuple(params),
            )
            return {AttendanceStatus(r["status"]): int(r["total"]) for r in fetchall(cur)}

    def count_active_employees(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS total FROM users WHERE role='employee' AND lifecycle_state=%s",
                (LifecycleState.APPROVED.value,),
            )
            row = fetchone(cur) or {}
            return int(row.get("total") or 0)

    def update(
        self,
        record_id: int,
        *,
        status: AttendanceStatus,
        reason: Optional[str],
        updated_by: int,
        updated_at: datetime,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance SET status=%s, reason=%s, updated_by=%s, updated_at=%s WHERE id=%s",
                (status.value, reason, int(updated_by), updated_at, int(record_id)),
            )
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM attendance WHERE id=%s", (int(record_id),))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def delete(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance WHERE id=%s", (int(record_id),))
            return cur.rowcount > 0
