from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import EmployeeType, RosterStatus
from ..core.exceptions import (
    AlreadyInRosterError,
    EmailTakenError,
    EmployeeIdTakenError,
    ManagerInUseError,
    ManagerNotInRosterError,
)
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    duplicate_key_name,
    fetchall,
    fetchone,
    is_duplicate_key,
    is_missing_parent,
    is_row_referenced,
)
from .model import UPDATABLE_FIELDS, MasterEmployee, NewMasterEmployee, RosterPage
from .repository import RosterRepository

ROSTER_SELECT = """
    SELECT m.employee_id, m.user_id, m.name, m.email, m.personal_email, m.employee_type, m.role,
           m.status, m.department, m.join_date, m.manager_id, m.created_at,
           mgr.name AS manager_name
    FROM master_employees m
    LEFT JOIN master_employees mgr ON mgr.employee_id = m.manager_id
"""

INSERT_ROSTER_SQL = """
    INSERT INTO master_employees(employee_id, user_id, name, email, personal_email, employee_type,
                                 role, status, department, join_date, manager_id)
    VALUES(%s,%s,%s,%s,%s,%s,%s,'active',%s,%s,%s)
"""


def insert_params(record: NewMasterEmployee) -> tuple:
    return (
        record.employee_id,
        record.user_id,
        record.name,
        record.email,
        record.personal_email,
        record.employee_type.value if record.employee_type else None,
        record.role,
        record.department,
        record.join_date,
        record.manager_id,
    )


def row_to_master(row: Dict[str, Any]) -> MasterEmployee:
    return MasterEmployee(
        employee_id=str(row["employee_id"]),
        user_id=int(row["user_id"]) if row.get("user_id") is not None else None,
        name=row["name"],
        email=row["email"],
        personal_email=row.get("personal_email"),
        employee_type=EmployeeType(row["employee_type"]) if row.get("employee_type") else None,
        role=row.get("role") or "employee",
        status=RosterStatus(row["status"]),
        department=row.get("department"),
        join_date=row.get("join_date"),
        manager_id=row.get("manager_id"),
        manager_name=row.get("manager_name"),
        created_at=row.get("created_at"),
    )


def translate_roster_error(err: IntegrityError) -> Exception:
    """Map a master_employees constraint violation to the matching guard error."""
    if is_duplicate_key(err):
        key = duplicate_key_name(err)
        if key == "uq_master_employee_id":
            return EmployeeIdTakenError("Employee ID already exists")
        if key == "uq_master_email":
            return EmailTakenError("Email already exists in the master roster")
        if key == "uq_master_user":
            return AlreadyInRosterError("Employee is already in the master roster")
    if is_missing_parent(err):
        return ManagerNotInRosterError("Manager must already be in the master roster")
    if is_row_referenced(err):
        return ManagerInUseError("Employee is assigned as manager to other employees")
    return err


class MySQLRosterRepository(RosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_id: str) -> Optional[MasterEmployee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{ROSTER_SELECT} WHERE m.employee_id=%s", (employee_id,))
            row = fetchone(cur)
            return row_to_master(row) if row else None

    def get_by_user_id(self, user_id: int) -> Optional[MasterEmployee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{ROSTER_SELECT} WHERE m.user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return row_to_master(row) if row else None

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
        where: list[str] = []
        params: list[Any] = []
        if department:
            where.append("m.department=%s")
            params.append(department)
        if status:
            where.append("m.status=%s")
            params.append(status.value)
        if manager_id:
            where.append("m.manager_id=%s")
            params.append(manager_id)
        if search:
            where.append("(m.name LIKE %s OR m.email LIKE %s OR m.employee_id LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like, like])
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM master_employees m {where_sql}", tuple(params))
            total = int((fetchone(cur) or {}).get("n", 0))

            cur.execute(
                f"{ROSTER_SELECT} {where_sql} ORDER BY m.employee_id LIMIT %s OFFSET %s",
                (*params, int(limit), int((page - 1) * limit)),
            )
            items = [row_to_master(r) for r in fetchall(cur)]

        return RosterPage(items=items, total=total, page=page, limit=limit)

    def create(self, record: NewMasterEmployee) -> MasterEmployee:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(INSERT_ROSTER_SQL, insert_params(record))
                cur.execute(f"{ROSTER_SELECT} WHERE m.employee_id=%s", (record.employee_id,))
                return row_to_master(fetchone(cur))
        except IntegrityError as e:
            translated = translate_roster_error(e)
            if translated is e:
                raise
            raise translated from e

    def update(self, employee_id: str, changes: Mapping[str, Any]) -> Optional[MasterEmployee]:
        fields = [k for k in UPDATABLE_FIELDS if k in changes]
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                if fields:
                    assignments = ", ".join(f"{k}=%s" for k in fields)
                    values = [getattr(changes[k], "value", changes[k]) for k in fields]
                    cur.execute(
                        f"UPDATE master_employees SET {assignments} WHERE employee_id=%s",
                        (*values, employee_id),
                    )
                cur.execute(f"{ROSTER_SELECT} WHERE m.employee_id=%s", (employee_id,))
                row = fetchone(cur)
                return row_to_master(row) if row else None
        except IntegrityError as e:
            translated = translate_roster_error(e)
            if translated is e:
                raise
            raise translated from e

    def set_status(self, employee_id: str, status: RosterStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE master_employees SET status=%s WHERE employee_id=%s", (status.value, employee_id))
            return cur.rowcount > 0

    def count_reports(self, employee_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM master_employees WHERE manager_id=%s", (employee_id,))
            return int((fetchone(cur) or {}).get("n", 0))

    def list_reports(self, employee_id: str) -> Sequence[MasterEmployee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{ROSTER_SELECT} WHERE m.manager_id=%s ORDER BY m.name", (employee_id,))
            return [row_to_master(r) for r in fetchall(cur)]

    def delete(self, employee_id: str) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM master_employees WHERE employee_id=%s", (employee_id,))
                return cur.rowcount > 0
        except IntegrityError as e:
            if is_row_referenced(e):
                raise ManagerInUseError("Cannot delete: employee is assigned as manager to other employees") from e
            raise

    def list_managers(self) -> Sequence[MasterEmployee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{ROSTER_SELECT} WHERE m.status='active' ORDER BY m.name")
            return [row_to_master(r) for r in fetchall(cur)]

    def list_departments(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT department FROM master_employees
                WHERE department IS NOT NULL AND department <> ''
                ORDER BY department
                """
            )
            return [r["department"] for r in fetchall(cur)]
