from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import LifecycleState, RosterStatus
from ..core.exceptions import AlreadyInRosterError, ManagerInUseError, ManagerNotInRosterError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_row_referenced
from ..roster.model import MasterEmployee, NewMasterEmployee
from ..roster.mysql_roster_repository import (
    INSERT_ROSTER_SQL,
    ROSTER_SELECT,
    insert_params,
    row_to_master,
    translate_roster_error,
)
from ..users.mysql_user_repository import USER_COLUMNS, row_to_user
from . import transitions
from .model import OnboardedEmployee
from .repository import LifecycleRepository


class MySQLLifecycleRepository(LifecycleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id=%s FOR UPDATE", (int(user_id),))
            row = fetchone(cur)
            if not row:
                raise NotFoundError("User not found")
            user = row_to_user(row)
            transitions.ensure_can_promote(user.lifecycle_state)

            # The user row lock above serialises promotions of the same user.
            cur.execute("SELECT 1 FROM master_employees WHERE user_id=%s", (user.user_id,))
            if fetchone(cur):
                raise AlreadyInRosterError("Employee is already in the master roster")

            # Shared lock keeps the manager row from being deleted before our insert commits.
            cur.execute(
                "SELECT employee_id, user_id FROM master_employees WHERE employee_id=%s AND status=%s "
                "LOCK IN SHARE MODE",
                (manager_id, RosterStatus.ACTIVE.value),
            )
            manager = fetchone(cur)
            if not manager:
                raise ManagerNotInRosterError("Manager must be an active member of the master roster")

            record = NewMasterEmployee(
                employee_id=employee_id,
                user_id=user.user_id,
                name=user.name,
                email=user.email,
                personal_email=personal_email,
                employee_type=user.employee_type,
                role=user.role.value,
                department=department or user.department,
                join_date=join_date or user.join_date,
                manager_id=manager_id,
            )
            try:
                cur.execute(INSERT_ROSTER_SQL, insert_params(record))
            except IntegrityError as e:
                raise translate_roster_error(e) from e

            if manager.get("user_id") is not None:
                cur.execute(
                    "UPDATE users SET manager_id=%s WHERE id=%s",
                    (int(manager["user_id"]), user.user_id),
                )

            cur.execute(f"{ROSTER_SELECT} WHERE m.employee_id=%s", (employee_id,))
            return row_to_master(fetchone(cur))

    def soft_delete_employee(self, user_id: int, *, revoked_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET lifecycle_state=%s WHERE id=%s AND lifecycle_state<>%s",
                (LifecycleState.DELETED.value, int(user_id), LifecycleState.DELETED.value),
            )
            if cur.rowcount == 0:
                return False
            cur.execute("UPDATE master_employees SET status='deleted' WHERE user_id=%s", (int(user_id),))
            cur.execute(
                "UPDATE sessions SET revoked_at=%s WHERE user_id=%s AND revoked_at IS NULL",
                (revoked_at, int(user_id)),
            )
            return True

    def hard_delete_employee(self, user_id: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM users WHERE id=%s AND role='employee'", (int(user_id),))
                return cur.rowcount > 0
        except IntegrityError as e:
            if is_row_referenced(e):
                raise ManagerInUseError(
                    "Employee is assigned as manager in the master roster; reassign their reports first"
                ) from e
            raise

    def list_onboarded(self) -> Sequence[OnboardedEmployee]:
        columns = ", ".join(f"u.{c.strip()}" for c in USER_COLUMNS.split(","))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {columns}, m.employee_id AS master_employee_id
                FROM users u
                LEFT JOIN master_employees m ON m.user_id = u.id
                WHERE u.role='employee' AND u.lifecycle_state=%s
                ORDER BY u.name
                """,
                (LifecycleState.APPROVED.value,),
            )
            return [
                OnboardedEmployee(user=row_to_user(r), employee_id=r.get("master_employee_id"))
                for r in fetchall(cur)
            ]
