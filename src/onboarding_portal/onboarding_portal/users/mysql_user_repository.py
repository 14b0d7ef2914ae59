from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import EmployeeType, LifecycleState, Role
from ..core.exceptions import EmailTakenError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, is_missing_parent
from .model import EmployeeStatistics, User
from .repository import UserRepository

USER_COLUMNS = """
    id, name, email, password_hash, role, employee_type, manager_id, department, join_date,
    is_first_login, lifecycle_state, rejection_reason, created_at
"""


def row_to_user(row: Dict[str, Any]) -> User:
    return User(
        user_id=int(row["id"]),
        name=row["name"],
        email=row["email"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        employee_type=EmployeeType(row["employee_type"]) if row.get("employee_type") else None,
        manager_id=int(row["manager_id"]) if row.get("manager_id") is not None else None,
        department=row.get("department"),
        join_date=row.get("join_date"),
        is_first_login=bool(row.get("is_first_login", True)),
        lifecycle_state=LifecycleState(row["lifecycle_state"]),
        rejection_reason=row.get("rejection_reason"),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id=%s", (int(user_id),))
            row = fetchone(cur)
            return row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE email=%s", (email.strip().lower(),))
            row = fetchone(cur)
            return row_to_user(row) if row else None

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
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(name, email, password_hash, role, employee_type, department,
                                      manager_id, join_date, is_first_login, lifecycle_state)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1,'new_account')
                    """,
                    (
                        name,
                        email,
                        password_hash,
                        role.value,
                        employee_type.value if employee_type else None,
                        department,
                        manager_id,
                        join_date,
                    ),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise EmailTakenError("An account with this email already exists") from e
            if is_missing_parent(e):
                raise ValidationError("Manager does not exist") from e
            raise

    def update_password(self, user_id: int, *, password_hash: str, is_first_login: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET password_hash=%s, is_first_login=%s WHERE id=%s",
                (password_hash, 1 if is_first_login else 0, int(user_id)),
            )
            return cur.rowcount > 0

    def set_manager(self, user_id: int, *, manager_id: Optional[int]) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("UPDATE users SET manager_id=%s WHERE id=%s", (manager_id, int(user_id)))
                if cur.rowcount > 0:
                    return True
                cur.execute("SELECT 1 FROM users WHERE id=%s", (int(user_id),))
                # rowcount is 0 when the value is unchanged; the row still exists.
                return fetchone(cur) is not None
        except IntegrityError as e:
            if is_missing_parent(e):
                raise ValidationError("Manager does not exist") from e
            raise

    def transition_state(
        self,
        user_id: int,
        *,
        from_states: Iterable[LifecycleState],
        to_state: LifecycleState,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        states = [s.value for s in from_states]
        if not states:
            return False
        placeholders = ",".join(["%s"] * len(states))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE users
                SET lifecycle_state=%s, rejection_reason=%s
                WHERE id=%s AND lifecycle_state IN ({placeholders})
                """,
                (to_state.value, rejection_reason, int(user_id), *states),
            )
            return cur.rowcount > 0

    def list_employees(
        self,
        *,
        state: Optional[LifecycleState] = None,
        department: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[User]:
        where = ["role='employee'"]
        params: list[Any] = []
        if state:
            where.append("lifecycle_state=%s")
            params.append(state.value)
        if department:
            where.append("department=%s")
            params.append(department)
        if search:
            where.append("(name LIKE %s OR email LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {USER_COLUMNS} FROM users WHERE {' AND '.join(where)} ORDER BY created_at DESC, id DESC",
                tuple(params),
            )
            return [row_to_user(r) for r in fetchall(cur)]

    def list_departments(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT department FROM users WHERE department IS NOT NULL AND department <> ''
                UNION
                SELECT department FROM master_employees WHERE department IS NOT NULL AND department <> ''
                ORDER BY department
                """
            )
            return [r["department"] for r in fetchall(cur)]

    def statistics(self) -> EmployeeStatistics:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT lifecycle_state, COUNT(*) AS n FROM users WHERE role='employee' GROUP BY lifecycle_state"
            )
            by_state = {r["lifecycle_state"]: int(r["n"]) for r in fetchall(cur)}

            cur.execute(
                """
                SELECT department, COUNT(*) AS n FROM users
                WHERE role='employee' AND department IS NOT NULL
                GROUP BY department
                """
            )
            by_department = {r["department"]: int(r["n"]) for r in fetchall(cur)}

            cur.execute("SELECT COUNT(*) AS n FROM employee_details")
            total_forms = int((fetchone(cur) or {}).get("n", 0))

        return EmployeeStatistics(
            total_employees=sum(by_state.values()),
            total_forms=total_forms,
            pending_approvals=by_state.get(LifecycleState.FORM_SUBMITTED.value, 0),
            by_state=by_state,
            by_department=by_department,
        )
