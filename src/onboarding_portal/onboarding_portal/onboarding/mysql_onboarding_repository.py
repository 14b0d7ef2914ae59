from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..core.enums import DocumentType, EmployeeType, LifecycleState
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import FORM_FIELDS, JSON_FIELDS, Document, FormSummary, NewDocument, OnboardingForm
from .repository import OnboardingRepository

_FORM_COLUMNS = ", ".join(("user_id",) + FORM_FIELDS + ("submitted_at", "updated_at"))


def _row_to_form(row: Dict[str, Any]) -> OnboardingForm:
    values = {name: row.get(name) for name in FORM_FIELDS}
    for name in JSON_FIELDS:
        values[name] = load_json(values[name])
    return OnboardingForm(
        user_id=int(row["user_id"]),
        submitted_at=row.get("submitted_at"),
        updated_at=row.get("updated_at"),
        **values,
    )


def _db_value(name: str, value: Any) -> Any:
    return dump_json(value) if name in JSON_FIELDS else value


class MySQLOnboardingRepository(OnboardingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_form(self, user_id: int) -> Optional[OnboardingForm]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_FORM_COLUMNS} FROM employee_details WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_form(row) if row else None

    def save_submission(
        self,
        user_id: int,
        *,
        values: Mapping[str, Any],
        documents: Sequence[NewDocument],
        allowed_states: Iterable[LifecycleState],
        to_state: LifecycleState,
    ) -> Optional[LifecycleState]:
        allowed = {s.value for s in allowed_states}
        columns = list(FORM_FIELDS)
        params = [_db_value(c, values.get(c)) for c in columns]

        with db_cursor(self._conn_factory) as (_, cur):
            # Row lock serialises this against approve/reject on the same user.
            cur.execute("SELECT lifecycle_state FROM users WHERE id=%s FOR UPDATE", (int(user_id),))
            row = fetchone(cur)
            if not row:
                raise NotFoundError("User not found")
            if row["lifecycle_state"] not in allowed:
                return LifecycleState(row["lifecycle_state"])

            cur.execute(
                f"""
                INSERT INTO employee_details(user_id, {", ".join(columns)})
                VALUES(%s, {", ".join(["%s"] * len(columns))})
                ON DUPLICATE KEY UPDATE {", ".join(f"{c}=VALUES({c})" for c in columns)}
                """,
                (int(user_id), *params),
            )
            for doc in documents:
                cur.execute(
                    """
                    INSERT INTO documents(user_id, document_type, original_name, file_path, file_size,
                                          mime_type, is_required)
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(user_id),
                        doc.document_type.value,
                        doc.original_name,
                        doc.file_path,
                        int(doc.file_size),
                        doc.mime_type,
                        1 if doc.is_required else 0,
                    ),
                )
            cur.execute("UPDATE users SET lifecycle_state=%s WHERE id=%s", (to_state.value, int(user_id)))
        return None

    def update_form(self, user_id: int, changes: Mapping[str, Any]) -> Optional[OnboardingForm]:
        fields = [f for f in FORM_FIELDS if f in changes]
        with db_cursor(self._conn_factory) as (_, cur):
            if fields:
                cur.execute(
                    f"UPDATE employee_details SET {', '.join(f'{f}=%s' for f in fields)} WHERE user_id=%s",
                    (*[_db_value(f, changes[f]) for f in fields], int(user_id)),
                )
            cur.execute(f"SELECT {_FORM_COLUMNS} FROM employee_details WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_form(row) if row else None

    def delete_form(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employee_details WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def list_forms(
        self,
        *,
        state: Optional[LifecycleState] = None,
        search: Optional[str] = None,
    ) -> Sequence[FormSummary]:
        where: list[str] = []
        params: list[Any] = []
        if state:
            where.append("u.lifecycle_state=%s")
            params.append(state.value)
        if search:
            where.append("(u.name LIKE %s OR u.email LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT d.user_id, u.name, u.email, u.employee_type, u.department, u.lifecycle_state,
                       d.submitted_at, d.updated_at,
                       (SELECT COUNT(*) FROM documents doc WHERE doc.user_id = d.user_id) AS document_count
                FROM employee_details d
                JOIN users u ON u.id = d.user_id
                {where_sql}
                ORDER BY d.updated_at DESC
                """,
                tuple(params),
            )
            return [
                FormSummary(
                    user_id=int(r["user_id"]),
                    name=r["name"],
                    email=r["email"],
                    employee_type=EmployeeType(r["employee_type"]) if r.get("employee_type") else None,
                    department=r.get("department"),
                    lifecycle_state=LifecycleState(r["lifecycle_state"]),
                    submitted_at=r.get("submitted_at"),
                    updated_at=r.get("updated_at"),
                    document_count=int(r.get("document_count") or 0),
                )
                for r in fetchall(cur)
            ]

    def list_documents(self, user_id: int) -> Sequence[Document]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, user_id, document_type, original_name, file_path, file_size, mime_type,
                       is_required, uploaded_at
                FROM documents
                WHERE user_id=%s
                ORDER BY uploaded_at, id
                """,
                (int(user_id),),
            )
            return [
                Document(
                    document_id=int(r["id"]),
                    user_id=int(r["user_id"]),
                    document_type=DocumentType(r["document_type"]),
                    original_name=r["original_name"],
                    file_path=r["file_path"],
                    file_size=int(r["file_size"]),
                    mime_type=r["mime_type"],
                    is_required=bool(r["is_required"]),
                    uploaded_at=r.get("uploaded_at"),
                )
                for r in fetchall(cur)
            ]
