from __future__ import annotations

from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import AuditEntry, AuditPage
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        user_id: Optional[int],
        action: str,
        details: Any,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(user_id, action, details, ip_address, user_agent)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (user_id, action, dump_json(details), ip_address, (user_agent or "")[:255] or None),
            )
            return int(cur.lastrowid)

    def list_page(
        self,
        *,
        page: int,
        limit: int,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
    ) -> AuditPage:
        where: list[str] = []
        params: list[Any] = []
        if user_id is not None:
            where.append("a.user_id=%s")
            params.append(int(user_id))
        if action:
            where.append("a.action=%s")
            params.append(action)
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM audit_logs a {where_sql}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"""
                SELECT a.id, a.user_id, a.action, a.details, a.ip_address, a.user_agent, a.created_at,
                       u.name AS user_name, u.email AS user_email
                FROM audit_logs a
                LEFT JOIN users u ON u.id = a.user_id
                {where_sql}
                ORDER BY a.created_at DESC, a.id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), (int(page) - 1) * int(limit)),
            )
            items = [
                AuditEntry(
                    entry_id=int(r["id"]),
                    user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
                    action=r["action"],
                    details=load_json(r.get("details")),
                    ip_address=r.get("ip_address"),
                    user_agent=r.get("user_agent"),
                    created_at=r.get("created_at"),
                    user_name=r.get("user_name"),
                    user_email=r.get("user_email"),
                )
                for r in fetchall(cur)
            ]
        return AuditPage(items=items, total=total, page=int(page), limit=int(limit))
