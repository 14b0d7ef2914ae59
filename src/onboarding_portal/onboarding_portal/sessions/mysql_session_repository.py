from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Session
from .repository import SessionRepository


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        token_hash: str,
        user_id: int,
        created_at: datetime,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions(token_hash, user_id, created_at, expires_at, ip_address, user_agent)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (token_hash, int(user_id), created_at, expires_at, ip_address, (user_agent or "")[:255] or None),
            )
            return int(cur.lastrowid)

    def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, token_hash, user_id, created_at, expires_at, revoked_at
                FROM sessions
                WHERE token_hash=%s
                """,
                (token_hash,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Session(
                session_id=int(r["id"]),
                token_hash=r["token_hash"],
                user_id=int(r["user_id"]),
                created_at=r["created_at"],
                expires_at=r["expires_at"],
                revoked_at=r.get("revoked_at"),
            )

    def revoke(self, token_hash: str, *, revoked_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET revoked_at=%s WHERE token_hash=%s AND revoked_at IS NULL",
                (revoked_at, token_hash),
            )
            return cur.rowcount > 0

    def revoke_all_for_user(self, user_id: int, *, revoked_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE sessions SET revoked_at=%s WHERE user_id=%s AND revoked_at IS NULL",
                (revoked_at, int(user_id)),
            )
            return int(cur.rowcount or 0)

    def purge_expired(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sessions WHERE expires_at < %s OR revoked_at IS NOT NULL", (now,))
            return int(cur.rowcount or 0)
