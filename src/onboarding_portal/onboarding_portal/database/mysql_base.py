from __future__ import annotations

import json
import re
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from .connection import DatabaseConnection

_DUP_KEY_RE = re.compile(r"for key '([^']+)'")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(err: IntegrityError) -> bool:
    return getattr(err, "errno", None) == errorcode.ER_DUP_ENTRY


def is_row_referenced(err: IntegrityError) -> bool:
    return getattr(err, "errno", None) in {errorcode.ER_ROW_IS_REFERENCED_2, errorcode.ER_ROW_IS_REFERENCED}


def is_missing_parent(err: IntegrityError) -> bool:
    return getattr(err, "errno", None) in {errorcode.ER_NO_REFERENCED_ROW_2, errorcode.ER_NO_REFERENCED_ROW}


def duplicate_key_name(err: IntegrityError) -> str:
    """Index name from a 1062 message.

    MySQL 8 reports `table.index`, 5.7 only `index`; both map to the bare index name.
    """
    match = _DUP_KEY_RE.search(str(getattr(err, "msg", "") or err))
    if not match:
        return ""
    return match.group(1).rsplit(".", 1)[-1]


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, default=_json_default)


def load_json(value: Any) -> Any:
    # JSON columns come back as str (pure connector) or bytes (C extension).
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value) if value else None
    return value


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Unsupported JSON value type: {type(value)!r}")
