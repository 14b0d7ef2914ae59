from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.onboarding_portal.onboarding_portal.database.bootstrap import apply_schema, list_tables
from src.onboarding_portal.onboarding_portal.database.connection import DBConfig, DatabaseConnection
from src.onboarding_portal.onboarding_portal.sessions.mysql_session_repository import MySQLSessionRepository
from src.onboarding_portal.onboarding_portal.sessions.service import SessionService


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    schema_path = REPO_ROOT / "database" / "schema.sql"
    apply_schema(db_config, schema_path=schema_path)
    tables = list_tables(db_config)

    conn = DatabaseConnection.get_instance(
        DBConfig(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
        )
    )
    purged = SessionService(MySQLSessionRepository(conn)).purge_expired()

    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)}, expired sessions purged={purged})"
    )


if __name__ == "__main__":
    main()
