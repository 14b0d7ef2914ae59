from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.onboarding_portal.onboarding_portal.database.bootstrap import apply_seed_sql, ensure_bootstrap_hr


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    seed_path = REPO_ROOT / "database" / "seed.sql"
    apply_seed_sql(db_config, seed_path=seed_path)
    ensure_bootstrap_hr(
        db_config,
        email=settings.BOOTSTRAP_HR_EMAIL,
        password=settings.BOOTSTRAP_HR_PASSWORD,
    )

    print(
        "OK: Seeded database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(HR login: {settings.BOOTSTRAP_HR_EMAIL})"
    )


if __name__ == "__main__":
    main()
