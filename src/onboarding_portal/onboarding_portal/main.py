from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .audit.controller import register as register_audit
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.enums import DocumentType, NotifyFailurePolicy
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_bootstrap_hr, list_tables
from .lifecycle.controller import register as register_lifecycle
from .onboarding.controller import register as register_onboarding
from .roster.controller import register as register_roster
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def register_routes(app: Flask, container: Container) -> None:
    register_error_handlers(app)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "OK", "service": "onboarding-portal"})

    register_users(app, container)
    register_onboarding(app, container)
    register_lifecycle(app, container)
    register_roster(app, container)
    register_attendance(app, container)
    register_audit(app, container)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    max_upload_bytes = int(getattr(settings, "MAX_UPLOAD_BYTES", 5 * 1024 * 1024))
    # One request may carry one file per document type plus the JSON form.
    app.config["MAX_CONTENT_LENGTH"] = max_upload_bytes * len(DocumentType) + 1024 * 1024

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
        ensure_bootstrap_hr(
            db_config,
            email=getattr(settings, "BOOTSTRAP_HR_EMAIL", "admin@company.com"),
            password=getattr(settings, "BOOTSTRAP_HR_PASSWORD", "admin123"),
        )
        logger.info("seed data ready")

    upload_dir = Path(getattr(settings, "UPLOAD_DIR", "uploads"))
    if not upload_dir.is_absolute():
        upload_dir = REPO_ROOT / upload_dir

    container = build_container(
        db_config=db_config,
        smtp_config=getattr(settings, "EMAIL_CONFIG", {}),
        upload_dir=str(upload_dir),
        max_upload_bytes=max_upload_bytes,
        session_ttl_hours=int(getattr(settings, "SESSION_TTL_HOURS", 24)),
        notify_policy=NotifyFailurePolicy(str(getattr(settings, "NOTIFY_FAILURE_POLICY", "log")).lower()),
        portal_url=getattr(settings, "PORTAL_URL", "http://localhost:3000"),
    )
    register_routes(app, container)
    return app
