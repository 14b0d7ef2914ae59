from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import arg_int, auth_guards, current_user
from ..container import Container
from ..core.constants import DEFAULT_PAGE_LIMIT


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/hr/audit-logs", methods=["GET"], endpoint="hr_audit_logs")
    @guards.hr_required
    def audit_logs():
        page = container.audit_service.list(
            current_role=current_user().role,
            user_id=arg_int("user_id"),
            action=request.args.get("action"),
            page=arg_int("page", 1),
            limit=arg_int("limit", DEFAULT_PAGE_LIMIT),
        )
        return jsonify(page.to_dict())
