"""Flask glue shared by the controllers: bearer auth guards, request helpers, JSON errors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Optional

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..audit.model import RequestOrigin
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DomainError, ValidationError
from ..users.model import User

if TYPE_CHECKING:
    from ..container import Container

logger = logging.getLogger(__name__)


def bearer_token() -> Optional[str]:
    header = str(request.headers.get("Authorization") or "").strip()
    if header.lower().startswith("bearer "):
        token = header.split(" ", 1)[1].strip()
        if token and token.lower() not in ("null", "undefined"):
            return token
    return None


def current_user() -> User:
    return g.current_user


def request_origin() -> RequestOrigin:
    forwarded = str(request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    return RequestOrigin(
        ip_address=forwarded or request.remote_addr,
        user_agent=(request.headers.get("User-Agent") or "")[:255] or None,
    )


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def arg_flag(name: str) -> bool:
    return str(request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def arg_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = str(request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number")


@dataclass(frozen=True)
class AuthGuards:
    login_required: Callable
    hr_required: Callable
    employee_required: Callable


def auth_guards(container: "Container") -> AuthGuards:
    """Decorators that resolve the bearer session before the view runs.

    Missing/expired sessions and wrong roles are rejected here, so no service
    call or lifecycle guard is evaluated for them.
    """

    def _authenticate() -> None:
        token = bearer_token()
        user_id = container.session_service.validate(token)
        g.current_user = container.auth_service.resolve_user(user_id)
        g.session_token = token

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            _authenticate()
            return view(*args, **kwargs)

        return wrapper

    def _role_required(role: Role):
        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                _authenticate()
                if g.current_user.role != role:
                    raise AuthorizationError(f"{role.value.upper()} access required")
                return view(*args, **kwargs)

            return wrapper

        return decorator

    return AuthGuards(
        login_required=login_required,
        hr_required=_role_required(Role.HR),
        employee_required=_role_required(Role.EMPLOYEE),
    )


def audit(container: "Container", action: str, details: Any = None, *, actor_id: Optional[int] = None) -> None:
    if actor_id is None:
        user = g.get("current_user")
        actor_id = user.user_id if user else None
    container.audit_service.record(actor_id, action, details, origin=request_origin())


def error_response(message: str, code: str, status: int):
    return jsonify({"error": message, "code": code}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return error_response(str(e), e.code, e.http_status)

    @app.errorhandler(404)
    def not_found(_e):
        return error_response(f"Unknown endpoint: {request.path}", "not_found", 404)

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return error_response("Method not allowed", "method_not_allowed", 405)

    @app.errorhandler(413)
    def too_large(_e):
        return error_response("Uploaded file is too large", "payload_too_large", 413)

    @app.errorhandler(Exception)
    def unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return error_response(e.description or e.name, "http_error", e.code or 500)
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return error_response("Internal server error", "internal_error", 500)
