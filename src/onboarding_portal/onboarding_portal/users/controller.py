from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import parse_optional_date
from ..common.web import audit, auth_guards, bearer_token, current_user, json_body, request_origin
from ..container import Container
from ..core.exceptions import ValidationError


def _optional_user_id(value):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Manager id must be a number")


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        user = container.auth_service.authenticate(data.get("email") or "", data.get("password") or "")
        origin = request_origin()
        issued = container.session_service.issue(
            user.user_id, ip_address=origin.ip_address, user_agent=origin.user_agent
        )
        audit(container, "LOGIN", {"email": user.email}, actor_id=user.user_id)
        return jsonify(
            {
                "message": "Login successful",
                "token": issued.token,
                "expires_at": issued.expires_at.isoformat(),
                "user": user.to_public_dict(),
            }
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @guards.login_required
    def logout():
        container.session_service.revoke(g.session_token)
        audit(container, "LOGOUT")
        return jsonify({"message": "Logged out"})

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="auth_refresh")
    def refresh():
        origin = request_origin()
        issued = container.session_service.refresh(
            bearer_token(), ip_address=origin.ip_address, user_agent=origin.user_agent
        )
        return jsonify({"token": issued.token, "expires_at": issued.expires_at.isoformat()})

    @app.route("/api/auth/profile", methods=["GET"], endpoint="auth_profile")
    @guards.login_required
    def profile():
        return jsonify({"user": current_user().to_public_dict()})

    @app.route("/api/auth/change-password", methods=["POST"], endpoint="auth_change_password")
    @guards.login_required
    def change_password():
        data = json_body()
        container.auth_service.change_password(
            user_id=current_user().user_id,
            current_password=data.get("current_password") or data.get("currentPassword") or "",
            new_password=data.get("new_password") or data.get("newPassword") or "",
        )
        audit(container, "CHANGE_PASSWORD")
        return jsonify({"message": "Password changed successfully"})

    @app.route("/api/hr/employees", methods=["POST"], endpoint="hr_create_employee")
    @guards.hr_required
    def create_employee():
        data = json_body()
        created = container.account_service.create_employee(
            current_role=current_user().role,
            name=data.get("name") or "",
            email=data.get("email") or "",
            employee_type=data.get("employee_type") or data.get("employeeType") or "",
            department=data.get("department") or "",
            manager_id=_optional_user_id(data.get("manager_id", data.get("managerId"))),
            join_date=parse_optional_date(data.get("join_date") or data.get("joinDate"), "Join date"),
        )
        audit(
            container,
            "CREATE_EMPLOYEE",
            {"employee_id": created.user.user_id, "email": created.user.email, "email_sent": created.email_sent},
        )
        return (
            jsonify(
                {
                    "message": "Employee created successfully",
                    "employee": created.user.to_public_dict(),
                    "temp_password": created.temp_password,
                    "email_sent": created.email_sent,
                }
            ),
            201,
        )

    @app.route("/api/hr/employees", methods=["GET"], endpoint="hr_list_employees")
    @guards.hr_required
    def list_employees():
        employees = container.account_service.list_employees(
            status=request.args.get("status"),
            department=request.args.get("department"),
            search=request.args.get("search"),
        )
        return jsonify({"employees": [e.to_public_dict() for e in employees], "total": len(employees)})

    @app.route("/api/hr/employees/<int:user_id>", methods=["GET"], endpoint="hr_get_employee")
    @guards.hr_required
    def get_employee(user_id: int):
        employee = container.account_service.get_employee(user_id)
        form = container.onboarding_service.get_form(user_id)
        documents = container.onboarding_service.list_documents(user_id)
        return jsonify(
            {
                "employee": employee.to_public_dict(),
                "form": form.to_dict() if form else None,
                "documents": [d.to_dict() for d in documents],
            }
        )

    @app.route("/api/hr/employees/<int:user_id>/manager", methods=["PATCH"], endpoint="hr_assign_manager")
    @guards.hr_required
    def assign_manager(user_id: int):
        data = json_body()
        manager_id = _optional_user_id(data.get("manager_id", data.get("managerId")))
        employee = container.account_service.assign_manager(
            current_role=current_user().role,
            user_id=user_id,
            manager_id=manager_id,
        )
        audit(container, "ASSIGN_MANAGER", {"employee_id": user_id, "manager_id": manager_id})
        return jsonify({"message": "Manager updated", "employee": employee.to_public_dict()})

    @app.route(
        "/api/hr/employees/<int:user_id>/resend-credentials",
        methods=["POST"],
        endpoint="hr_resend_credentials",
    )
    @guards.hr_required
    def resend_credentials(user_id: int):
        result = container.account_service.resend_credentials(current_role=current_user().role, user_id=user_id)
        audit(container, "RESEND_CREDENTIALS", {"employee_id": user_id, "email": result.user.email})
        return jsonify({"message": "Credentials sent", "email": result.user.email})

    @app.route("/api/hr/departments", methods=["GET"], endpoint="hr_departments")
    @guards.hr_required
    def departments():
        return jsonify({"departments": list(container.account_service.departments())})

    @app.route("/api/hr/statistics", methods=["GET"], endpoint="hr_statistics")
    @guards.hr_required
    def statistics():
        stats = container.account_service.statistics(current_role=current_user().role)
        return jsonify(
            {
                "total_employees": stats.total_employees,
                "total_forms": stats.total_forms,
                "pending_approvals": stats.pending_approvals,
                "by_state": stats.by_state,
                "by_department": stats.by_department,
            }
        )
