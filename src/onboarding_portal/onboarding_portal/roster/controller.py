from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import arg_int, audit, auth_guards, current_user, json_body
from ..container import Container
from ..core.constants import DEFAULT_PAGE_LIMIT


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/master", methods=["GET"], endpoint="master_list")
    @guards.login_required
    def list_master():
        page = container.roster_service.list(
            page=arg_int("page", 1),
            limit=arg_int("limit", DEFAULT_PAGE_LIMIT),
            department=request.args.get("department"),
            status=request.args.get("status"),
            search=request.args.get("search"),
            manager_id=request.args.get("manager_id") or request.args.get("managerId"),
        )
        return jsonify(page.to_dict())

    @app.route("/api/master", methods=["POST"], endpoint="master_create")
    @guards.hr_required
    def create_master():
        data = json_body()
        record = container.roster_service.create(
            current_role=current_user().role,
            employee_id=data.get("employee_id", data.get("employeeId")),
            name=data.get("name") or "",
            email=data.get("email") or "",
            personal_email=data.get("personal_email") or data.get("personalEmail"),
            employee_type=data.get("employee_type") or data.get("employeeType"),
            role=data.get("role"),
            department=data.get("department"),
            join_date=data.get("join_date") or data.get("joinDate"),
            manager_id=data.get("manager_id") or data.get("managerId"),
        )
        audit(container, "CREATE_MASTER_EMPLOYEE", {"employee_id": record.employee_id})
        return jsonify({"message": "Employee added to master roster", "employee": record.to_dict()}), 201

    @app.route("/api/master/departments", methods=["GET"], endpoint="master_departments")
    @guards.login_required
    def departments():
        return jsonify({"departments": list(container.roster_service.departments())})

    @app.route("/api/master/profile", methods=["GET"], endpoint="master_profile")
    @guards.login_required
    def my_profile():
        return jsonify(container.roster_service.profile_for_user(current_user().user_id).to_dict())

    @app.route("/api/master/<employee_id>", methods=["GET"], endpoint="master_get")
    @guards.login_required
    def get_master(employee_id: str):
        return jsonify(container.roster_service.profile(employee_id).to_dict())

    @app.route("/api/master/<employee_id>", methods=["PUT"], endpoint="master_update")
    @guards.hr_required
    def update_master(employee_id: str):
        changes = json_body()
        record = container.roster_service.update(
            current_role=current_user().role,
            employee_id=employee_id,
            changes=changes,
        )
        audit(container, "UPDATE_MASTER_EMPLOYEE", {"employee_id": employee_id, "fields": sorted(changes)})
        return jsonify({"message": "Employee updated", "employee": record.to_dict()})

    @app.route("/api/master/<employee_id>", methods=["DELETE"], endpoint="master_deactivate")
    @guards.hr_required
    def deactivate_master(employee_id: str):
        record = container.roster_service.deactivate(current_role=current_user().role, employee_id=employee_id)
        audit(container, "DEACTIVATE_MASTER_EMPLOYEE", {"employee_id": employee_id})
        return jsonify({"message": "Employee deactivated", "employee": record.to_dict()})

    @app.route("/api/master/<employee_id>/permanent", methods=["DELETE"], endpoint="master_delete_permanent")
    @guards.hr_required
    def delete_master(employee_id: str):
        record = container.roster_service.delete_permanent(current_role=current_user().role, employee_id=employee_id)
        audit(container, "DELETE_MASTER_EMPLOYEE", {"employee_id": employee_id, "email": record.email})
        return jsonify({"message": "Employee permanently deleted from master roster"})

    @app.route("/api/hr/check-employee-id/<employee_id>", methods=["GET"], endpoint="hr_check_employee_id")
    @guards.hr_required
    def check_employee_id(employee_id: str):
        return jsonify(container.roster_service.check_employee_id(employee_id))

    @app.route("/api/hr/managers", methods=["GET"], endpoint="hr_managers")
    @guards.hr_required
    def managers():
        return jsonify({"managers": [m.to_dict() for m in container.roster_service.managers()]})
