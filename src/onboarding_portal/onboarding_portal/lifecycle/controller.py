from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import arg_flag, auth_guards, current_user, json_body, request_origin
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/hr/employees/<int:user_id>/approve", methods=["POST"], endpoint="hr_approve_employee")
    @guards.hr_required
    def approve(user_id: int):
        hr = current_user()
        employee = container.lifecycle_service.approve(
            current_role=hr.role,
            actor_id=hr.user_id,
            user_id=user_id,
            origin=request_origin(),
        )
        return jsonify({"message": "Employee approved successfully", "employee": employee.to_public_dict()})

    @app.route("/api/hr/employees/<int:user_id>/reject", methods=["POST"], endpoint="hr_reject_employee")
    @guards.hr_required
    def reject(user_id: int):
        hr = current_user()
        employee = container.lifecycle_service.reject(
            current_role=hr.role,
            actor_id=hr.user_id,
            user_id=user_id,
            reason=json_body().get("reason"),
            origin=request_origin(),
        )
        return jsonify({"message": "Employee rejected", "employee": employee.to_public_dict()})

    @app.route("/api/hr/employees/<int:user_id>/add-to-master", methods=["POST"], endpoint="hr_add_to_master")
    @guards.hr_required
    def add_to_master(user_id: int):
        hr = current_user()
        data = json_body()
        record = container.lifecycle_service.add_to_master(
            current_role=hr.role,
            actor_id=hr.user_id,
            user_id=user_id,
            employee_id=data.get("employee_id", data.get("employeeId")),
            manager_id=data.get("manager_id", data.get("managerId")),
            personal_email=data.get("personal_email") or data.get("personalEmail"),
            department=data.get("department"),
            join_date=data.get("join_date") or data.get("joinDate"),
            origin=request_origin(),
        )
        return jsonify({"message": "Employee added to master roster", "employee": record.to_dict()}), 201

    @app.route("/api/hr/employees/<int:user_id>", methods=["DELETE"], endpoint="hr_delete_employee")
    @guards.hr_required
    def delete_employee(user_id: int):
        hr = current_user()
        hard = arg_flag("hard")
        container.lifecycle_service.delete_employee(
            current_role=hr.role,
            actor_id=hr.user_id,
            user_id=user_id,
            hard=hard,
            origin=request_origin(),
        )
        return jsonify({"message": "Employee permanently deleted" if hard else "Employee deleted"})

    @app.route("/api/hr/onboarded-employees", methods=["GET"], endpoint="hr_onboarded_employees")
    @guards.hr_required
    def onboarded_employees():
        rows = container.lifecycle_service.onboarded_employees(current_role=current_user().role)
        return jsonify({"employees": [r.to_dict() for r in rows], "total": len(rows)})

    @app.route("/api/employee/onboarding-status", methods=["GET"], endpoint="employee_onboarding_status")
    @guards.login_required
    def onboarding_status():
        return jsonify(container.lifecycle_service.onboarding_status(current_user().user_id).to_dict())
