from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import auth_guards, current_user, json_body, request_origin
from ..container import Container
from .service import parse_filters


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @guards.login_required
    def mark():
        data = json_body()
        record = container.attendance_service.mark(
            user_id=current_user().user_id,
            status=data.get("status"),
            reason=data.get("reason"),
        )
        return jsonify({"message": "Attendance marked successfully", "attendance": record.to_dict()}), 201

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @guards.login_required
    def today():
        record = container.attendance_service.today(current_user().user_id)
        return jsonify({"marked": record is not None, "attendance": record.to_dict() if record else None})

    @app.route("/api/attendance/my-attendance", methods=["GET"], endpoint="attendance_mine")
    @guards.login_required
    def my_attendance():
        history = container.attendance_service.get_range(
            current_user().user_id,
            request.args.get("start_date") or request.args.get("startDate"),
            request.args.get("end_date") or request.args.get("endDate"),
        )
        return jsonify({"attendance": history.to_list()})

    @app.route("/api/attendance/my-calendar", methods=["GET"], endpoint="attendance_my_calendar")
    @guards.login_required
    def my_calendar():
        days = container.attendance_service.build_calendar(
            current_user().user_id,
            request.args.get("month"),
            request.args.get("year"),
        )
        return jsonify(_calendar_payload(days))

    @app.route("/api/attendance/all", methods=["GET"], endpoint="attendance_all")
    @guards.hr_required
    def all_attendance():
        rows = container.attendance_service.query(
            current_role=current_user().role,
            filters=parse_filters(request.args),
        )
        return jsonify({"attendance": [r.to_dict() for r in rows], "total": len(rows)})

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @guards.hr_required
    def summary():
        args = request.args
        result = container.attendance_service.summary(
            current_role=current_user().role,
            start=args.get("start_date") or args.get("startDate"),
            end=args.get("end_date") or args.get("endDate"),
            leaves_greater_than=args.get("leaves_greater_than") or args.get("leavesGreaterThan"),
        )
        return jsonify(result.to_dict())

    @app.route("/api/attendance/export", methods=["GET"], endpoint="attendance_export")
    @guards.hr_required
    def export():
        file = container.attendance_service.export(
            current_role=current_user().role,
            filters=parse_filters(request.args),
            fmt=request.args.get("format") or "csv",
        )
        return app.response_class(
            file.content,
            mimetype=file.mimetype,
            headers={"Content-Disposition": f'attachment; filename="{file.filename}"'},
        )

    @app.route(
        "/api/attendance/employee-calendar/<int:user_id>",
        methods=["GET"],
        endpoint="attendance_employee_calendar",
    )
    @guards.hr_required
    def employee_calendar(user_id: int):
        employee, days = container.attendance_service.employee_calendar(
            current_role=current_user().role,
            user_id=user_id,
            month=request.args.get("month"),
            year=request.args.get("year"),
        )
        payload = _calendar_payload(days)
        payload["employee"] = {
            "id": employee.user_id,
            "name": employee.name,
            "email": employee.email,
            "department": employee.department,
            "employee_type": employee.employee_type.value if employee.employee_type else None,
        }
        return jsonify(payload)

    @app.route("/api/attendance/<int:record_id>", methods=["PUT"], endpoint="attendance_update")
    @guards.hr_required
    def update_record(record_id: int):
        hr = current_user()
        data = json_body()
        record = container.attendance_service.update_record(
            current_role=hr.role,
            actor_id=hr.user_id,
            record_id=record_id,
            status=data.get("status"),
            reason=data.get("reason"),
            origin=request_origin(),
        )
        return jsonify({"message": "Attendance updated successfully", "attendance": record.to_dict()})

    @app.route("/api/attendance/<int:record_id>", methods=["DELETE"], endpoint="attendance_delete")
    @guards.hr_required
    def delete_record(record_id: int):
        hr = current_user()
        container.attendance_service.delete_record(
            current_role=hr.role,
            actor_id=hr.user_id,
            record_id=record_id,
            origin=request_origin(),
        )
        return jsonify({"message": "Attendance record deleted"})


def _calendar_payload(days) -> dict:
    first = days[0].day if days else None
    return {
        "calendar": [d.to_dict() for d in days],
        "month": first.month if first else None,
        "year": first.year if first else None,
        "total_days": len(days),
    }
