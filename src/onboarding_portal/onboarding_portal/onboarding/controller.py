from __future__ import annotations

import json

from flask import Flask, jsonify, request

from ..common.web import audit, auth_guards, current_user, json_body
from ..container import Container
from ..core.exceptions import ValidationError
from .model import UploadedFile


def _submission_from_request() -> tuple[dict, list[UploadedFile]]:
    """Read the form either as multipart (`data` JSON field + files keyed by document type) or as JSON."""
    if not request.mimetype or not request.mimetype.startswith("multipart/"):
        return json_body(), []

    raw = request.form.get("data") or "{}"
    try:
        payload = json.loads(raw)
    except ValueError:
        raise ValidationError("Form data must be valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Form data must be a JSON object")

    uploads = []
    for field_name, storage in request.files.items(multi=True):
        if not storage or not storage.filename:
            continue
        uploads.append(
            UploadedFile(
                document_type=field_name,
                filename=storage.filename,
                content_type=storage.mimetype or "",
                data=storage.read(),
            )
        )
    return payload, uploads


def register(app: Flask, container: Container) -> None:
    guards = auth_guards(container)

    @app.route("/api/employee/form-requirements", methods=["GET"], endpoint="employee_form_requirements")
    @guards.employee_required
    def form_requirements():
        employee_type = request.args.get("employee_type") or request.args.get("employeeType")
        if employee_type:
            reqs = container.onboarding_service.requirements(employee_type)
        else:
            reqs = container.onboarding_service.requirements_for_user(current_user().user_id)
        return jsonify(reqs.to_dict())

    @app.route("/api/employee/onboarding-form", methods=["POST"], endpoint="employee_submit_form")
    @guards.employee_required
    def submit_form():
        payload, uploads = _submission_from_request()
        form = container.onboarding_service.submit_form(
            user_id=current_user().user_id,
            payload=payload,
            uploads=uploads,
        )
        audit(
            container,
            "SUBMIT_ONBOARDING_FORM",
            {"documents": [u.document_type for u in uploads]},
        )
        return jsonify({"message": "Onboarding form submitted successfully", "form": form.to_dict()}), 201

    @app.route("/api/employee/onboarding-form", methods=["GET"], endpoint="employee_get_form")
    @guards.employee_required
    def get_form():
        form = container.onboarding_service.get_form(current_user().user_id)
        return jsonify({"form": form.to_dict() if form else None})

    @app.route("/api/employee/onboarding-form", methods=["PATCH"], endpoint="employee_patch_form")
    @guards.employee_required
    def patch_form():
        form = container.onboarding_service.patch_form(user_id=current_user().user_id, changes=json_body())
        audit(container, "UPDATE_ONBOARDING_FORM")
        return jsonify({"message": "Onboarding form updated", "form": form.to_dict()})

    @app.route("/api/employee/form-status", methods=["GET"], endpoint="employee_form_status")
    @guards.employee_required
    def form_status():
        return jsonify(container.onboarding_service.form_status(current_user().user_id).to_dict())

    @app.route("/api/employee/documents", methods=["GET"], endpoint="employee_documents")
    @guards.employee_required
    def documents():
        docs = container.onboarding_service.list_documents(current_user().user_id)
        return jsonify({"documents": [d.to_dict() for d in docs]})

    @app.route("/api/employee/manager", methods=["GET"], endpoint="employee_manager")
    @guards.employee_required
    def manager():
        mgr = container.onboarding_service.employee_manager(current_user().user_id)
        if not mgr:
            return jsonify({"manager": None})
        return jsonify(
            {
                "manager": {
                    "id": mgr.user_id,
                    "name": mgr.name,
                    "email": mgr.email,
                    "department": mgr.department,
                }
            }
        )

    @app.route("/api/hr/employee-forms", methods=["GET"], endpoint="hr_list_forms")
    @guards.hr_required
    def list_forms():
        forms = container.onboarding_service.list_forms(
            current_role=current_user().role,
            status=request.args.get("status"),
            search=request.args.get("search"),
        )
        return jsonify({"forms": [f.to_dict() for f in forms], "total": len(forms)})

    @app.route("/api/hr/employee-forms/<int:user_id>", methods=["GET"], endpoint="hr_get_form")
    @guards.hr_required
    def get_form_for_hr(user_id: int):
        detail = container.onboarding_service.get_form_for_hr(current_role=current_user().role, user_id=user_id)
        return jsonify(detail.to_dict())

    @app.route("/api/hr/employee-forms/<int:user_id>", methods=["PUT"], endpoint="hr_update_form")
    @guards.hr_required
    def hr_update_form(user_id: int):
        changes = json_body()
        form = container.onboarding_service.hr_update_form(
            current_role=current_user().role,
            user_id=user_id,
            changes=changes,
        )
        audit(container, "HR_UPDATE_FORM", {"employee_id": user_id, "fields": sorted(changes)})
        return jsonify({"message": "Form updated", "form": form.to_dict()})

    @app.route("/api/hr/employee-forms/<int:user_id>", methods=["DELETE"], endpoint="hr_delete_form")
    @guards.hr_required
    def delete_form(user_id: int):
        container.onboarding_service.delete_form(current_role=current_user().role, user_id=user_id)
        audit(container, "DELETE_FORM", {"employee_id": user_id})
        return jsonify({"message": "Form deleted"})
