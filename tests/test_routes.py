from __future__ import annotations

import io
import json

import pytest

from src.onboarding_portal.onboarding_portal.core.enums import LifecycleState, Role

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"1" * 32

FORM = {
    "personal_info": {"phone": "9876543210"},
    "bank_info": {"account": "001122"},
    "aadhar_number": "123456789012",
    "pan_number": "ABCDE1234F",
    "education_info": [{"degree": "B.Sc"}],
}


@pytest.fixture
def hr_headers(hr_user, auth_headers):
    return auth_headers(hr_user)


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "OK"


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["code"] == "not_found"


def test_wrong_method_is_json_405(client):
    resp = client.delete("/api/health")
    assert resp.status_code == 405
    assert resp.get_json()["code"] == "method_not_allowed"


def test_unexpected_errors_become_json_500(app, client):
    def boom():
        raise RuntimeError("kaput")

    app.add_url_rule("/api/boom", "boom", boom)

    resp = client.get("/api/boom")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error", "code": "internal_error"}


def test_login_issues_token_and_audits(client, make_user, repos):
    user = make_user(email="emp@company.com", password="pass1234", state=LifecycleState.APPROVED)

    resp = client.post("/api/auth/login", json={"email": "emp@company.com", "password": "pass1234"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"]["id"] == user.user_id
    assert "password_hash" not in body["user"]
    assert repos.audit.entries[-1].action == "LOGIN"
    assert repos.audit.entries[-1].user_id == user.user_id

    profile = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {body['token']}"})
    assert profile.status_code == 200
    assert profile.get_json()["user"]["email"] == "emp@company.com"


def test_login_with_bad_password(client, make_user):
    make_user(email="emp@company.com", password="pass1234")

    resp = client.post("/api/auth/login", json={"email": "emp@company.com", "password": "nope"})

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "authentication_failed"


@pytest.mark.parametrize("header", [None, "Bearer", "Bearer null", "Token abc", "Bearer not-issued"])
def test_protected_route_requires_valid_token(client, header):
    headers = {"Authorization": header} if header else {}
    resp = client.get("/api/auth/profile", headers=headers)
    assert resp.status_code == 401


def test_logout_revokes_token(client, make_user, auth_headers):
    headers = auth_headers(make_user())

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/profile", headers=headers).status_code == 401


def test_refresh_rotates_token(client, make_user, auth_headers):
    old = auth_headers(make_user())

    resp = client.post("/api/auth/refresh", headers=old)

    assert resp.status_code == 200
    new = {"Authorization": f"Bearer {resp.get_json()['token']}"}
    assert client.get("/api/auth/profile", headers=new).status_code == 200
    assert client.get("/api/auth/profile", headers=old).status_code == 401


def test_role_guards(client, make_user, auth_headers, hr_headers):
    emp_headers = auth_headers(make_user())

    resp = client.get("/api/hr/employees", headers=emp_headers)
    assert resp.status_code == 403
    assert resp.get_json()["code"] == "forbidden"

    assert client.get("/api/employee/form-status", headers=hr_headers).status_code == 403
    assert client.get("/api/hr/employees", headers=hr_headers).status_code == 200


def test_rejected_employee_session_is_refused(client, make_user, auth_headers, repos):
    user = make_user(state=LifecycleState.FORM_SUBMITTED)
    headers = auth_headers(user)
    repos.users.force_state(user.user_id, LifecycleState.REJECTED)

    resp = client.get("/api/auth/profile", headers=headers)
    assert resp.status_code == 403


def test_non_object_json_body_is_rejected(client, hr_headers):
    resp = client.post("/api/hr/employees", headers=hr_headers, json=["not", "an", "object"])
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "validation_error"


def test_create_employee_route(client, hr_headers, mailer, repos):
    resp = client.post(
        "/api/hr/employees",
        headers=hr_headers,
        json={"name": "Nina", "email": "nina@company.com", "employeeType": "intern", "department": "QA"},
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["employee"]["lifecycle_state"] == "new_account"
    assert body["email_sent"] is True
    assert body["temp_password"]
    assert repos.audit.actions()[-1] == "CREATE_EMPLOYEE"

    dup = client.post(
        "/api/hr/employees",
        headers=hr_headers,
        json={"name": "Nina 2", "email": "NINA@company.com", "employee_type": "intern", "department": "QA"},
    )
    assert dup.status_code == 409
    assert dup.get_json()["code"] == "email_taken"


def test_onboarding_to_attendance_flow(client, make_user, auth_headers, hr_headers, repos, seed_manager):
    emp = make_user()
    emp_headers = auth_headers(emp)

    submit = client.post(
        "/api/employee/onboarding-form",
        headers=emp_headers,
        data={
            "data": json.dumps(FORM),
            "aadhar": (io.BytesIO(PNG_BYTES), "aadhar.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert submit.status_code == 201, submit.get_json()

    docs = client.get("/api/employee/documents", headers=emp_headers).get_json()["documents"]
    assert [d["document_type"] for d in docs] == ["aadhar"]

    early = client.post("/api/attendance/mark", headers=emp_headers, json={"status": "present"})
    assert early.status_code == 409
    assert early.get_json()["code"] == "not_onboarded"

    approve = client.post(f"/api/hr/employees/{emp.user_id}/approve", headers=hr_headers)
    assert approve.status_code == 200
    assert approve.get_json()["employee"]["onboarded"] is True

    again = client.post(f"/api/hr/employees/{emp.user_id}/approve", headers=hr_headers)
    assert again.status_code == 409
    assert again.get_json()["code"] == "already_onboarded"

    resubmit = client.post("/api/employee/onboarding-form", headers=emp_headers, json=FORM)
    assert resubmit.get_json()["code"] == "already_onboarded"

    added = client.post(
        f"/api/hr/employees/{emp.user_id}/add-to-master",
        headers=hr_headers,
        json={"employeeId": "123456", "managerId": seed_manager.employee_id},
    )
    assert added.status_code == 201
    status = client.get("/api/employee/onboarding-status", headers=emp_headers).get_json()
    assert status["in_master"] is True and status["employee_id"] == "123456"

    marked = client.post("/api/attendance/mark", headers=emp_headers, json={"status": "present"})
    assert marked.status_code == 201
    dup = client.post("/api/attendance/mark", headers=emp_headers, json={"status": "wfh"})
    assert dup.status_code == 409
    assert dup.get_json()["code"] == "attendance_already_marked"

    today = client.get("/api/attendance/today", headers=emp_headers).get_json()
    assert today["marked"] is True

    calendar = client.get("/api/attendance/my-calendar?month=3&year=2026", headers=emp_headers).get_json()
    assert calendar["total_days"] == 31

    actions = repos.audit.actions()
    assert "SUBMIT_ONBOARDING_FORM" in actions
    assert "APPROVE_EMPLOYEE" in actions
    assert "ADD_TO_MASTER" in actions


def test_export_sets_download_headers(client, hr_headers, make_user, auth_headers):
    emp = make_user(state=LifecycleState.APPROVED)
    client.post("/api/attendance/mark", headers=auth_headers(emp), json={"status": "present"})

    resp = client.get("/api/attendance/export?format=csv&start_date=2026-03-01", headers=hr_headers)

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert 'filename="attendance_2026-03-01_data.csv"' in resp.headers["Content-Disposition"]


def test_hard_delete_route(client, hr_headers, make_user, repos):
    emp = make_user(state=LifecycleState.APPROVED)

    resp = client.delete(f"/api/hr/employees/{emp.user_id}?hard=1", headers=hr_headers)

    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Employee permanently deleted"
    assert repos.users.get_by_id(emp.user_id) is None


def test_audit_log_route(client, hr_headers, hr_user):
    client.post("/api/auth/logout", headers=hr_headers)
    fresh = client.post("/api/auth/login", json={"email": hr_user.email, "password": "admin123"}).get_json()
    headers = {"Authorization": f"Bearer {fresh['token']}"}

    resp = client.get("/api/hr/audit-logs?action=LOGOUT", headers=headers)

    assert resp.status_code == 200
    logs = resp.get_json()["logs"]
    assert [log["action"] for log in logs] == ["LOGOUT"]
    assert logs[0]["ip_address"] == "127.0.0.1"

    bad = client.get("/api/hr/audit-logs?page=abc", headers=headers)
    assert bad.status_code == 400


def test_master_roster_routes(client, hr_headers, make_user, auth_headers, seed_manager):
    created = client.post(
        "/api/master",
        headers=hr_headers,
        json={"employee_id": "200001", "name": "Direct Hire", "email": "direct@company.com", "manager_id": "100000"},
    )
    assert created.status_code == 201

    check = client.get("/api/hr/check-employee-id/200001", headers=hr_headers).get_json()
    assert check["available"] is False

    emp_headers = auth_headers(make_user())
    listing = client.get("/api/master?limit=1", headers=emp_headers).get_json()
    assert listing["pagination"]["total"] == 2
    assert len(listing["employees"]) == 1

    blocked = client.delete("/api/master/100000/permanent", headers=hr_headers)
    assert blocked.status_code == 409
    assert blocked.get_json()["code"] == "manager_in_use"


def test_statistics_route_hides_nothing_from_hr(client, hr_headers, make_user):
    make_user(state=LifecycleState.FORM_SUBMITTED)

    stats = client.get("/api/hr/statistics", headers=hr_headers).get_json()

    assert stats["pending_approvals"] == 1
    assert stats["by_state"] == {LifecycleState.FORM_SUBMITTED.value: 1}


def test_employee_cannot_reach_hr_audit(client, make_user, auth_headers):
    headers = auth_headers(make_user(role=Role.EMPLOYEE))
    assert client.get("/api/hr/audit-logs", headers=headers).status_code == 403
