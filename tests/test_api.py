from datetime import date

from flask_jwt_extended import create_access_token

from paie_api import seed_rbac
from paie_api.extensions import db
from paie_api.models.security import Permission, Role, RolePermission, UserRole
from paie_api.models.user import User


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "ok"


def test_login_and_me(client, admin):
    r = client.post("/api/v1/auth/login", json={"email": "admin@test.local", "password": "bad"})
    assert r.status_code == 401

    r = client.post("/api/v1/auth/login", json={"email": "ADMIN@test.local", "password": "secret"})
    assert r.status_code == 200
    token = r.get_json()["data"]["access"]
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["data"]["email"] == "admin@test.local"


def test_requires_token(client):
    assert client.get("/api/v1/employees").status_code == 401


def test_permissions_from_roles(app, client, company):
    seed_rbac.run()
    u = User(email="mgr@test.local", full_name="Manager", company_id=company.id)
    u.set_password("x")
    db.session.add(u); db.session.commit()
    db.session.add(UserRole(user_id=u.id, role_id=Role.query.filter_by(code="manager").first().id))
    db.session.commit()

    token = create_access_token(identity=str(u.id), additional_claims={"company_id": company.id})
    headers = {"Authorization": f"Bearer {token}"}
    assert client.get("/api/v1/employees", headers=headers).status_code == 200
    assert client.post("/api/v1/pay-runs", headers=headers, json={}).status_code == 403


def test_employee_crud_and_salary(client, auth):
    r = client.post("/api/v1/employees", headers=auth, json={
        "code": "M001", "first_name": "Yao", "last_name": "Kouassi", "hire_date": "2024-02-01",
        "contract": {"contract_type": "CDI", "start_date": "2024-02-01"},
        "salary": {"base_salary": 250000},
    })
    assert r.status_code == 201
    eid = r.get_json()["data"]["id"]
    assert r.get_json()["data"]["contract_type"] == "CDI"

    r = client.post(f"/api/v1/employees/{eid}/salaries/change", headers=auth,
                    json={"base_salary": 50000, "effective_from": "2025-01-01"})
    assert r.status_code == 422
    assert "SMIG" in r.get_json()["error"]["message"]

    r = client.get("/api/v1/employees?q=kouassi", headers=auth)
    assert r.get_json()["meta"]["total"] == 1

    assert client.get("/api/v1/employees/9999", headers=auth).status_code == 404


def test_pay_run_flow(client, auth, make_employee):
    make_employee(cnps_number="1234567")
    r = client.post("/api/v1/pay-runs", headers=auth,
                    json={"period_start": "2025-03-01", "period_end": "2025-03-31"})
    assert r.status_code == 201
    rid = r.get_json()["data"]["id"]

    r = client.post(f"/api/v1/pay-runs/{rid}/calculate", headers=auth, json={})
    assert r.get_json()["data"]["status"] == "calculated"
    assert r.get_json()["meta"]["items"] == 1

    r = client.post(f"/api/v1/pay-runs/{rid}/mark-paid", headers=auth)
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "INVALID_STATE"

    client.post(f"/api/v1/pay-runs/{rid}/approve", headers=auth)
    r = client.get("/api/v1/pay-runs/cnps-export?month=2025-03", headers=auth)
    assert r.status_code == 200
    assert r.get_json()["data"]["employeeCount"] == 1

    r = client.get(f"/api/v1/pay-runs/{rid}?include=items", headers=auth)
    assert r.get_json()["data"]["items"][0]["net"] == 241100.0


def test_simulate_monthly(client, auth):
    r = client.post("/api/v1/pay-runs/simulate/monthly", headers=auth, json={
        "base_salary": 300000, "period_start": "2025-03-01", "period_end": "2025-03-31"})
    assert r.get_json()["data"]["net"] == 241100.0

    r = client.post("/api/v1/pay-runs/simulate/monthly", headers=auth, json={
        "base_salary": 50000, "period_start": "2025-03-01", "period_end": "2025-03-31"})
    assert r.status_code == 422


def test_termination_and_download(client, auth, make_employee):
    emp = make_employee(hire_date=date(2020, 1, 1))
    r = client.post("/api/v1/terminations", headers=auth, json={
        "employee_id": emp.id, "departure_type": "LICENCIEMENT", "termination_date": "2025-01-31",
        "termination_reason": "Motif économique"})
    assert r.status_code == 201
    tid = r.get_json()["data"]["id"]
    assert r.get_json()["data"]["stc"]["severance"] == 458400.0

    r = client.post(f"/api/v1/terminations/{tid}/documents/work-certificate", headers=auth, json={})
    doc_id = r.get_json()["data"]["documentId"]
    r = client.get(f"/api/v1/documents/{doc_id}/download", headers=auth)
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")


def test_workflow_routes(client, auth):
    r = client.post("/api/v1/workflows", headers=auth, json={
        "name": "Alerte fin de CDD", "trigger_type": "contract.expiring",
        "actions": [{"type": "create_alert", "config": {"message": "CDD bientôt échu"}}]})
    wid = r.get_json()["data"]["id"]
    assert client.post(f"/api/v1/workflows/{wid}/activate", headers=auth).status_code == 200

    r = client.post("/api/v1/workflows/trigger", headers=auth,
                    json={"event_type": "contract.expiring", "data": {}})
    assert r.status_code == 200

    r = client.get(f"/api/v1/workflows/{wid}/stats", headers=auth)
    assert r.get_json()["data"]["executionCount"] == 1


def test_batch_routes(client, auth, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/batch-operations/salary-update", headers=auth, json={
        "employee_ids": [emp.id], "update_type": "absolute", "value": 320000,
        "effective_date": "2025-05-01"})
    assert r.status_code == 201
    op_id = r.get_json()["data"]["id"]

    r = client.post(f"/api/v1/batch-operations/{op_id}/process", headers=auth)
    assert r.get_json()["data"]["status"] == "completed"
    assert r.get_json()["data"]["progress_percentage"] == 100


def test_talent_routes(client, auth, make_employee):
    emp = make_employee()
    r = client.post("/api/v1/objectives", headers=auth, json={
        "title": "Former deux juniors", "employee_id": emp.id})
    oid = r.get_json()["data"]["id"]
    assert client.post(f"/api/v1/objectives/{oid}/submit", headers=auth).get_json()["data"]["status"] == "proposed"

    r = client.post("/api/v1/training-plans", headers=auth, json={"name": "Plan 2025", "year": 2025,
                                                                  "total_budget": 100000})
    pid = r.get_json()["data"]["id"]
    r = client.post(f"/api/v1/training-plans/{pid}/items", headers=auth,
                    json={"course_name": "Excel", "budget_allocated": 150000})
    assert r.status_code == 201
    assert r.get_json()["meta"]["warnings"]


def test_holiday_routes(client, auth):
    r = client.post("/api/v1/public-holidays", headers=auth,
                    json={"holiday_date": "2025-08-07", "is_recurring": True,
                          "name": {"fr": "Fête de l'Indépendance"}})
    assert r.status_code == 201
    r = client.get("/api/v1/public-holidays/check?date=2026-08-07", headers=auth)
    assert r.get_json()["data"]["isPublicHoliday"] is True


def _user_with_role(company, email, role_code):
    u = User(email=email, full_name=email.split("@")[0], company_id=company.id)
    u.set_password("x")
    db.session.add(u); db.session.commit()
    if role_code:
        db.session.add(UserRole(user_id=u.id, role_id=Role.query.filter_by(code=role_code).first().id))
        db.session.commit()
    token = create_access_token(identity=str(u.id), additional_claims={"company_id": company.id})
    return u, {"Authorization": f"Bearer {token}"}


def test_role_administration(app, client, company):
    seed_rbac.run()
    _, hr = _user_with_role(company, "rh@test.local", "hr")
    _, mgr = _user_with_role(company, "chef@test.local", "manager")
    target, _ = _user_with_role(company, "new@test.local", None)

    r = client.get("/api/v1/auth/roles", headers=hr)
    assert r.status_code == 200
    roles = {x["code"]: x for x in r.get_json()["data"]}
    assert "holidays.read" in roles["employee"]["permissions"]
    assert client.get("/api/v1/auth/roles", headers=mgr).status_code == 403

    r = client.post(f"/api/v1/auth/users/{target.id}/roles", headers=hr, json={"role": "manager"})
    assert r.status_code == 200
    assert r.get_json()["data"]["roles"] == ["manager"]

    r = client.post(f"/api/v1/auth/users/{target.id}/roles", headers=hr, json={"role": "admin"})
    assert r.status_code == 403
    r = client.post(f"/api/v1/auth/users/{target.id}/roles", headers=hr, json={"role": "boss"})
    assert r.status_code == 422


def test_wsgi_entry_point(app):
    from paie_api import wsgi

    rules = {r.rule for r in wsgi.app.url_map.iter_rules()}
    assert "/api/v1/health" in rules
    assert "/api/v1/batch-operations/<int:op_id>/process" in rules
    assert "process-batches" in wsgi.app.cli.commands


def test_only_admin_writes_public_holidays(app, client, company):
    seed_rbac.run()
    _, hr = _user_with_role(company, "rh2@test.local", "hr")
    body = {"country_code": "CI", "holiday_date": "2025-03-31", "name": "Aïd el-Fitr"}
    assert client.get("/api/v1/public-holidays?country=CI", headers=hr).status_code == 200
    r = client.post("/api/v1/public-holidays", headers=hr, json=body)
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "FORBIDDEN"

    _, admin = _user_with_role(company, "root@test.local", "admin")
    assert client.post("/api/v1/public-holidays", headers=admin, json=body).status_code == 201


def test_seed_rbac_revokes_stale_grants(app):
    seed_rbac.run()
    hr = Role.query.filter_by(code="hr").first()
    assert "holidays.write" not in hr.permission_codes()
    assert "payroll.runs.approve" in hr.permission_codes()

    stale = Permission.query.filter_by(code="holidays.write").first()
    db.session.add(RolePermission(role_id=hr.id, permission_id=stale.id))
    db.session.commit()
    db.session.expire(hr)
    assert seed_rbac.run()["revoked"] == 1
    assert "holidays.write" not in hr.permission_codes()
