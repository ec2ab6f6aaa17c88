from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import or_

from paie_api.common.auth import current_company_id, requires_perms
from paie_api.common.errors import invalid, not_found
from paie_api.common.http import ok
from paie_api.common.paging import iso, num, page_limit, parse_date, parse_dec, text_q
from paie_api.extensions import db
from paie_api.models.employee import (
    EMPLOYEE_STATUSES, HOURS_REGIMES, PAYMENT_FREQUENCIES,
    Employee, EmployeeSalary, EmploymentContract,
)
from paie_api.services import contract_rules

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

UPDATABLE = ("email", "first_name", "last_name", "cnps_number", "job_title", "department",
             "is_cadre", "has_family", "weekly_hours_regime", "payment_frequency", "status",
             "user_id")


# ---------- serializers ----------

def _row(x: Employee):
    contract = x.active_contract()
    return {
        "id": x.id,
        "code": x.code,
        "email": x.email,
        "first_name": x.first_name,
        "last_name": x.last_name,
        "full_name": x.full_name,
        "birth_date": iso(x.birth_date),
        "cnps_number": x.cnps_number,
        "job_title": x.job_title,
        "department": x.department,
        "is_cadre": bool(x.is_cadre),
        "hire_date": iso(x.hire_date),
        "termination_date": iso(x.termination_date),
        "fiscal_parts": num(x.fiscal_parts),
        "has_family": bool(x.has_family),
        "weekly_hours_regime": x.weekly_hours_regime,
        "payment_frequency": x.payment_frequency,
        "status": x.status,
        "contract_type": contract.contract_type if contract else None,
        "company_id": x.company_id,
        "user_id": x.user_id,
        "created_at": iso(x.created_at),
    }


def _contract_row(c: EmploymentContract):
    return {
        "id": c.id,
        "employee_id": c.employee_id,
        "contract_type": c.contract_type,
        "start_date": iso(c.start_date),
        "end_date": iso(c.end_date),
        "cdd_reason": c.cdd_reason,
        "is_active": bool(c.is_active),
        "renewal_count": c.renewal_count,
        "replaces_contract_id": c.replaces_contract_id,
    }


def _salary_row(s: EmployeeSalary):
    return {
        "id": s.id,
        "employee_id": s.employee_id,
        "base_salary": num(s.base_salary),
        "categorical_salary": num(s.categorical_salary),
        "housing_allowance": num(s.housing_allowance),
        "transport_allowance": num(s.transport_allowance),
        "meal_allowance": num(s.meal_allowance),
        "daily_transport_rate": num(s.daily_transport_rate),
        "effective_from": iso(s.effective_from),
        "effective_to": iso(s.effective_to),
        "change_reason": s.change_reason,
    }


def _get(eid: int) -> Employee:
    x = Employee.query.filter_by(id=eid, company_id=current_company_id()).first()
    if x is None:
        raise not_found("Employé non trouvé")
    return x


def _check_enums(data):
    if data.get("weekly_hours_regime") and data["weekly_hours_regime"] not in HOURS_REGIMES:
        raise invalid(f"Régime horaire invalide : {data['weekly_hours_regime']}")
    if data.get("payment_frequency") and data["payment_frequency"] not in PAYMENT_FREQUENCIES:
        raise invalid(f"Fréquence de paiement invalide : {data['payment_frequency']}")
    if data.get("status") and data["status"] not in EMPLOYEE_STATUSES:
        raise invalid(f"Statut invalide : {data['status']}")


# ---------- employees ----------

@bp.get("")
@requires_perms("employees.read")
def list_employees():
    q = Employee.query.filter(Employee.company_id == current_company_id())
    status = (request.args.get("status") or "").strip()
    if status:
        q = q.filter(Employee.status == status.lower())
    s = text_q()
    if s:
        like = f"%{s}%"
        q = q.filter(or_(Employee.code.ilike(like),
                         Employee.email.ilike(like),
                         Employee.first_name.ilike(like),
                         Employee.last_name.ilike(like)))
    page, size = page_limit()
    total = q.count()
    items = q.order_by(Employee.id.desc()).offset((page - 1) * size).limit(size).all()
    return ok([_row(i) for i in items], page=page, size=size, total=total)


@bp.get("/<int:eid>")
@requires_perms("employees.read")
def get_employee(eid: int):
    return ok(_row(_get(eid)))


@bp.post("")
@requires_perms("employees.write")
def create_employee():
    data = request.get_json(silent=True) or {}
    cid = current_company_id()
    missing = [f for f in ("code", "first_name", "last_name", "hire_date") if not data.get(f)]
    if missing:
        raise invalid(f"Champs requis : {', '.join(missing)}")
    hire = parse_date(data.get("hire_date"))
    if hire is None:
        raise invalid("hire_date doit être au format YYYY-MM-DD")
    _check_enums(data)

    x = Employee(
        company_id=cid,
        code=data["code"].strip(),
        email=(data.get("email") or "").strip().lower() or None,
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        birth_date=parse_date(data.get("birth_date")),
        cnps_number=data.get("cnps_number"),
        job_title=data.get("job_title"),
        department=data.get("department"),
        is_cadre=bool(data.get("is_cadre")),
        hire_date=hire,
        fiscal_parts=parse_dec(data.get("fiscal_parts")) or 1,
        has_family=bool(data.get("has_family")),
        weekly_hours_regime=data.get("weekly_hours_regime") or "40h",
        payment_frequency=data.get("payment_frequency") or "MONTHLY",
        status="active",
    )
    db.session.add(x)
    db.session.flush()

    # optional initial contract / salary in the same call
    if isinstance(data.get("contract"), dict):
        contract_rules.create_contract(x, data["contract"])
    if isinstance(data.get("salary"), dict):
        db.session.add(contract_rules.salary_from_payload(x, data["salary"]))
    db.session.commit()
    return ok(_row(x), status=201)


@bp.put("/<int:eid>")
@requires_perms("employees.write")
def update_employee(eid: int):
    x = _get(eid)
    data = request.get_json(silent=True) or {}
    _check_enums(data)
    for field in UPDATABLE:
        if field in data:
            setattr(x, field, data[field])
    if "birth_date" in data:
        x.birth_date = parse_date(data["birth_date"])
    if "hire_date" in data:
        hire = parse_date(data["hire_date"])
        if hire is None:
            raise invalid("hire_date doit être au format YYYY-MM-DD")
        x.hire_date = hire
    if "fiscal_parts" in data:
        x.fiscal_parts = parse_dec(data["fiscal_parts"]) or 1
    db.session.commit()
    return ok(_row(x))


# ---------- contracts ----------

@bp.post("/contracts/validate")
@requires_perms("employees.read")
def validate_contract():
    data = request.get_json(silent=True) or {}
    errors = contract_rules.validate_contract(data)
    return ok({"valid": not errors, "errors": errors})


@bp.get("/<int:eid>/contracts")
@requires_perms("employees.read")
def list_contracts(eid: int):
    x = _get(eid)
    rows = x.contracts.order_by(EmploymentContract.start_date.desc()).all()
    return ok([_contract_row(c) for c in rows])


@bp.get("/<int:eid>/contracts/active")
@requires_perms("employees.read")
def active_contract(eid: int):
    c = _get(eid).active_contract()
    if c is None:
        raise not_found("Aucun contrat actif")
    return ok(_contract_row(c))


@bp.post("/<int:eid>/contracts")
@requires_perms("employees.write")
def create_contract(eid: int):
    x = _get(eid)
    c = contract_rules.create_contract(x, request.get_json(silent=True) or {})
    db.session.commit()
    return ok(_contract_row(c), status=201)


@bp.post("/<int:eid>/contracts/renew")
@requires_perms("employees.write")
def renew_contract(eid: int):
    x = _get(eid)
    data = request.get_json(silent=True) or {}
    end = parse_date(data.get("new_end_date"))
    if end is None:
        raise invalid("new_end_date est requis (YYYY-MM-DD)")
    c = contract_rules.renew_contract(x, end)
    db.session.commit()
    return ok(_contract_row(c), status=201)


# ---------- salaries ----------

@bp.get("/<int:eid>/salaries")
@requires_perms("employees.read")
def list_salaries(eid: int):
    x = _get(eid)
    rows = x.salaries.order_by(EmployeeSalary.effective_from.desc()).all()
    return ok([_salary_row(s) for s in rows])


@bp.get("/<int:eid>/salaries/active")
@requires_perms("employees.read")
def active_salary(eid: int):
    s = _get(eid).active_salary(parse_date(request.args.get("on")))
    if s is None:
        raise not_found("No active salary found")
    return ok(_salary_row(s))


@bp.post("/<int:eid>/salaries")
@requires_perms("payroll.salaries.write")
def create_salary(eid: int):
    x = _get(eid)
    data = request.get_json(silent=True) or {}
    if x.active_salary(parse_date(data.get("effective_from")) or x.hire_date) is not None:
        raise invalid("Un salaire actif existe déjà, utilisez le changement de salaire")
    s = contract_rules.salary_from_payload(x, data)
    db.session.add(s)
    db.session.commit()
    return ok(_salary_row(s), status=201)


@bp.post("/<int:eid>/salaries/change")
@requires_perms("payroll.salaries.write")
def change_salary(eid: int):
    x = _get(eid)
    data = request.get_json(silent=True) or {}
    eff = parse_date(data.get("effective_from"))
    if eff is None:
        raise invalid("effective_from est requis (YYYY-MM-DD)")
    s = contract_rules.change_salary(x, parse_dec(data.get("base_salary")), eff, data.get("reason"))
    db.session.commit()
    return ok(_salary_row(s), status=201)
