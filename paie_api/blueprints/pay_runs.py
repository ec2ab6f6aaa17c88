from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.errors import invalid, not_found
from paie_api.common.http import ok
from paie_api.common.paging import iso, num, page_limit, parse_date, parse_dec
from paie_api.models.payroll.pay_run import RUN_STATUSES, PayrollRun, PayrollRunItem
from paie_api.services import cnps_export, payroll_engine as engine, payroll_runs

bp = Blueprint("pay_runs", __name__, url_prefix="/api/v1/pay-runs")


# ---------- serializers ----------

def _row(r: PayrollRun):
    return {
        "id": r.id,
        "run_number": r.run_number,
        "name": r.name,
        "description": r.description,
        "period_start": iso(r.period_start),
        "period_end": iso(r.period_end),
        "pay_date": iso(r.pay_date),
        "payment_method": r.payment_method,
        "payment_frequency": r.payment_frequency,
        "status": r.status,
        "total_gross": num(r.total_gross),
        "total_net": num(r.total_net),
        "total_tax": num(r.total_tax),
        "total_employee_contributions": num(r.total_employee_contributions),
        "total_employer_contributions": num(r.total_employer_contributions),
        "employee_count": r.employee_count or 0,
        "error_message": r.error_message,
        "created_at": iso(r.created_at),
        "calculated_at": iso(r.calculated_at),
        "approved_at": iso(r.approved_at),
        "approved_by": r.approved_by,
        "paid_at": iso(r.paid_at),
    }


def _item_row(i: PayrollRunItem):
    emp = i.employee
    return {
        "id": i.id,
        "employee_id": i.employee_id,
        "employee_code": emp.code if emp else None,
        "employee_name": emp.full_name if emp else None,
        "contract_type": i.contract_type,
        "days_worked": num(i.days_worked),
        "hours_worked": num(i.hours_worked),
        "base_salary": num(i.base_salary),
        "gross": num(i.gross),
        "cnps_employee": num(i.cnps_employee),
        "cnps_employer": num(i.cnps_employer),
        "cmu_employee": num(i.cmu_employee),
        "cmu_employer": num(i.cmu_employer),
        "its": num(i.its),
        "other_employer_taxes": num(i.other_employer_taxes),
        "total_deductions": num(i.total_deductions),
        "net": num(i.net),
        "employer_cost": num(i.employer_cost),
        "components": i.components or [],
        "calc_meta": i.calc_meta or {},
    }


def _get(rid: int) -> PayrollRun:
    r = PayrollRun.query.filter_by(id=rid, company_id=current_company_id()).first()
    if r is None:
        raise not_found("Paie non trouvée")
    return r


# ---------- runs ----------

@bp.get("")
@requires_perms("payroll.runs.read")
def list_runs():
    q = PayrollRun.query.filter(PayrollRun.company_id == current_company_id())
    status = (request.args.get("status") or "").strip()
    if status:
        if status not in RUN_STATUSES:
            raise invalid(f"Statut invalide : {status}")
        q = q.filter(PayrollRun.status == status)
    year = request.args.get("year", type=int)
    if year:
        q = q.filter(PayrollRun.period_start >= date(year, 1, 1),
                     PayrollRun.period_start <= date(year, 12, 31))
    freq = (request.args.get("frequency") or "").strip().upper()
    if freq:
        q = q.filter(PayrollRun.payment_frequency == freq)
    page, size = page_limit()
    total = q.count()
    rows = q.order_by(PayrollRun.period_start.desc(), PayrollRun.id.desc()) \
        .offset((page - 1) * size).limit(size).all()
    return ok([_row(r) for r in rows], page=page, size=size, total=total)


@bp.post("")
@requires_perms("payroll.runs.write")
def create_run():
    run = payroll_runs.create_run(current_company_id(), request.get_json(silent=True) or {},
                                  current_user_id())
    return ok(_row(run), status=201)


@bp.get("/<int:rid>")
@requires_perms("payroll.runs.read")
def get_run(rid: int):
    r = _get(rid)
    out = _row(r)
    if request.args.get("include") == "items":
        out["items"] = [_item_row(i) for i in r.items.order_by(PayrollRunItem.employee_id)]
    return ok(out)


@bp.get("/<int:rid>/items")
@requires_perms("payroll.runs.read")
def get_items(rid: int):
    r = _get(rid)
    return ok([_item_row(i) for i in r.items.order_by(PayrollRunItem.employee_id)])


@bp.post("/<int:rid>/calculate")
@requires_perms("payroll.runs.write")
def calculate(rid: int):
    r = _get(rid)
    data = request.get_json(silent=True) or {}
    result = payroll_runs.calculate_run(r, data.get("time_inputs") or {})
    return ok(_row(r), **result)


@bp.post("/<int:rid>/approve")
@requires_perms("payroll.runs.approve")
def approve(rid: int):
    return ok(_row(payroll_runs.approve_run(_get(rid), current_user_id())))


@bp.post("/<int:rid>/mark-paid")
@requires_perms("payroll.runs.approve")
def mark_paid(rid: int):
    return ok(_row(payroll_runs.mark_paid(_get(rid))))


@bp.delete("/<int:rid>")
@requires_perms("payroll.runs.write")
def delete(rid: int):
    payroll_runs.delete_run(_get(rid))
    return ok({"deleted": rid})


# ---------- monthly consolidation ----------

@bp.get("/summary")
@requires_perms("payroll.runs.read")
def monthly_summary():
    y, m = payroll_runs.parse_month(request.args.get("month"))
    return ok(payroll_runs.monthly_summary(current_company_id(), y, m))


@bp.get("/cnps-export")
@requires_perms("payroll.export")
def cnps_monthly():
    y, m = payroll_runs.parse_month(request.args.get("month"))
    return ok(cnps_export.export_cnps_monthly(current_company_id(), y, m))


# ---------- simulations (no persistence) ----------

def _dec(data, key, default="0") -> Decimal:
    v = parse_dec(data.get(key))
    return v if v is not None else Decimal(default)


@bp.post("/simulate/monthly")
@requires_perms("payroll.runs.read")
def simulate_monthly():
    data = request.get_json(silent=True) or {}
    pstart = parse_date(data.get("period_start"))
    pend = parse_date(data.get("period_end"))
    if not (pstart and pend):
        raise invalid("period_start et period_end sont requis (YYYY-MM-DD)")
    try:
        res = engine.calculate_monthly(engine.MonthlyInput(
            base_salary=_dec(data, "base_salary"),
            period_start=pstart,
            period_end=pend,
            hire_date=parse_date(data.get("hire_date")),
            termination_date=parse_date(data.get("termination_date")),
            housing_allowance=_dec(data, "housing_allowance"),
            transport_allowance=_dec(data, "transport_allowance"),
            meal_allowance=_dec(data, "meal_allowance"),
            overtime_amount=_dec(data, "overtime_amount"),
            bonuses=_dec(data, "bonuses"),
            fiscal_parts=_dec(data, "fiscal_parts", "1"),
            has_family=bool(data.get("has_family")),
            sector=data.get("sector") or "services",
        ))
    except engine.PayrollValidationError as e:
        raise invalid(str(e))
    return ok(res.as_dict())


@bp.post("/simulate/daily")
@requires_perms("payroll.runs.read")
def simulate_daily():
    data = request.get_json(silent=True) or {}
    try:
        res = engine.calculate_daily_worker(engine.DailyInput(
            categorical_salary=_dec(data, "categorical_salary"),
            hours_worked=_dec(data, "hours_worked"),
            contract_type=data.get("contract_type") or "CDDTI",
            weekly_hours_regime=data.get("weekly_hours_regime") or "40h",
            saturday_hours=_dec(data, "saturday_hours"),
            sunday_hours=_dec(data, "sunday_hours"),
            night_hours=_dec(data, "night_hours"),
            daily_transport_rate=_dec(data, "daily_transport_rate"),
            bonuses=_dec(data, "bonuses"),
            fiscal_parts=_dec(data, "fiscal_parts", "1"),
            has_family=bool(data.get("has_family")),
            sector=data.get("sector") or "services",
        ))
    except engine.PayrollValidationError as e:
        raise invalid(str(e))
    return ok(res.as_dict())
