"""
Payroll run lifecycle: draft -> calculating -> calculated -> approved -> paid (| failed).
"""
from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from paie_api.common.errors import conflict, invalid
from paie_api.common.paging import parse_date
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.master import Company
from paie_api.models.payroll.pay_run import PayrollRun, PayrollRunItem
from paie_api.models.workflow import PayrollEvent
from paie_api.services import payroll_engine as engine

log = logging.getLogger(__name__)

CONSOLIDATED_STATUSES = ("approved", "paid")
FREQUENCIES = ("MONTHLY", "WEEKLY", "BIWEEKLY", "DAILY")


def ensure_status(run: PayrollRun, allowed: Iterable[str]):
    allowed = tuple(allowed)
    if run.status not in allowed:
        raise conflict(
            f"La paie {run.run_number} est au statut '{run.status}' "
            f"(statuts autorisés : {', '.join(allowed)})"
        )


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def parse_month(value: str) -> Tuple[int, int]:
    """'2025-03' -> (2025, 3)."""
    try:
        y, m = str(value).split("-")[:2]
        y, m = int(y), int(m)
        if not 1 <= m <= 12:
            raise ValueError
        return y, m
    except (TypeError, ValueError):
        raise invalid("month doit être au format YYYY-MM")


def next_run_number(company_id: int, period_start: date) -> str:
    prefix = f"PAY-{period_start:%Y-%m}-"
    count = (PayrollRun.query
             .filter(PayrollRun.company_id == company_id)
             .filter(PayrollRun.run_number.like(f"{prefix}%"))
             .count())
    return f"{prefix}{count + 1:03d}"


def create_run(company_id: int, data: Dict[str, Any], user_id: Optional[int]) -> PayrollRun:
    pstart = parse_date(data.get("period_start"))
    pend = parse_date(data.get("period_end"))
    pay_date = parse_date(data.get("pay_date")) or pend
    freq = (data.get("payment_frequency") or "MONTHLY").upper()

    if not (pstart and pend):
        raise invalid("period_start et period_end sont requis (YYYY-MM-DD)")
    if pend < pstart:
        raise invalid("La fin de période doit être postérieure ou égale au début")
    if pay_date < pstart:
        raise invalid("La date de paiement ne peut pas précéder le début de période")
    if freq not in FREQUENCIES:
        raise invalid(f"Fréquence de paiement invalide : {freq}")

    run = PayrollRun(
        company_id=company_id,
        run_number=next_run_number(company_id, pstart),
        name=(data.get("name") or "").strip() or f"Paie {pstart:%m/%Y}",
        description=data.get("description"),
        period_start=pstart,
        period_end=pend,
        pay_date=pay_date,
        payment_method=data.get("payment_method") or "bank_transfer",
        payment_frequency=freq,
        status="draft",
        created_by=user_id,
    )
    db.session.add(run)
    db.session.commit()
    log.info("payroll run %s created (company=%s)", run.run_number, company_id)
    return run


# ---------- calculation ----------

def _eligible_employees(run: PayrollRun) -> List[Employee]:
    q = (Employee.query
         .filter(Employee.company_id == run.company_id)
         .filter(Employee.payment_frequency == run.payment_frequency)
         .filter(Employee.hire_date <= run.period_end)
         .filter(db.or_(Employee.termination_date.is_(None),
                        Employee.termination_date >= run.period_start))
         .filter(Employee.status != "suspended"))
    return q.order_by(Employee.id).all()


def _period_bonuses(employee_id: int, run: PayrollRun) -> Decimal:
    rows = (PayrollEvent.query
            .filter(PayrollEvent.employee_id == employee_id)
            .filter(PayrollEvent.processed.is_(False))
            .filter(PayrollEvent.event_date >= run.period_start)
            .filter(PayrollEvent.event_date <= run.period_end)
            .all())
    return sum((Decimal(str(r.amount or 0)) for r in rows), Decimal("0"))


def calculate_employee(emp: Employee, company: Company, run: PayrollRun,
                       time_input: Optional[Dict[str, Any]] = None):
    """Return (PayrollResult, contract_type) or raise PayrollValidationError."""
    salary = emp.active_salary(run.period_end) or emp.active_salary(run.period_start)
    if salary is None:
        raise engine.PayrollValidationError("No active salary found")
    contract = emp.active_contract()
    ctype = contract.contract_type if contract else None
    sector = company.sector if company else "services"
    time_input = time_input or {}

    if ctype == "CDDTI" or run.payment_frequency != "MONTHLY":
        hours = time_input.get("hours_worked")
        if hours is None and time_input.get("days_worked") is not None:
            hours = Decimal(str(time_input["days_worked"])) * engine.HOURS_PER_DAY
        if not hours:
            raise engine.PayrollValidationError("Aucune heure saisie pour cette période")
        res = engine.calculate_daily_worker(engine.DailyInput(
            categorical_salary=salary.categorical_salary or salary.base_salary,
            hours_worked=Decimal(str(hours)),
            contract_type=ctype or "CDDTI",
            weekly_hours_regime=emp.weekly_hours_regime or "40h",
            saturday_hours=Decimal(str(time_input.get("saturday_hours") or 0)),
            sunday_hours=Decimal(str(time_input.get("sunday_hours") or 0)),
            night_hours=Decimal(str(time_input.get("night_hours") or 0)),
            daily_transport_rate=salary.daily_transport_rate or 0,
            bonuses=Decimal(str(time_input.get("bonuses") or 0)) + _period_bonuses(emp.id, run),
            fiscal_parts=emp.fiscal_parts or 1,
            has_family=bool(emp.has_family),
            sector=sector,
        ))
        return res, ctype

    res = engine.calculate_monthly(engine.MonthlyInput(
        base_salary=salary.base_salary,
        period_start=run.period_start,
        period_end=run.period_end,
        hire_date=emp.hire_date,
        termination_date=emp.termination_date,
        housing_allowance=salary.housing_allowance or 0,
        transport_allowance=salary.transport_allowance or 0,
        meal_allowance=salary.meal_allowance or 0,
        overtime_amount=Decimal(str(time_input.get("overtime_amount") or 0)),
        bonuses=Decimal(str(time_input.get("bonuses") or 0)) + _period_bonuses(emp.id, run),
        fiscal_parts=emp.fiscal_parts or 1,
        has_family=bool(emp.has_family),
        sector=sector,
    ))
    return res, ctype


def calculate_run(run: PayrollRun, time_inputs: Optional[Dict[Any, Dict[str, Any]]] = None) -> Dict[str, Any]:
    ensure_status(run, ("draft", "calculated", "failed"))
    time_inputs = {str(k): v for k, v in (time_inputs or {}).items()}

    run.status = "calculating"
    run.error_message = None
    db.session.commit()
    log.info("calculating payroll run %s", run.run_number)

    warnings: List[Dict[str, Any]] = []
    try:
        company = db.session.get(Company, run.company_id)
        PayrollRunItem.query.filter_by(run_id=run.id).delete()

        totals = {k: Decimal("0") for k in ("gross", "net", "tax", "emp", "er")}
        count = 0
        for emp in _eligible_employees(run):
            try:
                res, ctype = calculate_employee(emp, company, run, time_inputs.get(str(emp.id)))
            except engine.PayrollValidationError as e:
                log.warning("run %s: employee %s skipped: %s", run.run_number, emp.id, e)
                warnings.append({"employee_id": emp.id, "message": str(e)})
                continue

            db.session.add(PayrollRunItem(
                run_id=run.id,
                employee_id=emp.id,
                contract_type=ctype,
                days_worked=res.days_worked,
                hours_worked=res.hours_worked,
                base_salary=res.base_salary,
                gross=res.gross,
                cnps_employee=res.cnps_employee,
                cnps_employer=res.cnps_employer,
                cmu_employee=res.cmu_employee,
                cmu_employer=res.cmu_employer,
                its=res.its,
                other_employer_taxes=res.fdfp,
                total_deductions=res.total_deductions,
                net=res.net,
                employer_cost=res.employer_cost,
                components=res.as_dict()["components"],
                calc_meta={"input": time_inputs.get(str(emp.id)) or {},
                           "details": res.as_dict()["details"]},
            ))
            totals["gross"] += res.gross
            totals["net"] += res.net
            totals["tax"] += res.its
            totals["emp"] += res.cnps_employee + res.cmu_employee
            totals["er"] += res.employer_contributions
            count += 1

        run.total_gross = totals["gross"]
        run.total_net = totals["net"]
        run.total_tax = totals["tax"]
        run.total_employee_contributions = totals["emp"]
        run.total_employer_contributions = totals["er"]
        run.employee_count = count
        run.status = "calculated"
        run.calculated_at = datetime.utcnow()
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        run.status = "failed"
        run.error_message = str(e)
        db.session.commit()
        log.exception("payroll run %s failed", run.run_number)
        raise

    log.info("payroll run %s calculated: %s employees, gross=%s", run.run_number, count, run.total_gross)
    return {"items": count, "warnings": warnings}


def approve_run(run: PayrollRun, user_id: Optional[int]) -> PayrollRun:
    ensure_status(run, ("calculated",))
    run.status = "approved"
    run.approved_by = user_id
    run.approved_at = datetime.utcnow()
    db.session.commit()
    return run


def mark_paid(run: PayrollRun) -> PayrollRun:
    ensure_status(run, ("approved",))
    run.status = "paid"
    run.paid_at = datetime.utcnow()
    # variable-pay events included in the run are now consumed
    emp_ids = [i.employee_id for i in run.items]
    if emp_ids:
        (PayrollEvent.query
         .filter(PayrollEvent.employee_id.in_(emp_ids))
         .filter(PayrollEvent.event_date >= run.period_start)
         .filter(PayrollEvent.event_date <= run.period_end)
         .update({"processed": True}, synchronize_session=False))
    db.session.commit()
    return run


def delete_run(run: PayrollRun):
    ensure_status(run, ("draft", "failed"))
    db.session.delete(run)
    db.session.commit()


# ---------- monthly consolidation ----------

def consolidated_runs(company_id: int, year: int, month: int) -> List[PayrollRun]:
    start, end = month_bounds(year, month)
    return (PayrollRun.query
            .filter(PayrollRun.company_id == company_id)
            .filter(PayrollRun.status.in_(CONSOLIDATED_STATUSES))
            .filter(PayrollRun.period_start >= start)
            .filter(PayrollRun.period_start <= end)
            .order_by(PayrollRun.period_start, PayrollRun.id)
            .all())


def aggregate_by_employee(runs: List[PayrollRun]) -> Dict[int, Dict[str, Any]]:
    """Sum days/hours/gross per employee across every run of the month."""
    agg: Dict[int, Dict[str, Any]] = {}
    for run in runs:
        for item in run.items:
            row = agg.setdefault(item.employee_id, {
                "employee": item.employee,
                "contract_type": item.contract_type,
                "payment_frequency": run.payment_frequency,
                "days": Decimal("0"),
                "hours": Decimal("0"),
                "gross": Decimal("0"),
                "net": Decimal("0"),
                "runs": 0,
            })
            row["days"] += Decimal(str(item.days_worked or 0))
            row["hours"] += Decimal(str(item.hours_worked or 0))
            row["gross"] += Decimal(str(item.gross or 0))
            row["net"] += Decimal(str(item.net or 0))
            row["runs"] += 1
            if item.contract_type:
                row["contract_type"] = item.contract_type
    return agg


def monthly_summary(company_id: int, year: int, month: int) -> Dict[str, Any]:
    runs = consolidated_runs(company_id, year, month)
    agg = aggregate_by_employee(runs)
    return {
        "month": f"{year:04d}-{month:02d}",
        "runs": [{
            "id": r.id,
            "runNumber": r.run_number,
            "paymentFrequency": r.payment_frequency,
            "status": r.status,
            "periodStart": r.period_start.isoformat(),
            "periodEnd": r.period_end.isoformat(),
            "employeeCount": r.employee_count or 0,
            "totalGross": float(r.total_gross or 0),
            "totalNet": float(r.total_net or 0),
        } for r in runs],
        "employeeCount": len(agg),
        "totalGross": float(sum((a["gross"] for a in agg.values()), Decimal("0"))),
        "totalNet": float(sum((a["net"] for a in agg.values()), Decimal("0"))),
        "employees": [{
            "employeeId": emp_id,
            "name": a["employee"].full_name if a["employee"] else None,
            "contractType": a["contract_type"],
            "days": float(a["days"]),
            "hours": float(a["hours"]),
            "gross": float(a["gross"]),
            "runs": a["runs"],
        } for emp_id, a in sorted(agg.items())],
    }
