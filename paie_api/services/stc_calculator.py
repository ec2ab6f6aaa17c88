"""
Solde de tout compte (STC): final settlement owed when an employee leaves.

calculate_stc() is pure given its inputs; load_stc_input() gathers them from
the database so both the preview route and create_termination share one path.
"""
from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from paie_api.common.errors import invalid
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.payroll.pay_run import PayrollRun, PayrollRunItem
from paie_api.services import payroll_engine as engine
from paie_api.services.payroll_engine import D, fcfa

log = logging.getLogger(__name__)

GRATIFICATION_RATE = D("0.75")
CDD_END_INDEMNITY_RATE = D("0.03")
RETIREMENT_AGE = 60
DAYS_PER_YEAR = D("365.25")

# (upper year bound, rate) applied band by band
SEVERANCE_BANDS = [(D("5"), D("0.30")), (D("10"), D("0.35")), (None, D("0.40"))]

# licenciement type -> (notice multiplier, severance multiplier)
LICENCIEMENT_MULTIPLIERS = {
    "normal": (D("1"), D("1")),
    "faute_grave": (D("0"), D("1")),
    "faute_lourde": (D("0"), D("0")),
    "inaptitude": (D("2"), D("2")),
}

FUNERAL_SMIG_MULTIPLIERS = [(D("5"), 3), (D("10"), 4), (None, 6)]


@dataclass
class StcInput:
    departure_type: str
    hire_date: date
    termination_date: date
    monthly_salary: Decimal
    categorical_salary: Decimal
    average_salary_12m: Decimal
    is_cadre: bool = False
    contract_type: Optional[str] = None
    contract_end_date: Optional[date] = None
    contract_total_gross: Optional[Decimal] = None
    birth_date: Optional[date] = None
    unused_leave_days: Decimal = D("0")
    licenciement_type: Optional[str] = None
    notice_period_status: str = "worked"
    rupture_negotiated_amount: Optional[Decimal] = None
    beneficiaries: List[Dict[str, Any]] = field(default_factory=list)
    fiscal_parts: Decimal = D("1")


def years_of_service(hire: date, end: date) -> Decimal:
    return (D((end - hire).days) / DAYS_PER_YEAR).quantize(D("0.01"))


def legal_severance(years: Decimal, average_salary: Decimal):
    """Return (amount, top band rate in %). Below one year nothing is owed."""
    if years < 1:
        return D("0"), 0
    total, lower, top_rate = D("0"), D("0"), D("0")
    for upper, rate in SEVERANCE_BANDS:
        span = (years if upper is None else min(years, upper)) - lower
        if span <= 0:
            break
        total += span * rate
        top_rate = rate
        if upper is None or years <= upper:
            break
        lower = upper
    return fcfa(total * average_salary), int(top_rate * 100)


def notice_months(years: Decimal, is_cadre: bool) -> Decimal:
    if is_cadre:
        if years < D("0.5"):
            return D("1")
        return D("2") if years < 2 else D("3")
    if years < D("0.5"):
        return D("0.5")
    if years < 2:
        return D("1")
    return D("2") if years < 5 else D("3")


def funeral_expenses(years: Decimal) -> Decimal:
    for upper, mult in FUNERAL_SMIG_MULTIPLIERS:
        if upper is None or years < upper:
            return engine.SMIG * mult
    return engine.SMIG * 6


def _age_on(birth: date, on: date) -> int:
    return on.year - birth.year - ((on.month, on.day) < (birth.month, birth.day))


def _months_worked_in_year(hire: date, end: date) -> int:
    start = max(date(end.year, 1, 1), hire)
    return min((end.year - start.year) * 12 + end.month - start.month + 1, 12)


def calculate_stc(inp: StcInput) -> Dict[str, Any]:
    dep = inp.departure_type
    if inp.termination_date < inp.hire_date:
        raise invalid("La date de départ précède la date d'embauche")

    years = years_of_service(inp.hire_date, inp.termination_date)
    monthly = D(str(inp.monthly_salary))
    avg = D(str(inp.average_salary_12m or monthly))

    month_start = inp.termination_date.replace(day=1)
    month_end = month_start.replace(day=monthrange(month_start.year, month_start.month)[1])
    prorated, days_worked, _ = engine.prorate(monthly, month_start, month_end,
                                              inp.hire_date, inp.termination_date)
    vacation = fcfa(monthly / 30 * D(str(inp.unused_leave_days or 0)))
    gratification = fcfa(D(str(inp.categorical_salary)) * GRATIFICATION_RATE
                         * _months_worked_in_year(inp.hire_date, inp.termination_date) / 12)

    severance, severance_rate = legal_severance(years, avg)
    legal_amount = severance
    n_months = notice_months(years, inp.is_cadre)
    notice_mult = D("1")
    cdd_indemnity = D("0")
    funeral = D("0")
    penalty = D("0")

    if dep == "LICENCIEMENT":
        notice_mult, sev_mult = LICENCIEMENT_MULTIPLIERS.get(inp.licenciement_type or "normal",
                                                             LICENCIEMENT_MULTIPLIERS["normal"])
        severance = fcfa(severance * sev_mult)
        legal_amount = severance
    elif dep == "FIN_CDD":
        severance, severance_rate, legal_amount, n_months = D("0"), 0, D("0"), D("0")
        base = inp.contract_total_gross
        if base is None:
            months = max(D((inp.termination_date - inp.hire_date).days) / 30, D("1"))
            base = monthly * months
        cdd_indemnity = fcfa(D(str(base)) * CDD_END_INDEMNITY_RATE)
    elif dep == "DEMISSION_CDI":
        # notice is owed by the employee, no indemnity
        severance, severance_rate, legal_amount = D("0"), 0, D("0")
        notice_mult = D("0")
    elif dep == "DEMISSION_CDD":
        severance, severance_rate, legal_amount, n_months = D("0"), 0, D("0"), D("0")
        if inp.contract_end_date and inp.contract_end_date > inp.termination_date:
            remaining = (inp.contract_end_date - inp.termination_date).days
            penalty = fcfa(monthly / 30 * remaining)
    elif dep == "RUPTURE_CONVENTIONNELLE":
        negotiated = D(str(inp.rupture_negotiated_amount or 0))
        severance = max(negotiated, legal_amount)
    elif dep == "RETRAITE":
        if not inp.birth_date or _age_on(inp.birth_date, inp.termination_date) < RETIREMENT_AGE:
            raise invalid(f"Le départ à la retraite nécessite un âge d'au moins {RETIREMENT_AGE} ans")
    elif dep == "DECES":
        if inp.beneficiaries:
            total_share = sum(D(str(b.get("sharePercentage", b.get("share_percentage", 0)) or 0))
                              for b in inp.beneficiaries)
            if total_share != 100:
                raise invalid("La somme des parts des ayants droit doit être égale à 100%")
        funeral = funeral_expenses(years)
    else:
        raise invalid(f"Type de départ inconnu : {dep}")

    notice_days = int(n_months * 30)
    notice_payment = D("0")
    # retirement and death cannot be worked; inaptitude doubles the notice and pays it
    always_paid = dep in ("RETRAITE", "DECES") or (dep == "LICENCIEMENT" and notice_mult > 1)
    if always_paid or (inp.notice_period_status == "paid_by_employer" and notice_mult > 0):
        notice_payment = fcfa(avg * n_months * notice_mult)

    # severance above the legal amount (rupture) is taxable, the legal part is not
    taxable = prorated + vacation + gratification + notice_payment + cdd_indemnity \
        + max(severance - legal_amount, D("0"))
    cnps = engine.calculate_cnps_pension(taxable)["employee"]
    its = engine.calculate_its(taxable, inp.fiscal_parts)["its"]
    cmu = engine.CMU_EMPLOYEE if taxable > 0 else D("0")

    gross = prorated + vacation + gratification + notice_payment + severance + cdd_indemnity + funeral
    deductions = cnps + cmu + its + penalty
    return {
        "departure_type": dep,
        "years_of_service": years,
        "days_worked_last_month": days_worked,
        "unused_leave_days": D(str(inp.unused_leave_days or 0)),
        "average_salary_12m": fcfa(avg),
        "prorated_salary": prorated,
        "vacation_payout": vacation,
        "gratification": gratification,
        "notice_period_months": n_months,
        "notice_period_days": notice_days,
        "notice_payment": notice_payment,
        "severance": severance,
        "legal_severance": legal_amount,
        "severance_rate": severance_rate,
        "cdd_end_indemnity": cdd_indemnity,
        "funeral_expenses": funeral,
        "resignation_penalty": penalty,
        "taxable": taxable,
        "cnps_employee": cnps,
        "cmu_employee": cmu,
        "its": its,
        "gross": gross,
        "deductions": deductions,
        "net": gross - deductions,
    }


def jsonable(result: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (float(v) if isinstance(v, Decimal) else v) for k, v in result.items()}


# ---------- DB side ----------

def average_salary_12m(employee: Employee, end: date, fallback: Decimal) -> Decimal:
    start = end - timedelta(days=365)
    rows = (db.session.query(PayrollRun.period_start, PayrollRunItem.gross)
            .join(PayrollRun, PayrollRun.id == PayrollRunItem.run_id)
            .filter(PayrollRunItem.employee_id == employee.id)
            .filter(PayrollRun.status.in_(("approved", "paid")))
            .filter(PayrollRun.period_start >= start)
            .filter(PayrollRun.period_start <= end)
            .all())
    by_month: Dict[str, Decimal] = {}
    for pstart, gross in rows:
        key = f"{pstart:%Y-%m}"
        by_month[key] = by_month.get(key, D("0")) + D(str(gross or 0))
    if not by_month:
        return D(str(fallback))
    return fcfa(sum(by_month.values()) / len(by_month))


def _contract_total_gross(employee: Employee, since: date) -> Optional[Decimal]:
    total = (db.session.query(db.func.sum(PayrollRunItem.gross))
             .join(PayrollRun, PayrollRun.id == PayrollRunItem.run_id)
             .filter(PayrollRunItem.employee_id == employee.id)
             .filter(PayrollRun.status.in_(("approved", "paid")))
             .filter(PayrollRun.period_start >= since)
             .scalar())
    return D(str(total)) if total else None


def load_stc_input(employee: Employee, data: Dict[str, Any], termination_date: date) -> StcInput:
    salary = employee.active_salary(termination_date) or employee.active_salary()
    if salary is None:
        raise invalid("No active salary found")
    contract = employee.active_contract()
    monthly = D(str(salary.base_salary)) + D(str(salary.housing_allowance or 0)) \
        + D(str(salary.transport_allowance or 0)) + D(str(salary.meal_allowance or 0))

    return StcInput(
        departure_type=data["departure_type"],
        hire_date=employee.hire_date,
        termination_date=termination_date,
        monthly_salary=monthly,
        categorical_salary=D(str(salary.categorical_salary or salary.base_salary)),
        average_salary_12m=average_salary_12m(employee, termination_date, monthly),
        is_cadre=bool(employee.is_cadre),
        contract_type=contract.contract_type if contract else None,
        contract_end_date=contract.end_date if contract else None,
        contract_total_gross=_contract_total_gross(employee, contract.start_date) if contract else None,
        birth_date=employee.birth_date,
        unused_leave_days=D(str(data.get("unused_leave_days") or 0)),
        licenciement_type=data.get("licenciement_type"),
        notice_period_status=data.get("notice_period_status") or "worked",
        rupture_negotiated_amount=(D(str(data["rupture_negotiated_amount"]))
                                   if data.get("rupture_negotiated_amount") not in (None, "") else None),
        beneficiaries=data.get("beneficiaries") or [],
        fiscal_parts=D(str(employee.fiscal_parts or 1)),
    )
