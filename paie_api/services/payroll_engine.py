"""
Côte d'Ivoire payroll rules.

Pure functions over Decimal: no DB access here, so the run calculation, the
STC calculator and the tests can all share them.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Any, Dict, List, Optional

D = Decimal

SMIG = D("75000")

CNPS_PENSION_CEILING = D("3375000")
CNPS_PENSION_EMPLOYEE_RATE = D("0.063")
CNPS_PENSION_EMPLOYER_RATE = D("0.077")

CNPS_OTHER_CEILING = D("70000")
CNPS_MATERNITY_RATE = D("0.0075")
CNPS_FAMILY_RATE = D("0.05")
WORK_ACCIDENT_RATE = D("0.02")
# sectors above the default rate
WORK_ACCIDENT_RATES = {
    "construction": D("0.05"),
}

CMU_EMPLOYEE = D("1000")
CMU_EMPLOYER = D("500")
CMU_EMPLOYER_FAMILY = D("5000")

FDFP_TAP_RATE = D("0.004")    # taxe d'apprentissage
FDFP_TFPC_RATE = D("0.006")   # formation professionnelle continue

# ITS 2024, monthly scale: (lower bound, upper bound or None, rate)
ITS_MONTHLY_BRACKETS = [
    (D("0"), D("75000"), D("0")),
    (D("75000"), D("240000"), D("0.16")),
    (D("240000"), D("800000"), D("0.21")),
    (D("800000"), D("2400000"), D("0.24")),
    (D("2400000"), D("8000000"), D("0.28")),
    (D("8000000"), None, D("0.32")),
]

ITS_FAMILY_DEDUCTIONS = {
    D("1.0"): D("0"),
    D("1.5"): D("5500"),
    D("2.0"): D("11000"),
    D("2.5"): D("16500"),
    D("3.0"): D("22000"),
    D("3.5"): D("27500"),
    D("4.0"): D("33000"),
    D("4.5"): D("38500"),
    D("5.0"): D("44000"),
}

# daily workers
OVERTIME_FIRST_BAND_HOURS = D("8")
OVERTIME_RATE_1 = D("1.15")
OVERTIME_RATE_2 = D("1.50")
WEEKEND_RATE = D("1.40")
NIGHT_RATE = D("1.75")
GRATIFICATION_RATE = D("0.0333")
CONGES_PAYES_RATE = D("0.10")
PRECARITE_RATE = D("0.03")
HOURS_PER_DAY = D("8")
DAYS_PER_MONTH = D("30")


class PayrollValidationError(ValueError):
    """Input rejected by a legal rule (SMIG, missing data...)."""


def fcfa(x) -> Decimal:
    """Round half-up to the whole franc."""
    return D(str(x)).quantize(D("1"), rounding=ROUND_HALF_UP)


def fmt_fcfa(x) -> str:
    return f"{int(fcfa(x)):,}".replace(",", " ")


def _d(x, default="0") -> Decimal:
    if x is None or x == "":
        return D(default)
    return D(str(x))


# ---------- building blocks ----------

def prorate(amount, period_start: date, period_end: date,
            hire_date: Optional[date] = None, termination_date: Optional[date] = None):
    """Return (prorated amount, days worked, days in period)."""
    days_in_period = (period_end - period_start).days + 1
    start = max(period_start, hire_date) if hire_date else period_start
    end = min(period_end, termination_date) if termination_date else period_end
    days_worked = max((end - start).days + 1, 0)
    if days_worked >= days_in_period:
        return fcfa(amount), days_in_period, days_in_period
    return fcfa(_d(amount) * days_worked / days_in_period), days_worked, days_in_period


def calculate_cnps_pension(gross, ceiling: Decimal = CNPS_PENSION_CEILING) -> Dict[str, Decimal]:
    capped = min(_d(gross), ceiling)
    return {
        "capped_salary": capped,
        "employee": fcfa(capped * CNPS_PENSION_EMPLOYEE_RATE),
        "employer": fcfa(capped * CNPS_PENSION_EMPLOYER_RATE),
    }


def calculate_cnps_other(gross, sector: str = "services",
                         ceiling: Decimal = CNPS_OTHER_CEILING) -> Dict[str, Decimal]:
    """Employer-only branches: maternity, family benefits, work accident."""
    capped = min(_d(gross), ceiling)
    wa_rate = WORK_ACCIDENT_RATES.get((sector or "services").lower(), WORK_ACCIDENT_RATE)
    out = {
        "capped_salary": capped,
        "maternity": fcfa(capped * CNPS_MATERNITY_RATE),
        "family": fcfa(capped * CNPS_FAMILY_RATE),
        "work_accident": fcfa(capped * wa_rate),
    }
    out["total"] = out["maternity"] + out["family"] + out["work_accident"]
    return out


def calculate_cmu(has_family: bool = False) -> Dict[str, Decimal]:
    employer = CMU_EMPLOYER_FAMILY if has_family else CMU_EMPLOYER
    return {"employee": CMU_EMPLOYEE, "employer": employer, "total": CMU_EMPLOYEE + employer}


def normalize_fiscal_parts(parts) -> Decimal:
    p = _d(parts, "1")
    p = min(max(p, D("1")), D("5"))
    return (p * 2).to_integral_value(rounding=ROUND_FLOOR) / 2


def its_family_deduction(parts) -> Decimal:
    return ITS_FAMILY_DEDUCTIONS[normalize_fiscal_parts(parts).quantize(D("0.1"))]


def _progressive_tax(income: Decimal, brackets) -> Decimal:
    tax = D("0")
    for lower, upper, rate in brackets:
        if income <= lower:
            break
        top = income if upper is None else min(income, upper)
        tax += (top - lower) * rate
    return tax


def calculate_its(gross, fiscal_parts=1) -> Dict[str, Decimal]:
    gross = _d(gross)
    gross_tax = fcfa(_progressive_tax(gross, ITS_MONTHLY_BRACKETS))
    deduction = its_family_deduction(fiscal_parts)
    return {
        "gross_tax": gross_tax,
        "family_deduction": deduction,
        "its": max(gross_tax - deduction, D("0")),
    }


def calculate_fdfp(gross) -> Dict[str, Decimal]:
    tap = fcfa(_d(gross) * FDFP_TAP_RATE)
    tfpc = fcfa(_d(gross) * FDFP_TFPC_RATE)
    return {"tap": tap, "tfpc": tfpc, "total": tap + tfpc}


# ---------- results ----------

@dataclass
class PayrollResult:
    gross: Decimal
    base_salary: Decimal
    prorated_salary: Decimal
    days_worked: Decimal
    days_in_period: int
    hours_worked: Decimal
    cnps_employee: Decimal
    cnps_employer: Decimal
    cmu_employee: Decimal
    cmu_employer: Decimal
    its: Decimal
    fdfp: Decimal
    total_deductions: Decimal
    net: Decimal
    employer_cost: Decimal
    components: List[Dict[str, Any]] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def employer_contributions(self) -> Decimal:
        return self.cnps_employer + self.cmu_employer + self.fdfp

    def as_dict(self) -> Dict[str, Any]:
        def conv(v):
            if isinstance(v, Decimal):
                return float(v)
            if isinstance(v, dict):
                return {k: conv(x) for k, x in v.items()}
            if isinstance(v, list):
                return [conv(x) for x in v]
            return v
        return conv(asdict(self))


def _component(code: str, label: str, amount, kind: str = "earning") -> Dict[str, Any]:
    return {"code": code, "label": label, "amount": float(fcfa(amount)), "kind": kind}


def _finish(gross, base, prorated, days_worked, days_in_period, hours, cnps_p, cnps_o,
            cmu_emp, cmu_er, its, fdfp, earnings, details) -> PayrollResult:
    total_deductions = cnps_p["employee"] + cmu_emp + its["its"]
    cnps_employer = cnps_p["employer"] + cnps_o["total"]
    components = list(earnings) + [
        _component("CNPS_SAL", "CNPS retraite (salarié)", cnps_p["employee"], "deduction"),
        _component("CMU_SAL", "CMU (salarié)", cmu_emp, "deduction"),
        _component("ITS", "Impôt sur les traitements et salaires", its["its"], "deduction"),
    ]
    details = dict(details)
    details.update({
        "cnps_pension": cnps_p,
        "cnps_other": cnps_o,
        "its": its,
        "fdfp": fdfp,
    })
    return PayrollResult(
        gross=gross,
        base_salary=base,
        prorated_salary=prorated,
        days_worked=D(str(days_worked)),
        days_in_period=days_in_period,
        hours_worked=D(str(hours)),
        cnps_employee=cnps_p["employee"],
        cnps_employer=cnps_employer,
        cmu_employee=cmu_emp,
        cmu_employer=cmu_er,
        its=its["its"],
        fdfp=fdfp["total"],
        total_deductions=total_deductions,
        net=gross - total_deductions,
        employer_cost=gross + cnps_employer + cmu_er + fdfp["total"],
        components=components,
        details=details,
    )


# ---------- monthly employees ----------

@dataclass
class MonthlyInput:
    base_salary: Decimal
    period_start: date
    period_end: date
    hire_date: Optional[date] = None
    termination_date: Optional[date] = None
    housing_allowance: Decimal = D("0")
    transport_allowance: Decimal = D("0")
    meal_allowance: Decimal = D("0")
    overtime_amount: Decimal = D("0")
    bonuses: Decimal = D("0")
    fiscal_parts: Decimal = D("1")
    has_family: bool = False
    sector: str = "services"
    check_smig: bool = True


def calculate_monthly(inp: MonthlyInput) -> PayrollResult:
    base = _d(inp.base_salary)
    if inp.check_smig and base < SMIG:
        raise PayrollValidationError(
            f"Le salaire de base ({fmt_fcfa(base)} FCFA) est inférieur au SMIG ({fmt_fcfa(SMIG)} FCFA)"
        )

    prorated, days_worked, days_in_period = prorate(
        base, inp.period_start, inp.period_end, inp.hire_date, inp.termination_date)

    earnings = [_component("SALAIRE_BASE", "Salaire de base", prorated)]
    allowances = D("0")
    for code, label, amount in (
        ("PRIME_LOGEMENT", "Indemnité de logement", inp.housing_allowance),
        ("PRIME_TRANSPORT", "Indemnité de transport", inp.transport_allowance),
        ("PRIME_REPAS", "Indemnité de repas", inp.meal_allowance),
    ):
        if _d(amount) > 0:
            part, _, _ = prorate(amount, inp.period_start, inp.period_end, inp.hire_date, inp.termination_date)
            allowances += part
            earnings.append(_component(code, label, part))
    if _d(inp.overtime_amount) > 0:
        earnings.append(_component("HEURES_SUP", "Heures supplémentaires", inp.overtime_amount))
    if _d(inp.bonuses) > 0:
        earnings.append(_component("PRIMES", "Primes", inp.bonuses))

    gross = fcfa(prorated + allowances + _d(inp.overtime_amount) + _d(inp.bonuses))
    cmu = calculate_cmu(inp.has_family)
    return _finish(
        gross, base, prorated, days_worked, days_in_period, 0,
        calculate_cnps_pension(gross),
        calculate_cnps_other(gross, inp.sector),
        cmu["employee"], cmu["employer"],
        calculate_its(gross, inp.fiscal_parts),
        calculate_fdfp(gross),
        earnings,
        {"allowances": allowances, "regime": "monthly"},
    )


# ---------- daily / hourly workers ----------

def hourly_divisor(regime: str = "40h") -> Decimal:
    """Monthly hours for a weekly regime: 40h -> 173.33."""
    return (D(str(regime).rstrip("h")) * 52 / 12).quantize(D("0.01"), rounding=ROUND_HALF_UP)


def hourly_rate(categorical_salary, regime: str = "40h") -> Decimal:
    return _d(categorical_salary) / hourly_divisor(regime)


def classify_overtime(hours, regime: str = "40h") -> Dict[str, Decimal]:
    hours = _d(hours)
    threshold = D(str(regime).rstrip("h"))
    regular = min(hours, threshold)
    extra = max(hours - threshold, D("0"))
    first = min(extra, OVERTIME_FIRST_BAND_HOURS)
    return {"regular_hours": regular, "overtime_1": first, "overtime_2": extra - first}


def equivalent_days(hours) -> Decimal:
    return _d(hours) / HOURS_PER_DAY


@dataclass
class DailyInput:
    categorical_salary: Decimal
    hours_worked: Decimal
    contract_type: str = "CDDTI"
    weekly_hours_regime: str = "40h"
    saturday_hours: Decimal = D("0")
    sunday_hours: Decimal = D("0")
    night_hours: Decimal = D("0")
    daily_transport_rate: Decimal = D("0")
    bonuses: Decimal = D("0")
    fiscal_parts: Decimal = D("1")
    has_family: bool = False
    sector: str = "services"


def calculate_daily_its(gross, eq_days, fiscal_parts=1) -> Dict[str, Decimal]:
    """Monthly brackets / 30 applied to the daily gross, then scaled back by days worked."""
    gross, eq_days = _d(gross), _d(eq_days)
    if eq_days <= 0:
        return {"gross_tax": D("0"), "family_deduction": D("0"), "its": D("0")}
    daily = [(lo / DAYS_PER_MONTH, None if hi is None else hi / DAYS_PER_MONTH, rate)
             for lo, hi, rate in ITS_MONTHLY_BRACKETS]
    gross_tax = fcfa(_progressive_tax(gross / eq_days, daily) * eq_days)
    deduction = fcfa(its_family_deduction(fiscal_parts) / DAYS_PER_MONTH) * eq_days
    deduction = fcfa(deduction)
    return {"gross_tax": gross_tax, "family_deduction": deduction,
            "its": max(gross_tax - deduction, D("0"))}


def calculate_daily_worker(inp: DailyInput) -> PayrollResult:
    rate = hourly_rate(inp.categorical_salary, inp.weekly_hours_regime)
    total_hours = _d(inp.hours_worked)
    sat, sun, night = _d(inp.saturday_hours), _d(inp.sunday_hours), _d(inp.night_hours)
    split = classify_overtime(total_hours - sat - sun - night, inp.weekly_hours_regime)

    regular = fcfa(rate * split["regular_hours"])
    ot1 = fcfa(rate * OVERTIME_RATE_1 * split["overtime_1"])
    ot2 = fcfa(rate * OVERTIME_RATE_2 * split["overtime_2"])
    weekend = fcfa(rate * WEEKEND_RATE * (sat + sun))
    night_pay = fcfa(rate * NIGHT_RATE * night)
    brut_base = regular + ot1 + ot2 + weekend + night_pay

    gratification = fcfa(brut_base * GRATIFICATION_RATE)
    conges = fcfa(brut_base * CONGES_PAYES_RATE)
    precarite = fcfa(brut_base * PRECARITE_RATE) if inp.contract_type == "CDDTI" else D("0")
    eq_days = equivalent_days(total_hours)
    transport = fcfa(_d(inp.daily_transport_rate) * eq_days)
    bonuses = fcfa(_d(inp.bonuses))
    gross = brut_base + gratification + conges + precarite + transport + bonuses

    earnings = [_component("SALAIRE_HORAIRE", "Salaire (heures normales)", regular)]
    for code, label, amount in (
        ("HS_115", "Heures supplémentaires 15%", ot1),
        ("HS_150", "Heures supplémentaires 50%", ot2),
        ("HS_WEEKEND", "Heures samedi/dimanche 40%", weekend),
        ("HS_NUIT", "Heures de nuit 75%", night_pay),
        ("GRATIFICATION", "Gratification", gratification),
        ("CONGES_PAYES", "Indemnité de congés payés", conges),
        ("PRECARITE", "Indemnité de précarité", precarite),
        ("TRANSPORT", "Indemnité de transport", transport),
        ("PRIMES", "Primes", bonuses),
    ):
        if amount > 0:
            earnings.append(_component(code, label, amount))

    prorata = eq_days / DAYS_PER_MONTH
    cnps_p = calculate_cnps_pension(gross, CNPS_PENSION_CEILING * prorata)
    cnps_o = calculate_cnps_other(gross, inp.sector, CNPS_OTHER_CEILING * prorata)
    cmu = calculate_cmu(inp.has_family)
    return _finish(
        gross, _d(inp.categorical_salary), brut_base, eq_days, 30, total_hours,
        cnps_p, cnps_o,
        fcfa(cmu["employee"] * prorata), fcfa(cmu["employer"] * prorata),
        calculate_daily_its(gross, eq_days, inp.fiscal_parts),
        calculate_fdfp(gross),
        earnings,
        {"regime": "daily", "hourly_rate": rate.quantize(D("0.01")), "prorata": prorata,
         "equivalent_days": eq_days, "hours": split},
    )
