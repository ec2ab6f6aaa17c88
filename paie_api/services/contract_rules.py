"""Employment contract validation and lifecycle helpers."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from paie_api.common.errors import invalid
from paie_api.common.paging import parse_date, parse_dec
from paie_api.extensions import db
from paie_api.models.employee import Employee, EmploymentContract, EmployeeSalary
from paie_api.services.payroll_engine import SMIG, fmt_fcfa

log = logging.getLogger(__name__)

CONTRACT_TYPES = ("CDI", "CDD", "CDDTI", "INTERIM", "STAGE")
END_DATE_REQUIRED = ("CDD", "CDDTI", "STAGE")
FIXED_TERM = ("CDD", "CDDTI", "INTERIM")
CDD_REASON_MIN_LENGTH = 10
CDD_MAX_RENEWALS = 2

# departure type -> contract types it can end
DEPARTURE_CONTRACTS = {
    "FIN_CDD": FIXED_TERM,
    "DEMISSION_CDD": FIXED_TERM,
    "DEMISSION_CDI": ("CDI",),
    "RUPTURE_CONVENTIONNELLE": ("CDI",),
}


def validate_contract(data: Dict[str, Any]) -> List[str]:
    """Return French validation messages; empty list means the contract is acceptable."""
    errors: List[str] = []
    ctype = (data.get("contract_type") or "").upper()
    if ctype not in CONTRACT_TYPES:
        errors.append(f"Type de contrat invalide : {ctype or '(vide)'}")
        return errors

    start = parse_date(data.get("start_date"))
    end = parse_date(data.get("end_date"))
    if not start:
        errors.append("La date de début est requise")

    if ctype in END_DATE_REQUIRED:
        if not end:
            errors.append(f"La date de fin est requise pour un contrat {ctype}")
        elif start and end <= start:
            errors.append("La date de fin doit être postérieure à la date de début")
    elif ctype == "CDI" and end:
        errors.append("Un CDI ne peut pas avoir de date de fin")
    elif end and start and end <= start:
        errors.append("La date de fin doit être postérieure à la date de début")

    if ctype == "CDD":
        reason = (data.get("cdd_reason") or "").strip()
        if len(reason) < CDD_REASON_MIN_LENGTH:
            errors.append(f"Le motif du CDD doit contenir au moins {CDD_REASON_MIN_LENGTH} caractères")
    return errors


def validate_departure_contract(departure_type: str, contract_type: Optional[str]) -> Optional[str]:
    allowed = DEPARTURE_CONTRACTS.get(departure_type)
    if allowed is None or contract_type in allowed:
        return None
    return (f"Le type de départ {departure_type} n'est pas compatible avec un contrat "
            f"{contract_type or 'inconnu'} (attendu : {', '.join(allowed)})")


def create_contract(employee: Employee, data: Dict[str, Any]) -> EmploymentContract:
    errors = validate_contract(data)
    if errors:
        raise invalid("Contrat invalide", errors)

    previous = employee.active_contract()
    if previous is not None:
        previous.is_active = False

    c = EmploymentContract(
        company_id=employee.company_id,
        employee_id=employee.id,
        contract_type=data["contract_type"].upper(),
        start_date=parse_date(data["start_date"]),
        end_date=parse_date(data.get("end_date")),
        cdd_reason=(data.get("cdd_reason") or "").strip() or None,
        is_active=True,
        replaces_contract_id=previous.id if previous else None,
    )
    db.session.add(c)
    db.session.flush()
    return c


def renew_contract(employee: Employee, new_end_date: date) -> EmploymentContract:
    """Extend a fixed-term contract by a new one picking up the day after the current end."""
    current = employee.active_contract()
    if current is None:
        raise invalid("Aucun contrat actif")
    if current.contract_type not in FIXED_TERM:
        raise invalid(f"Un contrat {current.contract_type} ne peut pas être renouvelé")
    if current.contract_type == "CDD" and (current.renewal_count or 0) >= CDD_MAX_RENEWALS:
        raise invalid(f"Le CDD a déjà été renouvelé {CDD_MAX_RENEWALS} fois")
    start = (current.end_date + timedelta(days=1)) if current.end_date else date.today()
    if new_end_date <= start:
        raise invalid("La date de fin doit être postérieure à la date de début")

    current.is_active = False
    c = EmploymentContract(
        company_id=employee.company_id,
        employee_id=employee.id,
        contract_type=current.contract_type,
        start_date=start,
        end_date=new_end_date,
        cdd_reason=current.cdd_reason,
        is_active=True,
        renewal_count=(current.renewal_count or 0) + 1,
        replaces_contract_id=current.id,
    )
    db.session.add(c)
    db.session.flush()
    log.info("contract %s renewed for employee %s until %s", current.id, employee.id, new_end_date)
    return c


def change_salary(employee: Employee, new_base: Decimal, effective_from: date,
                  reason: Optional[str] = None) -> EmployeeSalary:
    """Close the active salary the day before and open a new row carrying the allowances over."""
    current = employee.active_salary(effective_from)
    if current is None:
        raise invalid("No active salary found")
    if effective_from <= current.effective_from:
        raise invalid("La date d'effet doit être postérieure au début du salaire en cours "
                      f"({current.effective_from.isoformat()})")
    if new_base is None or new_base <= 0:
        raise invalid("Le nouveau salaire doit être positif")
    _check_smig(employee, new_base)

    current.effective_to = effective_from - timedelta(days=1)
    row = EmployeeSalary(
        employee_id=employee.id,
        base_salary=new_base,
        categorical_salary=current.categorical_salary,
        housing_allowance=current.housing_allowance,
        transport_allowance=current.transport_allowance,
        meal_allowance=current.meal_allowance,
        daily_transport_rate=current.daily_transport_rate,
        effective_from=effective_from,
        change_reason=reason,
    )
    db.session.add(row)
    db.session.flush()
    return row


def salary_from_payload(employee: Employee, data: Dict[str, Any]) -> EmployeeSalary:
    base = parse_dec(data.get("base_salary"))
    if base is None or base <= 0:
        raise invalid("base_salary est requis")
    _check_smig(employee, base)
    return EmployeeSalary(
        employee_id=employee.id,
        base_salary=base,
        categorical_salary=parse_dec(data.get("categorical_salary")) or base,
        housing_allowance=parse_dec(data.get("housing_allowance")) or 0,
        transport_allowance=parse_dec(data.get("transport_allowance")) or 0,
        meal_allowance=parse_dec(data.get("meal_allowance")) or 0,
        daily_transport_rate=parse_dec(data.get("daily_transport_rate")) or 0,
        effective_from=parse_date(data.get("effective_from")) or employee.hire_date,
        change_reason=data.get("change_reason"),
    )


def _check_smig(employee: Employee, base: Decimal):
    if employee.payment_frequency == "MONTHLY" and base < SMIG:
        raise invalid(f"Le salaire de base ({fmt_fcfa(base)} FCFA) est inférieur au SMIG ({fmt_fcfa(SMIG)} FCFA)")
