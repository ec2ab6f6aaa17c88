"""Employee departures: validation, STC computation and persistence."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from paie_api.common.errors import invalid, not_found
from paie_api.common.paging import iso, num, parse_date, parse_dec
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.termination import (
    DEPARTURE_TYPES, LICENCIEMENT_TYPES, TERMINATION_STATUSES, Termination,
)
from paie_api.services.contract_rules import validate_departure_contract
from paie_api.services.stc_calculator import calculate_stc, jsonable, load_stc_input

log = logging.getLogger(__name__)

NOTICE_STATUSES = ("worked", "paid_by_employer", "waived")


def _get_employee(company_id: int, employee_id) -> Employee:
    emp = Employee.query.filter_by(id=employee_id, company_id=company_id).first()
    if emp is None:
        raise not_found("Employé non trouvé")
    return emp


def get_termination(company_id: int, termination_id: int) -> Termination:
    t = Termination.query.filter_by(id=termination_id, company_id=company_id).first()
    if t is None:
        raise not_found("Départ non trouvé")
    return t


def _validated(company_id: int, data: Dict[str, Any]):
    dep = (data.get("departure_type") or "").upper()
    if dep not in DEPARTURE_TYPES:
        raise invalid(f"Type de départ invalide : {dep or '(vide)'}")
    tdate = parse_date(data.get("termination_date"))
    if not tdate:
        raise invalid("termination_date est requis (YYYY-MM-DD)")
    if dep == "LICENCIEMENT":
        lt = data.get("licenciement_type") or "normal"
        if lt not in LICENCIEMENT_TYPES:
            raise invalid(f"Type de licenciement invalide : {lt}")
    ns = data.get("notice_period_status") or "worked"
    if ns not in NOTICE_STATUSES:
        raise invalid(f"Statut de préavis invalide : {ns}")

    emp = _get_employee(company_id, data.get("employee_id"))
    contract = emp.active_contract()
    ctype = contract.contract_type if contract else None
    msg = validate_departure_contract(dep, ctype)
    if msg:
        raise invalid(msg)
    return emp, tdate, dict(data, departure_type=dep, notice_period_status=ns), ctype


def preview(company_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
    emp, tdate, data, ctype = _validated(company_id, data)
    result = calculate_stc(load_stc_input(emp, data, tdate))
    out = jsonable(result)
    out.update(employee_id=emp.id, contract_type=ctype, termination_date=tdate.isoformat())
    return out


def create_termination(company_id: int, data: Dict[str, Any],
                       user_id: Optional[int] = None) -> Tuple[Termination, Dict[str, Any]]:
    reason = (data.get("termination_reason") or "").strip()
    if not reason:
        raise invalid("termination_reason est requis")
    emp, tdate, data, ctype = _validated(company_id, data)
    stc = calculate_stc(load_stc_input(emp, data, tdate))

    notice_worked = (data["notice_period_status"] == "worked" and stc["notice_period_days"] > 0
                     and not stc["notice_payment"])
    t = Termination(
        company_id=company_id,
        employee_id=emp.id,
        termination_date=tdate,
        termination_reason=reason,
        notes=data.get("notes"),
        departure_type=data["departure_type"],
        contract_type_at_termination=ctype,
        licenciement_type=(data.get("licenciement_type") or "normal")
        if data["departure_type"] == "LICENCIEMENT" else None,
        notice_period_days=stc["notice_period_days"],
        notice_period_months=stc["notice_period_months"],
        notice_payment_amount=stc["notice_payment"],
        notice_period_status=data["notice_period_status"],
        severance_amount=stc["severance"],
        severance_rate=stc["severance_rate"],
        vacation_payout_amount=stc["vacation_payout"],
        gratification_amount=stc["gratification"],
        cdd_end_indemnity=stc["cdd_end_indemnity"],
        funeral_expenses=stc["funeral_expenses"],
        rupture_negotiated_amount=parse_dec(data.get("rupture_negotiated_amount")),
        average_salary_12m=stc["average_salary_12m"],
        years_of_service=stc["years_of_service"],
        beneficiaries=data.get("beneficiaries") or [],
        stc_details=jsonable(stc),
        status="notice_period" if notice_worked else "documents_pending",
        created_by=user_id,
    )
    emp.termination_date = tdate
    db.session.add(t)
    db.session.commit()
    log.info("termination %s created for employee %s (%s, net %s)",
             t.id, emp.id, t.departure_type, stc["net"])
    return t, stc


def list_terminations(company_id: int, status: Optional[str], limit: int, offset: int):
    q = Termination.query.filter(Termination.company_id == company_id)
    if status:
        q = q.filter(Termination.status == status)
    total = q.count()
    rows = q.order_by(Termination.termination_date.desc(), Termination.id.desc()) \
        .limit(limit).offset(offset).all()
    return rows, total


def update_termination(company_id: int, termination_id: int, data: Dict[str, Any]) -> Termination:
    t = get_termination(company_id, termination_id)
    if "status" in data:
        if data["status"] not in TERMINATION_STATUSES:
            raise invalid(f"Statut invalide : {data['status']}")
        t.status = data["status"]
        if t.status == "completed" and t.employee is not None:
            t.employee.status = "terminated"
    if "notes" in data:
        t.notes = data["notes"]
    db.session.commit()
    return t


def row(t: Termination) -> Dict[str, Any]:
    emp = t.employee
    return {
        "id": t.id,
        "employee_id": t.employee_id,
        "employee_name": emp.full_name if emp else None,
        "termination_date": iso(t.termination_date),
        "termination_reason": t.termination_reason,
        "notes": t.notes,
        "departure_type": t.departure_type,
        "contract_type_at_termination": t.contract_type_at_termination,
        "licenciement_type": t.licenciement_type,
        "notice_period_days": t.notice_period_days,
        "notice_period_months": num(t.notice_period_months),
        "notice_payment_amount": num(t.notice_payment_amount),
        "notice_period_status": t.notice_period_status,
        "severance_amount": num(t.severance_amount),
        "severance_rate": t.severance_rate,
        "years_of_service": num(t.years_of_service),
        "average_salary_12m": num(t.average_salary_12m),
        "vacation_payout_amount": num(t.vacation_payout_amount),
        "gratification_amount": num(t.gratification_amount),
        "cdd_end_indemnity": num(t.cdd_end_indemnity),
        "funeral_expenses": num(t.funeral_expenses),
        "rupture_negotiated_amount": num(t.rupture_negotiated_amount),
        "beneficiaries": t.beneficiaries or [],
        "stc_details": t.stc_details,
        "work_certificate_url": t.work_certificate_url,
        "work_certificate_generated_at": iso(t.work_certificate_generated_at),
        "cnps_attestation_url": t.cnps_attestation_url,
        "cnps_attestation_generated_at": iso(t.cnps_attestation_generated_at),
        "final_payslip_url": t.final_payslip_url,
        "final_payslip_generated_at": iso(t.final_payslip_generated_at),
        "status": t.status,
        "created_at": iso(t.created_at),
    }
