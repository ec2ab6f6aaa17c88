"""
Monthly CNPS contribution call ("Appel de cotisation") export.

Rows are consolidated across every approved/paid run of the month so that a
CDDTI worker paid weekly is declared once, with the 21-day rule applied to the
aggregated days.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from paie_api.common.errors import invalid
from paie_api.common.http import file_payload
from paie_api.services.payroll_runs import aggregate_by_employee, consolidated_runs

log = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Déclaration CNPS"
CDDTI_DAILY_THRESHOLD = 21

COLUMNS = [
    "NUMERO CNPS",
    "NOM",
    "PRENOMS",
    "ANNEE DE NAISSANCE",
    "DATE D'EMBAUCHE",
    "DATE DE DEPART",
    "TYPE SALARIE",
    "DUREE TRAVAILLE",
    "SALAIRE BRUT",
    "BRANCHE COTISEE",
]

FULL_BRANCH_CONTRACTS = ("CDI", "CDD", "INTERIM")
FREQUENCY_TYPES = {"MONTHLY": "M", "DAILY": "J", "WEEKLY": "J", "BIWEEKLY": "J", "HOURLY": "H"}


def _num(d: Decimal):
    d = Decimal(str(d))
    return int(d) if d == d.to_integral_value() else float(d)


def worker_type_and_duration(contract_type: str, frequency: str, days: Decimal, hours: Decimal):
    """(TYPE SALARIE, DUREE TRAVAILLE) for one consolidated employee."""
    if contract_type == "CDDTI":
        if days >= CDDTI_DAILY_THRESHOLD:
            return "J", _num(days)
        return "H", _num(hours)
    code = FREQUENCY_TYPES.get((frequency or "MONTHLY").upper(), "M")
    if code == "M":
        return "M", 1
    if code == "J":
        return "J", _num(days)
    return "H", _num(hours)


def contribution_branch(contract_type: str) -> str:
    return "1234" if contract_type in FULL_BRANCH_CONTRACTS else "123"


def build_rows(company_id: int, year: int, month: int) -> Dict[str, Any]:
    runs = consolidated_runs(company_id, year, month)
    agg = aggregate_by_employee(runs)

    rows: List[Dict[str, Any]] = []
    errors: List[str] = []
    warnings: List[str] = []

    for emp_id, a in sorted(agg.items()):
        emp = a["employee"]
        label = emp.full_name if emp else f"#{emp_id}"
        if emp is None or not emp.cnps_number:
            warnings.append(f"{label} : numéro CNPS manquant, salarié exclu de la déclaration")
            continue
        if not (emp.last_name or "").strip():
            errors.append(f"{label} : nom manquant")
        if a["gross"] < 0:
            errors.append(f"{label} : salaire brut négatif ({a['gross']})")
        if not emp.birth_date:
            warnings.append(f"{label} : date de naissance manquante")

        wtype, duration = worker_type_and_duration(
            a["contract_type"], a["payment_frequency"], a["days"], a["hours"])
        rows.append({
            "NUMERO CNPS": emp.cnps_number,
            "NOM": (emp.last_name or "").upper(),
            "PRENOMS": emp.first_name,
            "ANNEE DE NAISSANCE": emp.birth_date.year if emp.birth_date else "",
            "DATE D'EMBAUCHE": emp.hire_date.strftime("%d/%m/%Y") if emp.hire_date else "",
            "DATE DE DEPART": emp.termination_date.strftime("%d/%m/%Y") if emp.termination_date else "",
            "TYPE SALARIE": wtype,
            "DUREE TRAVAILLE": duration,
            "SALAIRE BRUT": _num(a["gross"]),
            "BRANCHE COTISEE": contribution_branch(a["contract_type"]),
        })

    if not rows:
        errors.append("Aucun salarié à déclarer pour ce mois (paies approuvées ou payées uniquement)")
    return {"rows": rows, "errors": errors, "warnings": warnings, "runs": len(runs)}


def to_xlsx(rows: List[Dict[str, Any]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(COLUMNS)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill("solid", fgColor="1F4E78")
    for r in rows:
        ws.append([r[c] for c in COLUMNS])
    for idx, col in enumerate(COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = max(len(col) + 2, 14)

    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def export_cnps_monthly(company_id: int, year: int, month: int) -> Dict[str, Any]:
    built = build_rows(company_id, year, month)
    if built["errors"]:
        raise invalid("La déclaration CNPS contient des erreurs",
                      {"errors": built["errors"], "warnings": built["warnings"]})

    raw = to_xlsx(built["rows"])
    total_gross = sum(Decimal(str(r["SALAIRE BRUT"])) for r in built["rows"])
    log.info("CNPS export %02d/%d company=%s: %d rows", month, year, company_id, len(built["rows"]))
    return file_payload(
        raw,
        f"Appel_Cotisation_CNPS_{month:02d}_{year}.xlsx",
        XLSX_MIME,
        employeeCount=len(built["rows"]),
        totalGross=float(total_gross),
        warnings=built["warnings"],
    )
