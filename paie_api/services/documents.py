"""
PDF documents issued to employees (certificat de travail, attestation CNPS,
bulletin de paie final, attestation de salaire).

Every generated file is stored as a GeneratedDocument and returned to the
caller as base64 with a download URL.
"""
from __future__ import annotations

import io
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from paie_api.common.errors import invalid, not_found
from paie_api.common.http import file_payload
from paie_api.extensions import db
from paie_api.models.document import GeneratedDocument
from paie_api.models.employee import Employee
from paie_api.models.payroll.pay_run import PayrollRun, PayrollRunItem
from paie_api.models.termination import Termination
from paie_api.services.payroll_engine import fmt_fcfa
from paie_api.services.stc_calculator import calculate_stc, load_stc_input

log = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
EMPLOYEE_DOCUMENT_KINDS = ("work_certificate", "salary_certificate")

DEPARTURE_LABELS = {
    "FIN_CDD": "Fin de CDD",
    "DEMISSION_CDI": "Démission (CDI)",
    "DEMISSION_CDD": "Démission (CDD)",
    "LICENCIEMENT": "Licenciement",
    "RUPTURE_CONVENTIONNELLE": "Rupture conventionnelle",
    "RETRAITE": "Départ à la retraite",
    "DECES": "Décès",
}


def _fr_date(d: Optional[date]) -> str:
    return d.strftime("%d/%m/%Y") if d else "-"


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(name="SectionHeader", fontSize=13, leading=17, spaceAfter=10,
                              textColor="#1f2937", fontName="Helvetica-Bold"))
    styles.add(ParagraphStyle(name="BodySmall", fontSize=10, leading=14, spaceAfter=8))
    return styles


def _table(rows: List[List[Any]]) -> Table:
    table = Table(rows, hAlign="LEFT")
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1f2937")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.whitesmoke, colors.lightgrey]),
    ]))
    return table


def _render(title: str, company, blocks) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=36, leftMargin=36,
                            topMargin=36, bottomMargin=36, title=title)
    styles = _styles()
    story: List = []
    if company is not None:
        story.append(Paragraph(f"<b>{escape(company.name)}</b>", styles["BodySmall"]))
        if company.address:
            story.append(Paragraph(escape(company.address), styles["BodySmall"]))
        if company.cnps_number:
            story.append(Paragraph(f"N° employeur CNPS : {escape(company.cnps_number)}", styles["BodySmall"]))
    story.append(Spacer(1, 0.25 * inch))
    story.append(Paragraph(title, styles["Title"]))
    story.append(Spacer(1, 0.2 * inch))
    for kind, value in blocks:
        if kind == "header":
            story.append(Paragraph(value, styles["SectionHeader"]))
        elif kind == "table":
            story.append(_table(value))
            story.append(Spacer(1, 0.2 * inch))
        else:
            story.append(Paragraph(value, styles["BodySmall"]))
    doc.build(story)
    return buffer.getvalue()


def document_url(doc_id: int) -> str:
    base = (current_app.config.get("PAIE_DOCUMENTS_BASE_URL") or "").rstrip("/")
    return f"{base}/api/v1/documents/{doc_id}/download"


def _store(employee: Employee, kind: str, filename: str, raw: bytes,
           termination: Optional[Termination] = None, user_id: Optional[int] = None,
           **extra) -> Dict[str, Any]:
    doc = GeneratedDocument(
        company_id=employee.company_id,
        employee_id=employee.id,
        termination_id=termination.id if termination else None,
        kind=kind,
        filename=filename,
        content_type=PDF_MIME,
        content=raw,
        size_bytes=len(raw),
        created_by=user_id,
    )
    db.session.add(doc)
    db.session.flush()

    url = document_url(doc.id)
    now = datetime.utcnow()
    if termination is not None:
        setattr(termination, f"{kind}_url", url)
        setattr(termination, f"{kind}_generated_at", now)
    db.session.commit()
    log.info("document %s generated: %s (%d bytes)", doc.id, filename, len(raw))
    return file_payload(raw, filename, PDF_MIME, url=url, documentId=doc.id,
                        generatedAt=now.isoformat(), **extra)


def _termination(company_id: int, termination_id: int) -> Termination:
    t = Termination.query.filter_by(id=termination_id, company_id=company_id).first()
    if t is None:
        raise not_found("Départ non trouvé")
    return t


# ---------- termination documents ----------

def _work_certificate_blocks(emp: Employee, end: Optional[date], issued_by: Optional[str]):
    company = emp.company
    blocks = [
        ("text", f"Nous soussignés, <b>{escape(company.name) if company else ''}</b>, certifions que "
                 f"<b>{escape(emp.full_name)}</b>, né(e) le {_fr_date(emp.birth_date)}, "
                 f"immatriculé(e) à la CNPS sous le n° {escape(emp.cnps_number or '-')}, "
                 f"a été employé(e) dans notre entreprise du {_fr_date(emp.hire_date)} "
                 f"au {_fr_date(end) if end else 'ce jour'} en qualité de "
                 f"<b>{escape(emp.job_title or 'salarié(e)')}</b>."),
    ]
    if end:
        blocks.append(("text", "L'intéressé(e) nous quitte libre de tout engagement."))
    blocks.append(("text", "En foi de quoi, le présent certificat lui est délivré pour servir et valoir ce que de droit."))
    blocks.append(("text", f"Fait le {_fr_date(date.today())}"
                           + (f", par {escape(issued_by)}" if issued_by else "") + "."))
    return blocks


def generate_work_certificate(company_id: int, termination_id: int, issued_by: Optional[str] = None,
                              user_id: Optional[int] = None) -> Dict[str, Any]:
    t = _termination(company_id, termination_id)
    emp = t.employee
    raw = _render("CERTIFICAT DE TRAVAIL", emp.company,
                  _work_certificate_blocks(emp, t.termination_date, issued_by))
    return _store(emp, "work_certificate", f"Certificat_Travail_{emp.code}.pdf", raw, t, user_id)


def contribution_history(employee_id: int) -> List[Dict[str, Any]]:
    rows = (db.session.query(PayrollRun.period_start, PayrollRun.period_end,
                             PayrollRunItem.gross, PayrollRunItem.cnps_employee,
                             PayrollRunItem.cnps_employer)
            .join(PayrollRun, PayrollRun.id == PayrollRunItem.run_id)
            .filter(PayrollRunItem.employee_id == employee_id)
            .filter(PayrollRun.status.in_(("approved", "paid")))
            .order_by(PayrollRun.period_start)
            .all())
    return [{"period_start": r[0], "period_end": r[1], "gross": r[2],
             "cnps_employee": r[3], "cnps_employer": r[4]} for r in rows]


def generate_cnps_attestation(company_id: int, termination_id: int, issued_by: Optional[str] = None,
                              user_id: Optional[int] = None) -> Dict[str, Any]:
    t = _termination(company_id, termination_id)
    emp = t.employee
    history = contribution_history(emp.id)

    blocks = [
        ("text", f"Salarié : <b>{escape(emp.full_name)}</b>, matricule {escape(emp.code)}, "
                 f"n° CNPS {escape(emp.cnps_number or '-')}."),
        ("text", f"Période d'emploi : du {_fr_date(emp.hire_date)} au {_fr_date(t.termination_date)}."),
        ("header", "Historique des cotisations"),
    ]
    if history:
        table = [["Période", "Salaire brut", "Part salariale", "Part patronale"]]
        for h in history:
            table.append([f"{_fr_date(h['period_start'])} - {_fr_date(h['period_end'])}",
                          f"{fmt_fcfa(h['gross'])} FCFA",
                          f"{fmt_fcfa(h['cnps_employee'])} FCFA",
                          f"{fmt_fcfa(h['cnps_employer'])} FCFA"])
        blocks.append(("table", table))
    else:
        blocks.append(("text", "Aucune cotisation enregistrée."))
    blocks.append(("text", f"Attestation délivrée le {_fr_date(date.today())}"
                           + (f" par {escape(issued_by)}" if issued_by else "") + "."))

    raw = _render("ATTESTATION CNPS", emp.company, blocks)
    return _store(emp, "cnps_attestation", f"Attestation_CNPS_{emp.code}.pdf", raw, t, user_id,
                  contributionsCount=len(history))


def generate_final_payslip(company_id: int, termination_id: int, pay_date: Optional[date] = None,
                           user_id: Optional[int] = None) -> Dict[str, Any]:
    t = _termination(company_id, termination_id)
    emp = t.employee
    data = {
        "departure_type": t.departure_type,
        "licenciement_type": t.licenciement_type,
        "notice_period_status": t.notice_period_status,
        "rupture_negotiated_amount": t.rupture_negotiated_amount,
        "beneficiaries": t.beneficiaries or [],
        "unused_leave_days": (t.stc_details or {}).get("unused_leave_days", 0),
    }
    stc = calculate_stc(load_stc_input(emp, data, t.termination_date))

    pay_date = pay_date or t.termination_date
    earnings = [
        ("Salaire du mois (prorata)", stc["prorated_salary"]),
        ("Indemnité compensatrice de congés", stc["vacation_payout"]),
        ("Gratification (prorata)", stc["gratification"]),
        ("Indemnité compensatrice de préavis", stc["notice_payment"]),
        ("Indemnité de licenciement / départ", stc["severance"]),
        ("Indemnité de fin de CDD", stc["cdd_end_indemnity"]),
        ("Frais funéraires", stc["funeral_expenses"]),
    ]
    deductions = [
        ("CNPS retraite (part salariale)", stc["cnps_employee"]),
        ("CMU", stc["cmu_employee"]),
        ("ITS", stc["its"]),
        ("Indemnité de rupture anticipée", stc["resignation_penalty"]),
    ]
    gains_table = [["Rubrique", "Montant"]] + [[label, f"{fmt_fcfa(v)} FCFA"] for label, v in earnings if v]
    ded_table = [["Retenue", "Montant"]] + [[label, f"{fmt_fcfa(v)} FCFA"] for label, v in deductions if v]

    blocks = [
        ("text", f"Salarié : <b>{escape(emp.full_name)}</b> ({escape(emp.code)}), {escape(emp.job_title or '')}"),
        ("text", f"Motif : {DEPARTURE_LABELS.get(t.departure_type, t.departure_type)}. "
                 f"Ancienneté : {stc['years_of_service']} an(s). "
                 f"Date de sortie : {_fr_date(t.termination_date)}. Paiement le {_fr_date(pay_date)}."),
        ("header", "Gains"),
        ("table", gains_table),
        ("header", "Retenues"),
        ("table", ded_table if len(ded_table) > 1 else [["Retenue", "Montant"], ["-", "0 FCFA"]]),
        ("text", f"Total brut : <b>{fmt_fcfa(stc['gross'])} FCFA</b>"),
        ("text", f"Total retenues : <b>{fmt_fcfa(stc['deductions'])} FCFA</b>"),
        ("text", f"<b>NET À PAYER : {fmt_fcfa(stc['net'])} FCFA</b>"),
    ]
    raw = _render("BULLETIN DE PAIE - SOLDE DE TOUT COMPTE", emp.company, blocks)
    return _store(emp, "final_payslip", f"Bulletin_Final_{emp.code}.pdf", raw, t, user_id,
                  netAmount=float(stc["net"]))


# ---------- employee documents (batch) ----------

def generate_employee_document(employee: Employee, kind: str, user_id: Optional[int] = None) -> Dict[str, Any]:
    if kind not in EMPLOYEE_DOCUMENT_KINDS:
        raise invalid(f"Type de document non supporté : {kind}")
    if kind == "work_certificate":
        raw = _render("CERTIFICAT DE TRAVAIL", employee.company,
                      _work_certificate_blocks(employee, employee.termination_date, None))
        return _store(employee, kind, f"Certificat_Travail_{employee.code}.pdf", raw, user_id=user_id)

    salary = employee.active_salary()
    if salary is None:
        raise invalid("No active salary found")
    blocks = [
        ("text", f"Nous certifions que <b>{escape(employee.full_name)}</b>, matricule {escape(employee.code)}, "
                 f"est employé(e) depuis le {_fr_date(employee.hire_date)} en qualité de "
                 f"<b>{escape(employee.job_title or 'salarié(e)')}</b>."),
        ("table", [["Élément", "Montant mensuel"],
                   ["Salaire de base", f"{fmt_fcfa(salary.base_salary)} FCFA"],
                   ["Indemnité de logement", f"{fmt_fcfa(salary.housing_allowance or 0)} FCFA"],
                   ["Indemnité de transport", f"{fmt_fcfa(salary.transport_allowance or 0)} FCFA"]]),
        ("text", f"Fait le {_fr_date(date.today())}."),
    ]
    raw = _render("ATTESTATION DE SALAIRE", employee.company, blocks)
    return _store(employee, kind, f"Attestation_Salaire_{employee.code}.pdf", raw, user_id=user_id)


def get_document(company_id: int, document_id: int) -> GeneratedDocument:
    doc = GeneratedDocument.query.filter_by(id=document_id, company_id=company_id).first()
    if doc is None:
        raise not_found("Document non trouvé")
    return doc
