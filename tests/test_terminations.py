import base64
from datetime import date
from decimal import Decimal

import pytest

from paie_api.common.errors import APIError
from paie_api.models.document import GeneratedDocument
from paie_api.services import documents, terminations


def _payload(emp, **kw):
    data = {"employee_id": emp.id, "departure_type": "LICENCIEMENT",
            "termination_date": "2025-01-31", "termination_reason": "Suppression de poste"}
    data.update(kw)
    return data


def test_preview_matches_create(app, company, make_employee):
    emp = make_employee(hire_date=date(2020, 1, 1))
    prev = terminations.preview(company.id, _payload(emp))
    t, stc = terminations.create_termination(company.id, _payload(emp))

    assert prev["net"] == float(stc["net"])
    # 5 years at 30% + 0.08 at 35% of 300 000
    assert t.severance_amount == Decimal("458400")
    assert t.severance_rate == 35
    assert t.notice_period_days == 90
    assert t.status == "notice_period"
    assert emp.termination_date == date(2025, 1, 31)


def test_notice_paid_goes_to_documents(app, company, make_employee):
    emp = make_employee(hire_date=date(2020, 1, 1))
    t, stc = terminations.create_termination(
        company.id, _payload(emp, notice_period_status="paid_by_employer"))
    assert t.status == "documents_pending"
    assert stc["notice_payment"] == Decimal("900000")


def test_contract_type_must_match_departure(app, company, make_employee):
    emp = make_employee()
    with pytest.raises(APIError) as exc:
        terminations.preview(company.id, _payload(emp, departure_type="FIN_CDD"))
    assert "n'est pas compatible" in exc.value.message


def test_reason_required(app, company, make_employee):
    emp = make_employee()
    with pytest.raises(APIError):
        terminations.create_termination(company.id, _payload(emp, termination_reason=" "))


def test_unknown_employee(app, company):
    with pytest.raises(APIError) as exc:
        terminations.preview(company.id, {"employee_id": 999, "departure_type": "LICENCIEMENT",
                                          "termination_date": "2025-01-31"})
    assert exc.value.status_code == 404


def test_complete_marks_employee_terminated(app, company, make_employee):
    emp = make_employee()
    t, _ = terminations.create_termination(company.id, _payload(emp))
    terminations.update_termination(company.id, t.id, {"status": "completed"})
    assert emp.status == "terminated"


def test_termination_documents(app, company, make_employee):
    app.config["PAIE_DOCUMENTS_BASE_URL"] = "https://paie.example.ci"
    emp = make_employee(hire_date=date(2020, 1, 1), cnps_number="998877", job_title="Comptable")
    t, stc = terminations.create_termination(company.id, _payload(emp))

    cert = documents.generate_work_certificate(company.id, t.id, "DRH")
    assert cert["contentType"] == "application/pdf"
    assert base64.b64decode(cert["data"]).startswith(b"%PDF")
    assert cert["url"] == f"https://paie.example.ci/api/v1/documents/{cert['documentId']}/download"
    assert t.work_certificate_url == cert["url"]

    att = documents.generate_cnps_attestation(company.id, t.id)
    assert att["contributionsCount"] == 0

    slip = documents.generate_final_payslip(company.id, t.id)
    assert slip["netAmount"] == float(stc["net"])
    assert t.final_payslip_generated_at is not None
    assert GeneratedDocument.query.filter_by(termination_id=t.id).count() == 3


def test_document_lookup_is_scoped(app, company, make_employee):
    emp = make_employee()
    out = documents.generate_employee_document(emp, "salary_certificate")
    assert documents.get_document(company.id, out["documentId"]).kind == "salary_certificate"
    with pytest.raises(APIError):
        documents.get_document(company.id + 1, out["documentId"])
