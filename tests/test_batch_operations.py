from datetime import date
from decimal import Decimal

import pytest

from paie_api.common.errors import APIError
from paie_api.models.document import GeneratedDocument
from paie_api.services import batch_processor as batch


def test_salary_update_percentage(app, company, make_employee):
    a = make_employee(base_salary="300000")
    b = make_employee(base_salary="200000")
    op = batch.update_salaries(company.id, [a.id, b.id, 9999], "percentage", 10, "2025-04-01", "Revalorisation")
    assert op.status == "pending" and op.total_count == 3

    batch.process(op)
    assert op.status == "completed"
    assert op.success_count == 2 and op.error_count == 1
    assert op.errors == [{"entity_id": 9999, "error": "Employé non trouvé"}]
    assert op.progress_percentage == 100
    assert a.active_salary(date(2025, 4, 1)).base_salary == Decimal("330000")
    assert b.active_salary(date(2025, 3, 31)).base_salary == Decimal("200000")


def test_all_failures_mark_operation_failed(app, company, make_employee):
    emp = make_employee(base_salary=None)
    op = batch.update_salaries(company.id, [emp.id], "absolute", 400000, "2025-04-01")
    batch.process(op)
    assert op.status == "failed"
    assert op.errors[0]["error"] == "No active salary found"

    retry = batch.retry_failed(op)
    assert retry.id != op.id and retry.entity_ids == [emp.id]


def test_document_generation(app, company, make_employee):
    emp = make_employee()
    op = batch.generate_documents(company.id, [emp.id], "work_certificate")
    batch.process(op)
    assert op.status == "completed"
    assert GeneratedDocument.query.filter_by(employee_id=emp.id).count() == 1
    assert op.result_data[str(emp.id)]["url"].endswith("/download")


def test_contract_renewal_by_duration(app, company, make_employee):
    emp = make_employee(contract_type="CDD", hire_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
    op = batch.renew_contracts(company.id, [emp.id], duration_months=3)
    batch.process(op)
    assert emp.active_contract().end_date == date(2025, 4, 30)


def test_validation(app, company):
    with pytest.raises(APIError):
        batch.update_salaries(company.id, [], "percentage", 5, "2025-01-01")
    with pytest.raises(APIError):
        batch.update_salaries(company.id, list(range(1, 502)), "percentage", 5, "2025-01-01")
    with pytest.raises(APIError):
        batch.update_salaries(company.id, [1], "bonus", 5, "2025-01-01")
    with pytest.raises(APIError):
        batch.generate_documents(company.id, [1], "payslip")
    with pytest.raises(APIError):
        batch.renew_contracts(company.id, [1])


def test_cancel_and_delete(app, company, make_employee):
    emp = make_employee()
    op = batch.generate_documents(company.id, [emp.id], "salary_certificate")
    with pytest.raises(APIError):
        batch.delete(op)
    batch.cancel(op)
    assert op.status == "cancelled"
    with pytest.raises(APIError) as exc:
        batch.cancel(op)
    assert exc.value.message == "Opération déjà annulée"
    with pytest.raises(APIError):
        batch.process(op)
    batch.delete(op)

    assert batch.stats(company.id)["total"] == 0


def test_list_operations(app, company, make_employee):
    emp = make_employee()
    for _ in range(3):
        batch.generate_documents(company.id, [emp.id], "salary_certificate")
    out = batch.list_operations(company.id, limit=2, offset=0)
    assert out["total"] == 3 and out["hasMore"] is True
    assert batch.stats(company.id)["byStatus"]["pending"] == 3


def test_unexpected_entity_error_is_recorded(app, company, make_employee, monkeypatch):
    good = make_employee()
    bad = make_employee()
    real = batch.documents.generate_employee_document

    def flaky(emp, kind, user_id=None):
        if emp.id == bad.id:
            raise ValueError("rendu PDF impossible")
        return real(emp, kind, user_id)

    monkeypatch.setattr(batch.documents, "generate_employee_document", flaky)
    op = batch.generate_documents(company.id, [bad.id, good.id], "salary_certificate")
    batch.process(op)

    assert op.status == "completed"
    assert op.processed_count == 2
    assert op.success_count == 1 and op.error_count == 1
    assert op.errors == [{"entity_id": bad.id, "error": "rendu PDF impossible"}]


def test_markup_characters_in_employee_fields(app, company, make_employee):
    emp = make_employee(job_title="Chef <b equipe", last_name="Koné & Fils")
    op = batch.generate_documents(company.id, [emp.id], "salary_certificate")
    batch.process(op)
    assert op.status == "completed"
    assert op.errors == []
