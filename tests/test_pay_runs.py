import base64
from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from paie_api.common.errors import APIError
from paie_api.extensions import db
from paie_api.models.workflow import PayrollEvent
from paie_api.services import cnps_export, payroll_runs


def _run(company, **kw):
    data = {"period_start": "2025-03-01", "period_end": "2025-03-31", "pay_date": "2025-03-31"}
    data.update(kw)
    return payroll_runs.create_run(company.id, data, None)


def test_run_numbering(app, company):
    assert _run(company).run_number == "PAY-2025-03-001"
    assert _run(company).run_number == "PAY-2025-03-002"


def test_create_run_rejects_bad_period(app, company):
    with pytest.raises(APIError):
        _run(company, period_end="2025-02-01")


def test_calculate_approve_pay(app, company, make_employee):
    emp = make_employee(cnps_number="1234567")
    make_employee(base_salary=None)      # no salary: skipped with a warning
    run = _run(company)

    out = payroll_runs.calculate_run(run)
    assert out["items"] == 1
    assert out["warnings"][0]["message"] == "No active salary found"
    assert run.status == "calculated"
    item = run.items.first()
    assert item.employee_id == emp.id
    assert Decimal(str(item.net)) == Decimal("241100")
    assert Decimal(str(run.total_gross)) == Decimal("300000")

    with pytest.raises(APIError):
        payroll_runs.delete_run(run)

    payroll_runs.approve_run(run, None)
    payroll_runs.mark_paid(run)
    assert run.status == "paid"


def test_approve_requires_calculated(app, company):
    run = _run(company)
    with pytest.raises(APIError) as exc:
        payroll_runs.approve_run(run, None)
    assert exc.value.status_code == 409


def test_payroll_events_become_bonuses(app, company, make_employee):
    emp = make_employee()
    db.session.add(PayrollEvent(company_id=company.id, employee_id=emp.id, event_type="bonus",
                                amount=Decimal("50000"), event_date=date(2025, 3, 10)))
    db.session.commit()
    run = _run(company)
    payroll_runs.calculate_run(run)
    assert Decimal(str(run.items.first().gross)) == Decimal("350000")

    payroll_runs.approve_run(run, None)
    payroll_runs.mark_paid(run)
    assert PayrollEvent.query.filter_by(employee_id=emp.id).first().processed is True


def test_daily_run_needs_hours(app, company, make_employee):
    emp = make_employee(base_salary="75000", contract_type="CDDTI", end_date=date(2025, 12, 31),
                        payment_frequency="WEEKLY")
    run = _run(company, period_start="2025-03-03", period_end="2025-03-09", pay_date="2025-03-10",
               payment_frequency="WEEKLY")
    out = payroll_runs.calculate_run(run, {})
    assert out["items"] == 0

    run2 = _run(company, period_start="2025-03-10", period_end="2025-03-16", pay_date="2025-03-17",
                payment_frequency="WEEKLY")
    out = payroll_runs.calculate_run(run2, {emp.id: {"hours_worked": 40}})
    assert out["items"] == 1
    assert Decimal(str(run2.items.first().gross)) == Decimal("20134")


def test_monthly_summary_and_cnps_export(app, company, make_employee):
    make_employee(cnps_number="1234567", birth_date=date(1990, 5, 4))
    run = _run(company)
    payroll_runs.calculate_run(run)

    # calculated runs are not consolidated yet
    assert payroll_runs.monthly_summary(company.id, 2025, 3)["employeeCount"] == 0
    payroll_runs.approve_run(run, None)

    summary = payroll_runs.monthly_summary(company.id, 2025, 3)
    assert summary["employeeCount"] == 1
    assert summary["totalGross"] == 300000.0

    out = cnps_export.export_cnps_monthly(company.id, 2025, 3)
    assert out["filename"] == "Appel_Cotisation_CNPS_03_2025.xlsx"
    assert out["employeeCount"] == 1
    ws = load_workbook(BytesIO(base64.b64decode(out["data"]))).active
    header = [c.value for c in ws[1]]
    assert header == cnps_export.COLUMNS
    values = dict(zip(header, [c.value for c in ws[2]]))
    assert values["TYPE SALARIE"] == "M"
    assert values["DUREE TRAVAILLE"] == 1
    assert values["BRANCHE COTISEE"] == "1234"


def test_cnps_export_empty_month_fails(app, company):
    with pytest.raises(APIError) as exc:
        cnps_export.export_cnps_monthly(company.id, 2025, 4)
    assert exc.value.status_code == 422


def test_cddti_worker_type():
    assert cnps_export.worker_type_and_duration("CDDTI", "WEEKLY", Decimal("22"), Decimal("176")) == ("J", 22)
    assert cnps_export.worker_type_and_duration("CDDTI", "WEEKLY", Decimal("5"), Decimal("40")) == ("H", 40)
    assert cnps_export.contribution_branch("CDDTI") == "123"


def test_parse_month():
    assert payroll_runs.parse_month("2025-03") == (2025, 3)
    with pytest.raises(APIError):
        payroll_runs.parse_month("2025-13")


def _weekly_run(company, start, end):
    return _run(company, period_start=start, period_end=end, pay_date=end, payment_frequency="WEEKLY")


def test_weekly_run_includes_payroll_events(app, company, make_employee):
    emp = make_employee(base_salary="75000", contract_type="CDDTI", end_date=date(2025, 12, 31),
                        payment_frequency="WEEKLY")
    db.session.add(PayrollEvent(company_id=company.id, employee_id=emp.id, event_type="bonus",
                                amount=Decimal("50000"), event_date=date(2025, 3, 12)))
    db.session.commit()
    run = _weekly_run(company, "2025-03-10", "2025-03-16")
    payroll_runs.calculate_run(run, {emp.id: {"hours_worked": 40}})

    item = run.items.first()
    assert Decimal(str(item.gross)) == Decimal("70134")
    assert "PRIMES" in [c["code"] for c in item.components]

    payroll_runs.approve_run(run, None)
    payroll_runs.mark_paid(run)
    assert PayrollEvent.query.filter_by(employee_id=emp.id).first().processed is True


def test_cnps_export_consolidates_weekly_cddti_runs(app, company, make_employee):
    emp = make_employee(base_salary="75000", contract_type="CDDTI", end_date=date(2025, 12, 31),
                        payment_frequency="WEEKLY", cnps_number="7654321", birth_date=date(1995, 1, 1))
    for start, end in (("2025-03-03", "2025-03-09"), ("2025-03-10", "2025-03-16"),
                       ("2025-03-17", "2025-03-23")):
        run = _weekly_run(company, start, end)
        payroll_runs.calculate_run(run, {emp.id: {"hours_worked": 56}})
        payroll_runs.approve_run(run, None)

    out = cnps_export.export_cnps_monthly(company.id, 2025, 3)
    assert out["employeeCount"] == 1
    ws = load_workbook(BytesIO(base64.b64decode(out["data"]))).active
    assert ws.max_row == 2
    values = dict(zip([c.value for c in ws[1]], [c.value for c in ws[2]]))
    # 3 x 56 h = 21 equivalent days, declared as a daily worker
    assert values["TYPE SALARIE"] == "J"
    assert values["DUREE TRAVAILLE"] == 21
    assert values["BRANCHE COTISEE"] == "123"
