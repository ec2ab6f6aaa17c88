from datetime import date
from decimal import Decimal

import pytest

from paie_api.common.errors import APIError
from paie_api.extensions import db
from paie_api.services import contract_rules


def test_validate_contract_rules():
    assert contract_rules.validate_contract({"contract_type": "CDI", "start_date": "2025-01-01"}) == []
    errs = contract_rules.validate_contract({"contract_type": "CDI", "start_date": "2025-01-01",
                                             "end_date": "2025-12-31"})
    assert "Un CDI ne peut pas avoir de date de fin" in errs

    errs = contract_rules.validate_contract({"contract_type": "CDD", "start_date": "2025-01-01",
                                             "end_date": "2025-06-30", "cdd_reason": "court"})
    assert any("motif du CDD" in e for e in errs)

    errs = contract_rules.validate_contract({"contract_type": "CDDTI", "start_date": "2025-01-01"})
    assert errs == ["La date de fin est requise pour un contrat CDDTI"]


def test_departure_contract_compatibility():
    assert contract_rules.validate_departure_contract("FIN_CDD", "CDD") is None
    assert contract_rules.validate_departure_contract("LICENCIEMENT", "CDI") is None
    assert "n'est pas compatible" in contract_rules.validate_departure_contract("FIN_CDD", "CDI")


def test_renew_cdd_caps_renewals(app, make_employee):
    emp = make_employee(contract_type="CDD", hire_date=date(2025, 1, 1), end_date=date(2025, 3, 31))
    c1 = contract_rules.renew_contract(emp, date(2025, 6, 30))
    assert c1.start_date == date(2025, 4, 1)
    assert c1.renewal_count == 1
    c2 = contract_rules.renew_contract(emp, date(2025, 9, 30))
    assert c2.renewal_count == 2
    with pytest.raises(APIError):
        contract_rules.renew_contract(emp, date(2025, 12, 31))


def test_cdi_cannot_be_renewed(app, make_employee):
    emp = make_employee()
    with pytest.raises(APIError) as exc:
        contract_rules.renew_contract(emp, date(2026, 1, 1))
    assert exc.value.status_code == 422


def test_change_salary_closes_previous(app, make_employee):
    emp = make_employee(base_salary="300000")
    new = contract_rules.change_salary(emp, Decimal("350000"), date(2025, 3, 1), "Promotion")
    db.session.commit()
    assert emp.active_salary(date(2025, 2, 28)).base_salary == Decimal("300000")
    assert emp.active_salary(date(2025, 3, 1)).id == new.id


def test_change_salary_below_smig(app, make_employee):
    emp = make_employee()
    with pytest.raises(APIError) as exc:
        contract_rules.change_salary(emp, Decimal("60000"), date(2025, 3, 1))
    assert "SMIG" in exc.value.message


def test_change_salary_same_start_date_rejected(app, make_employee):
    emp = make_employee(hire_date=date(2024, 1, 1))
    with pytest.raises(APIError) as exc:
        contract_rules.change_salary(emp, Decimal("350000"), date(2024, 1, 1))
    assert exc.value.status_code == 422
    current = emp.active_salary(date(2024, 1, 1))
    assert current.effective_to is None
    assert current.base_salary == Decimal("300000")
