from datetime import date
from decimal import Decimal

import pytest

from paie_api.common.errors import APIError
from paie_api.services import stc_calculator as stc

D = Decimal


def _inp(**kw):
    base = dict(departure_type="LICENCIEMENT", hire_date=date(2020, 1, 1),
                termination_date=date(2025, 6, 30), monthly_salary=D("200000"),
                categorical_salary=D("200000"), average_salary_12m=D("200000"))
    base.update(kw)
    return stc.StcInput(**base)


def test_legal_severance_bands():
    assert stc.legal_severance(D("0.5"), D("100000")) == (D("0"), 0)
    assert stc.legal_severance(D("3"), D("200000")) == (D("180000"), 30)
    # 5 * 30% + 5 * 35% + 2 * 40%
    assert stc.legal_severance(D("12"), D("100000")) == (D("405000"), 40)


def test_notice_months():
    assert stc.notice_months(D("0.3"), False) == D("0.5")
    assert stc.notice_months(D("3"), False) == D("2")
    assert stc.notice_months(D("1"), True) == D("2")
    assert stc.notice_months(D("8"), True) == D("3")


def test_funeral_expenses():
    assert stc.funeral_expenses(D("3")) == D("225000")
    assert stc.funeral_expenses(D("7")) == D("300000")
    assert stc.funeral_expenses(D("12")) == D("450000")


def test_licenciement_faute_lourde_has_no_severance():
    out = stc.calculate_stc(_inp(licenciement_type="faute_lourde", notice_period_status="paid_by_employer"))
    assert out["severance"] == D("0")
    assert out["notice_payment"] == D("0")


def test_inaptitude_doubles_notice_even_when_worked():
    out = stc.calculate_stc(_inp(licenciement_type="inaptitude"))
    assert out["notice_period_months"] == D("3")
    assert out["notice_payment"] == D("1200000")
    normal = stc.calculate_stc(_inp())
    assert out["severance"] == normal["severance"] * 2


def test_fin_cdd_indemnity():
    out = stc.calculate_stc(_inp(departure_type="FIN_CDD", hire_date=date(2025, 1, 1),
                                 contract_total_gross=D("1200000")))
    assert out["cdd_end_indemnity"] == D("36000")
    assert out["severance"] == D("0")
    assert out["notice_period_days"] == 0


def test_demission_cdd_penalty():
    out = stc.calculate_stc(_inp(departure_type="DEMISSION_CDD", hire_date=date(2025, 1, 1),
                                 termination_date=date(2025, 11, 30),
                                 contract_end_date=date(2025, 12, 31)))
    assert out["resignation_penalty"] == D("206667")
    assert out["deductions"] >= out["resignation_penalty"]


def test_rupture_negotiated_excess_is_taxable():
    legal = stc.calculate_stc(_inp(departure_type="RUPTURE_CONVENTIONNELLE"))
    low = stc.calculate_stc(_inp(departure_type="RUPTURE_CONVENTIONNELLE",
                                 rupture_negotiated_amount=D("1000")))
    assert low["severance"] == legal["legal_severance"]

    high = stc.calculate_stc(_inp(departure_type="RUPTURE_CONVENTIONNELLE",
                                  rupture_negotiated_amount=legal["legal_severance"] + 100000))
    assert high["taxable"] == legal["taxable"] + 100000


def test_retirement_requires_age():
    with pytest.raises(APIError):
        stc.calculate_stc(_inp(departure_type="RETRAITE", birth_date=date(1970, 1, 1)))
    out = stc.calculate_stc(_inp(departure_type="RETRAITE", birth_date=date(1960, 1, 1)))
    assert out["severance"] > 0


def test_retirement_notice_paid_without_employer_choice():
    out = stc.calculate_stc(_inp(departure_type="RETRAITE", hire_date=date(2010, 1, 1),
                                 birth_date=date(1960, 1, 1)))
    assert out["notice_period_months"] == D("3")
    assert out["notice_payment"] == D("600000")


def test_deces_beneficiary_shares():
    with pytest.raises(APIError):
        stc.calculate_stc(_inp(departure_type="DECES",
                               beneficiaries=[{"sharePercentage": 60}, {"sharePercentage": 30}]))
    out = stc.calculate_stc(_inp(departure_type="DECES",
                                 beneficiaries=[{"sharePercentage": 50}, {"sharePercentage": 50}]))
    assert out["funeral_expenses"] == D("300000")
    # notice owed to the beneficiaries: 3 months of average salary
    assert out["notice_period_days"] == 90
    assert out["notice_payment"] == D("600000")


def test_termination_before_hire_rejected():
    with pytest.raises(APIError):
        stc.calculate_stc(_inp(termination_date=date(2019, 1, 1)))
