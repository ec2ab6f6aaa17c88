from datetime import date
from decimal import Decimal

import pytest

from paie_api.services import payroll_engine as engine

D = Decimal


def _monthly(**kw):
    kw.setdefault("base_salary", D("300000"))
    kw.setdefault("period_start", date(2025, 3, 1))
    kw.setdefault("period_end", date(2025, 3, 31))
    return engine.calculate_monthly(engine.MonthlyInput(**kw))


def test_monthly_full_month():
    res = _monthly()
    assert res.gross == D("300000")
    assert res.cnps_employee == D("18900")
    assert res.its == D("39000")
    assert res.cmu_employee == D("1000")
    assert res.net == D("241100")
    assert res.employer_cost == D("332025")


def test_its_family_deduction():
    assert engine.calculate_its(D("300000"), 2)["its"] == D("28000")
    # parts above 5 are capped, half parts are floored
    assert engine.normalize_fiscal_parts("7") == D("5")
    assert engine.normalize_fiscal_parts("2.7") == D("2.5")


def test_its_below_first_bracket_is_zero():
    assert engine.calculate_its(D("75000"))["its"] == D("0")


def test_monthly_prorated_on_hire():
    res = _monthly(period_start=date(2025, 1, 1), period_end=date(2025, 1, 31),
                   hire_date=date(2025, 1, 16))
    assert res.days_worked == D("16")
    assert res.prorated_salary == D("154839")


def test_monthly_below_smig_rejected():
    with pytest.raises(engine.PayrollValidationError) as exc:
        _monthly(base_salary=D("70000"))
    assert "SMIG" in str(exc.value)


def test_cnps_pension_capped():
    out = engine.calculate_cnps_pension(D("5000000"))
    assert out["capped_salary"] == engine.CNPS_PENSION_CEILING
    assert out["employee"] == engine.fcfa(engine.CNPS_PENSION_CEILING * D("0.063"))


def test_cmu_family_employer_share():
    assert engine.calculate_cmu(True)["employer"] == D("5000")
    assert engine.calculate_cmu(False)["employer"] == D("500")


def test_overtime_split():
    split = engine.classify_overtime(D("50"))
    assert split == {"regular_hours": D("40"), "overtime_1": D("8"), "overtime_2": D("2")}


def test_daily_worker_week():
    res = engine.calculate_daily_worker(engine.DailyInput(
        categorical_salary=D("75000"), hours_worked=D("40")))
    # 75000 / 173.33 * 40 = 17308, then gratification, congés payés and précarité
    assert res.prorated_salary == D("17308")
    assert res.gross == D("20134")
    assert res.cnps_employee == D("1268")
    assert res.its == D("1221")
    assert res.cmu_employee == D("167")
    codes = [c["code"] for c in res.components]
    assert "PRECARITE" in codes and "CONGES_PAYES" in codes


def test_daily_worker_without_precarite_for_interim():
    res = engine.calculate_daily_worker(engine.DailyInput(
        categorical_salary=D("75000"), hours_worked=D("40"), contract_type="INTERIM"))
    assert "PRECARITE" not in [c["code"] for c in res.components]


def test_fmt_fcfa():
    assert engine.fmt_fcfa(D("1234567.4")) == "1 234 567"


def test_monthly_prorated_mid_month_hire_on_31_days():
    res = _monthly(hire_date=date(2025, 3, 15))
    # 300 000 x 17 / 31
    assert res.days_worked == D("17")
    assert res.prorated_salary == D("164516")


def test_daily_its_family_deduction():
    out = engine.calculate_daily_its(D("100000"), D("10"), 3)
    assert out["gross_tax"] == D("13000")
    assert out["family_deduction"] == D("7330")
    assert out["its"] == D("5670")


def test_daily_worker_bonuses():
    res = engine.calculate_daily_worker(engine.DailyInput(
        categorical_salary=D("75000"), hours_worked=D("40"), bonuses=D("50000")))
    assert res.gross == D("70134")
    primes = [c for c in res.components if c["code"] == "PRIMES"]
    assert primes and primes[0]["amount"] == 50000


def test_work_accident_rate_by_sector():
    assert engine.calculate_cnps_other(D("70000"), "industry")["work_accident"] == D("1400")
    assert engine.calculate_cnps_other(D("70000"), "construction")["work_accident"] == D("3500")
