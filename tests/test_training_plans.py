import pytest

from paie_api.common.errors import APIError
from paie_api.services import training


def _plan(company, **kw):
    data = {"name": "Plan de Formation 2025", "year": 2025, "total_budget": 5000000}
    data.update(kw)
    return training.create_plan(company.id, data, None)


def test_budget_tracking(app, company):
    plan = _plan(company)
    training.add_item(plan, {"course_name": "Excel avancé", "budget_allocated": 1500000,
                             "planned_quarter": 1, "priority": "high"})
    item = training.add_item(plan, {"course_name": "Management", "budget_allocated": 2000000})
    assert float(plan.allocated_budget) == 3500000.0

    summary = training.budget_summary(plan)
    assert summary["remaining"] == 1500000.0
    assert summary["byQuarter"]["1"] == 1500000.0
    assert summary["unscheduled"] == 2000000.0
    assert summary["byPriority"]["high"] == 1500000.0
    assert summary["over_allocated"] is False

    training.update_item(plan, item.id, {"budget_allocated": 4000000})
    warnings = training.budget_warnings(plan)
    assert warnings == ["Le budget alloué (5 500 000) dépasse le budget total (5 000 000)"]

    training.remove_item(plan, item.id)
    assert float(plan.allocated_budget) == 1500000.0


def test_submit_and_approve(app, company):
    plan = _plan(company)
    with pytest.raises(APIError):
        training.submit(plan)
    training.add_item(plan, {"course_name": "Sécurité incendie"})
    training.submit(plan)
    assert plan.status == "submitted"
    with pytest.raises(APIError) as exc:
        training.add_item(plan, {"course_name": "Trop tard"})
    assert exc.value.status_code == 409
    training.approve(plan, None)
    assert plan.status == "approved"


def test_item_validation(app, company):
    plan = _plan(company)
    with pytest.raises(APIError):
        training.add_item(plan, {"course_name": "X", "planned_quarter": 5})


def test_plan_requires_name_and_year(app, company):
    with pytest.raises(APIError):
        training.create_plan(company.id, {"year": 2025}, None)
    with pytest.raises(APIError):
        training.create_plan(company.id, {"name": "Plan"}, None)


def test_non_numeric_fields_are_validation_errors(app, company):
    with pytest.raises(APIError) as exc:
        _plan(company, year="deux-mille")
    assert exc.value.status_code == 422

    plan = _plan(company)
    with pytest.raises(APIError) as exc:
        training.update_plan(plan, {"year": "n/a"})
    assert exc.value.status_code == 422
    for field in ("planned_quarter", "planned_month", "target_participant_count"):
        with pytest.raises(APIError) as exc:
            training.add_item(plan, {"course_name": "Excel avancé", field: "T1"})
        assert exc.value.status_code == 422
        assert field in exc.value.message


def test_numeric_strings_accepted(app, company):
    plan = _plan(company, year="2026")
    item = training.add_item(plan, {"course_name": "Excel avancé", "planned_quarter": "2",
                                    "planned_month": "5", "target_participant_count": "12"})
    assert plan.year == 2026
    assert (item.planned_quarter, item.planned_month, item.target_participant_count) == (2, 5, 12)
