import pytest

from paie_api.common.errors import APIError
from paie_api.extensions import db
from paie_api.services import objectives


def _objective(company, emp, **kw):
    data = {"title": "Réduire les délais de clôture", "objective_type": "quantitative",
            "objective_level": "individual", "employee_id": emp.id,
            "target_value": 10, "target_unit": "jours", "weight": 40, "due_date": "2025-12-31"}
    data.update(kw)
    return objectives.create_objective(company.id, data, None)


def test_full_lifecycle(app, company, make_employee):
    emp = make_employee()
    o = _objective(company, emp)
    assert o.status == "draft"

    for action, expected in (("submit", "proposed"), ("approve", "approved"), ("start", "in_progress")):
        objectives.transition(o, action)
        assert o.status == expected

    objectives.update_progress(o, 4)
    assert objectives.progress_percentage(o) == 40.0

    with pytest.raises(APIError):
        objectives.transition(o, "complete", data={"achievement_score": 120})
    db.session.rollback()
    objectives.transition(o, "complete", data={"achievement_score": 85, "achievement_notes": "Bien"})
    assert o.status == "completed"
    with pytest.raises(APIError):
        objectives.transition(o, "cancel")


def test_reject_returns_to_draft(app, company, make_employee):
    o = _objective(company, make_employee())
    objectives.transition(o, "submit")
    objectives.transition(o, "reject")
    assert o.status == "draft"


def test_only_drafts_are_editable(app, company, make_employee):
    o = _objective(company, make_employee())
    objectives.transition(o, "submit")
    with pytest.raises(APIError) as exc:
        objectives.update_objective(company.id, o, {"title": "Nouveau"})
    assert exc.value.message == "Seuls les objectifs en brouillon peuvent être modifiés"
    with pytest.raises(APIError):
        objectives.delete_objective(o)


def test_validation(app, company, make_employee):
    emp = make_employee()
    with pytest.raises(APIError):
        _objective(company, emp, weight=150)
    db.session.rollback()
    with pytest.raises(APIError):
        _objective(company, emp, employee_id=None)
    db.session.rollback()
    with pytest.raises(APIError):
        _objective(company, emp, objective_level="galaxy")


def test_company_objective_with_children(app, company, make_employee):
    parent = objectives.create_objective(company.id, {"title": "CA +10%", "objective_level": "company"}, None)
    child = _objective(company, make_employee(), parent_objective_id=parent.id)
    assert child.parent_objective_id == parent.id
    assert objectives.list_objectives(company.id, level="company").count() == 1


def test_progress_requires_approval(app, company, make_employee):
    o = _objective(company, make_employee())
    with pytest.raises(APIError) as exc:
        objectives.update_progress(o, 3)
    assert exc.value.status_code == 409
