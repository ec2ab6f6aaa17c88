from decimal import Decimal

import pytest

from paie_api.common.errors import APIError
from paie_api.models.workflow import Alert, PayrollEvent, WorkflowExecution
from paie_api.services import workflow_engine as wfe


def _wf(company, **kw):
    data = {"name": "Prime d'ancienneté", "trigger_type": "employee.anniversary",
            "conditions": [{"field": "employee.years", "operator": "gte", "value": 5}],
            "actions": [{"type": "create_alert", "config": {"message": "Ancienneté atteinte"}}]}
    data.update(kw)
    return wfe.create_workflow(company.id, data, None)


def test_condition_operators():
    data = {"employee": {"years": "7", "department": "Finance", "tags": ["cadre"]}}
    assert wfe.evaluate_condition({"field": "employee.years", "operator": "gt", "value": 5}, data)
    assert not wfe.evaluate_condition({"field": "employee.years", "operator": "lt", "value": 5}, data)
    assert wfe.evaluate_condition({"field": "employee.department", "operator": "eq", "value": "Finance"}, data)
    assert wfe.evaluate_condition({"field": "employee.tags", "operator": "contains", "value": "cadre"}, data)
    assert wfe.evaluate_condition({"field": "employee.department", "operator": "in",
                                   "value": ["RH", "Finance"]}, data)


def test_missing_field_only_satisfies_ne():
    assert not wfe.evaluate_condition({"field": "x.y", "operator": "eq", "value": None}, {})
    assert wfe.evaluate_condition({"field": "x.y", "operator": "ne", "value": 1}, {})


def test_dry_run_writes_nothing(app, company):
    wf = _wf(company)
    out = wfe.test_workflow(wf, {"employee": {"years": 6}})
    assert out["conditionsPassed"] is True
    assert out["actionsToExecute"] == ["create_alert"]
    assert Alert.query.count() == 0

    out = wfe.test_workflow(wf, {"employee": {"years": 2}})
    assert out["actionsToExecute"] == []


def test_inactive_workflow_is_skipped(app, company):
    wf = _wf(company)
    ex = wfe.execute_workflow(wf, {"employee": {"years": 6}})
    assert ex.status == "skipped"
    assert ex.error_message == "Workflow is not active"
    assert wf.execution_count == 0


def test_execute_creates_alert_and_payroll_event(app, company, make_employee):
    emp = make_employee()
    wf = _wf(company, actions=[
        {"type": "create_alert", "config": {"message": "Ancienneté atteinte"}},
        {"type": "create_payroll_event", "config": {"amount": 25000, "event_type": "bonus"}},
    ])
    wfe.change_status(wf, "activate")

    ex = wfe.execute_workflow(wf, {"employee": {"years": 6}, "employee_id": emp.id})
    assert ex.status == "success"
    assert Alert.query.filter_by(company_id=company.id).count() == 1
    assert PayrollEvent.query.filter_by(employee_id=emp.id).first().amount == Decimal("25000")
    assert wf.execution_count == 1 and wf.success_count == 1


def test_failed_action_is_recorded(app, company):
    wf = _wf(company, actions=[{"type": "create_payroll_event", "config": {"amount": 1000}},
                               {"type": "unknown_action"}])
    wfe.change_status(wf, "activate")
    ex = wfe.execute_workflow(wf, {"employee": {"years": 9}})
    assert ex.status == "failed"
    assert [a["status"] for a in ex.actions_executed] == ["failed", "failed"]
    stats = wfe.get_stats(wf)
    assert stats["errorCount"] == 1
    assert stats["successRate"] == 0.0


def test_trigger_runs_active_workflows_only(app, company):
    active = _wf(company)
    wfe.change_status(active, "activate")
    _wf(company)  # draft
    runs = wfe.trigger_event(company.id, "employee.anniversary", {"employee": {"years": 10}})
    assert [ex.workflow_id for ex in runs] == [active.id]


def test_lifecycle(app, company):
    wf = _wf(company, actions=[])
    with pytest.raises(APIError):
        wfe.change_status(wf, "activate")

    wfe.update_workflow(wf, {"actions": [{"type": "send_notification", "config": {"title": "x"}}]})
    assert wf.version == 2
    wfe.change_status(wf, "activate")
    wfe.change_status(wf, "pause")
    wfe.change_status(wf, "archive")
    with pytest.raises(APIError) as exc:
        wfe.update_workflow(wf, {"name": "renamed"})
    assert exc.value.status_code == 409


def test_invalid_operator_rejected(app, company):
    with pytest.raises(APIError):
        _wf(company, conditions=[{"field": "a", "operator": "like", "value": 1}])


def test_nan_never_orders():
    data = {"amount": "NaN"}
    for op in ("gt", "gte", "lt", "lte"):
        assert not wfe.evaluate_condition({"field": "amount", "operator": op, "value": 100}, data)
    assert wfe.evaluate_condition({"field": "amount", "operator": "ne", "value": 100}, data)


def test_nan_trigger_data_still_logs_execution(app, company):
    wf = _wf(company, conditions=[{"field": "amount", "operator": "gt", "value": 100}])
    wfe.change_status(wf, "activate")
    ex = wfe.execute_workflow(wf, {"amount": "NaN"})
    assert ex.status == "skipped"
    assert WorkflowExecution.query.filter_by(workflow_id=wf.id).count() == 1


def test_unexpected_action_error_is_recorded(app, company, monkeypatch):
    wf = _wf(company)
    wfe.change_status(wf, "activate")

    def boom(*args, **kwargs):
        raise ArithmeticError("division impossible")

    monkeypatch.setattr(wfe, "_run_action", boom)
    ex = wfe.execute_workflow(wf, {"employee": {"years": 6}})
    assert ex.status == "failed"
    assert ex.actions_executed[0]["error"] == "division impossible"
    assert WorkflowExecution.query.filter_by(workflow_id=wf.id).count() == 1
    assert wf.error_count == 1
