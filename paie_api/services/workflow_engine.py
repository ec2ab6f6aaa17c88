"""
Automation runner: a workflow is a trigger, a list of ANDed conditions over the
trigger data and a list of actions producing side-effect records.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from decimal import InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from paie_api.common.errors import conflict, invalid, not_found
from paie_api.common.paging import iso, parse_date, parse_dec
from paie_api.extensions import db
from paie_api.models.employee import EMPLOYEE_STATUSES, Employee
from paie_api.models.workflow import (
    WORKFLOW_STATUSES, Alert, Notification, PayrollEvent, WorkflowDefinition, WorkflowExecution,
)

log = logging.getLogger(__name__)

OPERATORS = ("eq", "ne", "gt", "gte", "lt", "lte", "contains", "in")
ACTION_TYPES = ("create_alert", "send_notification", "create_payroll_event", "update_employee_status")

_MISSING = object()


# ---------- conditions ----------

def resolve_path(data: Dict[str, Any], path: str):
    cur: Any = data
    for part in (path or "").split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return _MISSING
    return cur


def _is_nan(value) -> bool:
    d = parse_dec(value)
    return d is not None and d.is_nan()


def _cmp_values(actual, expected):
    """Compare numbers as numbers when both sides parse, else as strings. NaN is not a number here."""
    a, e = parse_dec(actual), parse_dec(expected)
    if a is not None and e is not None and not (a.is_nan() or e.is_nan()):
        return a, e
    return str(actual), str(expected)


def evaluate_condition(cond: Dict[str, Any], data: Dict[str, Any]) -> bool:
    op = cond.get("operator", "eq")
    expected = cond.get("value")
    actual = resolve_path(data, cond.get("field", ""))
    if actual is _MISSING:
        return op == "ne"

    if op == "eq":
        a, e = _cmp_values(actual, expected)
        return actual == expected or a == e
    if op == "ne":
        a, e = _cmp_values(actual, expected)
        return a != e
    if op in ("gt", "gte", "lt", "lte"):
        if _is_nan(actual) or _is_nan(expected):
            return False
        a, e = _cmp_values(actual, expected)
        try:
            return {"gt": a > e, "gte": a >= e, "lt": a < e, "lte": a <= e}[op]
        except (TypeError, InvalidOperation):
            return False
    if op == "contains":
        if isinstance(actual, (list, tuple)):
            return expected in actual
        return str(expected) in str(actual)
    if op == "in":
        return isinstance(expected, (list, tuple)) and actual in expected
    return False


def evaluate_conditions(conditions: List[Dict[str, Any]], data: Dict[str, Any]) -> Tuple[bool, List[Dict[str, Any]]]:
    results = []
    for c in conditions or []:
        results.append({
            "field": c.get("field"),
            "operator": c.get("operator", "eq"),
            "expected": c.get("value"),
            "actual": None if resolve_path(data, c.get("field", "")) is _MISSING
            else resolve_path(data, c.get("field", "")),
            "passed": evaluate_condition(c, data),
        })
    return all(r["passed"] for r in results), results


# ---------- actions ----------

def _employee_for(wf: WorkflowDefinition, cfg: Dict[str, Any], employee_id: Optional[int]) -> Optional[Employee]:
    emp_id = cfg.get("employee_id") or employee_id
    if not emp_id:
        return None
    return Employee.query.filter_by(id=emp_id, company_id=wf.company_id).first()


def _run_action(wf: WorkflowDefinition, action: Dict[str, Any], data: Dict[str, Any],
                employee_id: Optional[int], initiator_id: Optional[int]) -> Dict[str, Any]:
    atype = action.get("type")
    cfg = action.get("config") or {}

    if atype == "create_alert":
        alert = Alert(
            company_id=wf.company_id,
            type=cfg.get("alert_type") or "workflow",
            severity=cfg.get("severity") or "info",
            message=cfg.get("message") or wf.name,
            assignee_id=cfg.get("assignee_id") or initiator_id,
            employee_id=employee_id,
            metadata_json={"workflow_id": wf.id},
        )
        db.session.add(alert)
        db.session.flush()
        return {"alert_id": alert.id}

    if atype == "send_notification":
        n = Notification(
            company_id=wf.company_id,
            recipient_id=cfg.get("recipient_id") or initiator_id,
            channel=cfg.get("channel") or "in_app",
            title=cfg.get("title") or wf.name,
            message=cfg.get("message"),
        )
        db.session.add(n)
        db.session.flush()
        return {"notification_id": n.id}

    if atype == "create_payroll_event":
        emp = _employee_for(wf, cfg, employee_id)
        if emp is None:
            raise ValueError("Employé requis pour créer un événement de paie")
        ev = PayrollEvent(
            company_id=wf.company_id,
            employee_id=emp.id,
            event_type=cfg.get("event_type") or "bonus",
            amount=parse_dec(cfg.get("amount")) or 0,
            event_date=parse_date(cfg.get("event_date")) or datetime.utcnow().date(),
            metadata_json=dict(cfg.get("metadata") or {}, workflow_id=wf.id),
        )
        db.session.add(ev)
        db.session.flush()
        return {"payroll_event_id": ev.id}

    if atype == "update_employee_status":
        emp = _employee_for(wf, cfg, employee_id)
        if emp is None:
            raise ValueError("Employé introuvable")
        new_status = cfg.get("status")
        if new_status not in EMPLOYEE_STATUSES:
            raise ValueError(f"Statut employé invalide : {new_status}")
        old = emp.status
        emp.status = new_status
        return {"employee_id": emp.id, "old_status": old, "new_status": new_status}

    raise ValueError(f"Type d'action inconnu : {atype}")


# ---------- execution ----------

def _snapshot(wf: WorkflowDefinition) -> Dict[str, Any]:
    return {"name": wf.name, "version": wf.version, "trigger_type": wf.trigger_type,
            "conditions": wf.conditions or [], "actions": wf.actions or []}


def execute_workflow(wf: WorkflowDefinition, trigger_data: Optional[Dict[str, Any]] = None,
                     employee_id: Optional[int] = None, initiator_id: Optional[int] = None) -> WorkflowExecution:
    data = trigger_data or {}
    employee_id = employee_id or data.get("employee_id")
    started = time.monotonic()
    ex = WorkflowExecution(
        workflow_id=wf.id,
        company_id=wf.company_id,
        employee_id=employee_id,
        status="running",
        started_at=datetime.utcnow(),
        workflow_snapshot=_snapshot(wf),
        trigger_data=data,
    )
    entries: List[Dict[str, Any]] = []
    actions_done: List[Dict[str, Any]] = []

    def _log(level, message, **extra):
        entries.append(dict(extra, level=level, message=message, at=datetime.utcnow().isoformat()))

    if wf.status != "active":
        ex.status = "skipped"
        ex.error_message = "Workflow is not active"
        _log("info", "Workflow is not active")
    else:
        passed, evaluation = evaluate_conditions(wf.conditions or [], data)
        _log("info", "conditions evaluated", passed=passed, evaluation=evaluation)
        if not passed:
            ex.status = "skipped"
            ex.error_message = "Conditions not met"
        else:
            failed = 0
            for action in wf.actions or []:
                try:
                    result = _run_action(wf, action, data, employee_id, initiator_id)
                    actions_done.append({"type": action.get("type"), "status": "success", "result": result})
                    _log("info", f"action {action.get('type')} executed")
                except (ValueError, TypeError) as e:
                    failed += 1
                    actions_done.append({"type": action.get("type"), "status": "failed", "error": str(e)})
                    _log("error", str(e), action=action.get("type"))
                    log.warning("workflow %s action %s failed: %s", wf.id, action.get("type"), e)
                except Exception as e:
                    if isinstance(e, SQLAlchemyError):
                        db.session.rollback()
                    failed += 1
                    actions_done.append({"type": action.get("type"), "status": "failed", "error": str(e)})
                    _log("error", str(e), action=action.get("type"))
                    log.exception("workflow %s action %s crashed", wf.id, action.get("type"))
            ex.status = "failed" if failed else "success"
            if failed:
                ex.error_message = f"{failed} action(s) en échec"

            wf.execution_count = (wf.execution_count or 0) + 1
            if failed:
                wf.error_count = (wf.error_count or 0) + 1
            else:
                wf.success_count = (wf.success_count or 0) + 1
            wf.last_executed_at = datetime.utcnow()

    ex.completed_at = datetime.utcnow()
    ex.duration_ms = int((time.monotonic() - started) * 1000)
    ex.execution_log = entries
    ex.actions_executed = actions_done
    db.session.add(ex)
    db.session.commit()
    log.info("workflow %s executed: %s (%d ms)", wf.id, ex.status, ex.duration_ms)
    return ex


def trigger_event(company_id: int, event_type: str, data: Optional[Dict[str, Any]] = None,
                  initiator_id: Optional[int] = None) -> List[WorkflowExecution]:
    workflows = (WorkflowDefinition.query
                 .filter_by(company_id=company_id, trigger_type=event_type, status="active")
                 .order_by(WorkflowDefinition.id)
                 .all())
    return [execute_workflow(wf, data, initiator_id=initiator_id) for wf in workflows]


def test_workflow(wf: WorkflowDefinition, test_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Dry run: evaluates the conditions, writes nothing."""
    passed, evaluation = evaluate_conditions(wf.conditions or [], test_data or {})
    n = len(wf.actions or [])
    if passed:
        message = f"Les conditions sont remplies. {n} action(s) serai(en)t exécutée(s)."
    else:
        message = "Les conditions ne sont pas remplies. Aucune action ne serait exécutée."
    return {
        "conditionsPassed": passed,
        "conditionResults": evaluation,
        "actionsToExecute": [a.get("type") for a in wf.actions or []] if passed else [],
        "message": message,
    }


# ---------- CRUD ----------

def get_workflow(company_id: int, workflow_id: int) -> WorkflowDefinition:
    wf = WorkflowDefinition.query.filter_by(id=workflow_id, company_id=company_id).first()
    if wf is None:
        raise not_found("Workflow non trouvé")
    return wf


def _validate_definition(data: Dict[str, Any], partial: bool = False):
    if not partial or "name" in data:
        if not (data.get("name") or "").strip():
            raise invalid("Le nom du workflow est requis")
    if not partial or "trigger_type" in data:
        if not (data.get("trigger_type") or "").strip():
            raise invalid("Le déclencheur est requis")
    for c in data.get("conditions") or []:
        if not isinstance(c, dict) or not c.get("field"):
            raise invalid("Chaque condition doit avoir un champ")
        if c.get("operator", "eq") not in OPERATORS:
            raise invalid(f"Opérateur inconnu : {c.get('operator')}")
    for a in data.get("actions") or []:
        if not isinstance(a, dict) or not a.get("type"):
            raise invalid("Chaque action doit avoir un type")


def create_workflow(company_id: int, data: Dict[str, Any], user_id: Optional[int]) -> WorkflowDefinition:
    _validate_definition(data)
    wf = WorkflowDefinition(
        company_id=company_id,
        name=data["name"].strip(),
        description=data.get("description"),
        trigger_type=data["trigger_type"].strip(),
        trigger_config=data.get("trigger_config") or {},
        conditions=data.get("conditions") or [],
        actions=data.get("actions") or [],
        status="draft",
        is_template=bool(data.get("is_template")),
        template_category=data.get("template_category"),
        created_by=user_id,
    )
    db.session.add(wf)
    db.session.commit()
    return wf


def update_workflow(wf: WorkflowDefinition, data: Dict[str, Any]) -> WorkflowDefinition:
    if wf.status == "archived":
        raise conflict("Un workflow archivé ne peut pas être modifié")
    _validate_definition(data, partial=True)
    for field in ("name", "description", "trigger_type", "trigger_config", "conditions",
                  "actions", "is_template", "template_category"):
        if field in data:
            setattr(wf, field, data[field])
    wf.version = (wf.version or 1) + 1
    db.session.commit()
    return wf


_TRANSITIONS = {
    "activate": (("draft", "paused"), "active"),
    "pause": (("active",), "paused"),
    "archive": (("draft", "active", "paused"), "archived"),
}


def change_status(wf: WorkflowDefinition, action: str) -> WorkflowDefinition:
    allowed, target = _TRANSITIONS[action]
    if wf.status not in allowed:
        raise conflict(f"Transition impossible depuis le statut '{wf.status}'")
    if action == "activate" and not (wf.actions or []):
        raise invalid("Un workflow actif doit avoir au moins une action")
    wf.status = target
    db.session.commit()
    return wf


def delete_workflow(wf: WorkflowDefinition):
    db.session.delete(wf)
    db.session.commit()


def list_workflows(company_id: int, status: Optional[str] = None, category: Optional[str] = None):
    q = WorkflowDefinition.query.filter_by(company_id=company_id)
    if status:
        if status not in WORKFLOW_STATUSES:
            raise invalid(f"Statut invalide : {status}")
        q = q.filter(WorkflowDefinition.status == status)
    if category:
        q = q.filter(WorkflowDefinition.template_category == category)
    return q.order_by(WorkflowDefinition.created_at.desc(), WorkflowDefinition.id.desc())


def list_executions(wf: WorkflowDefinition, limit: int, offset: int):
    q = WorkflowExecution.query.filter_by(workflow_id=wf.id)
    total = q.count()
    rows = q.order_by(WorkflowExecution.started_at.desc(), WorkflowExecution.id.desc()) \
        .limit(limit).offset(offset).all()
    return rows, total


def get_stats(wf: WorkflowDefinition) -> Dict[str, Any]:
    avg = (db.session.query(db.func.avg(WorkflowExecution.duration_ms))
           .filter(WorkflowExecution.workflow_id == wf.id)
           .filter(WorkflowExecution.status.in_(("success", "failed")))
           .scalar())
    last = (WorkflowExecution.query.filter_by(workflow_id=wf.id)
            .order_by(WorkflowExecution.started_at.desc(), WorkflowExecution.id.desc()).first())
    total = wf.execution_count or 0
    return {
        "executionCount": total,
        "successCount": wf.success_count or 0,
        "errorCount": wf.error_count or 0,
        "successRate": round((wf.success_count or 0) * 100.0 / total, 2) if total else 0.0,
        "averageDurationMs": round(float(avg), 2) if avg is not None else None,
        "lastExecution": execution_row(last) if last else None,
    }


def workflow_row(wf: WorkflowDefinition) -> Dict[str, Any]:
    return {
        "id": wf.id,
        "name": wf.name,
        "description": wf.description,
        "trigger_type": wf.trigger_type,
        "trigger_config": wf.trigger_config or {},
        "conditions": wf.conditions or [],
        "actions": wf.actions or [],
        "status": wf.status,
        "version": wf.version,
        "execution_count": wf.execution_count,
        "success_count": wf.success_count,
        "error_count": wf.error_count,
        "last_executed_at": iso(wf.last_executed_at),
        "is_template": bool(wf.is_template),
        "template_category": wf.template_category,
        "created_at": iso(wf.created_at),
        "updated_at": iso(wf.updated_at),
    }


def execution_row(ex: WorkflowExecution) -> Dict[str, Any]:
    return {
        "id": ex.id,
        "workflow_id": ex.workflow_id,
        "employee_id": ex.employee_id,
        "status": ex.status,
        "started_at": iso(ex.started_at),
        "completed_at": iso(ex.completed_at),
        "duration_ms": ex.duration_ms,
        "actions_executed": ex.actions_executed or [],
        "error_message": ex.error_message,
        "execution_log": ex.execution_log or [],
        "workflow_snapshot": ex.workflow_snapshot or {},
        "trigger_data": ex.trigger_data or {},
    }
