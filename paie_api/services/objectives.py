"""Performance objectives and their approval lifecycle."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from paie_api.common.errors import conflict, invalid, not_found
from paie_api.common.paging import iso, num, parse_date, parse_dec
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.performance import (
    OBJECTIVE_LEVELS, OBJECTIVE_STATUSES, OBJECTIVE_TYPES, Objective,
)

FINAL_STATUSES = ("completed", "cancelled")

# operation -> (allowed from, target)
TRANSITIONS = {
    "submit": (("draft",), "proposed"),
    "approve": (("proposed",), "approved"),
    "reject": (("proposed",), "draft"),
    "start": (("approved",), "in_progress"),
    "complete": (("in_progress",), "completed"),
}

EDITABLE_FIELDS = ("title", "description", "objective_type", "objective_level", "employee_id",
                   "department", "parent_objective_id", "weight", "target_value", "target_unit",
                   "due_date")


def get_objective(company_id: int, objective_id: int) -> Objective:
    o = Objective.query.filter_by(id=objective_id, company_id=company_id).first()
    if o is None:
        raise not_found("Objectif non trouvé")
    return o


def _apply(company_id: int, o: Objective, data: Dict[str, Any]):
    for field in EDITABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field in ("weight", "target_value"):
            value = parse_dec(value)
        elif field == "due_date":
            value = parse_date(value)
        setattr(o, field, value)

    if not (o.title or "").strip():
        raise invalid("Le titre est requis")
    if o.objective_level not in OBJECTIVE_LEVELS:
        raise invalid(f"Niveau d'objectif invalide : {o.objective_level}")
    if o.objective_type not in OBJECTIVE_TYPES:
        raise invalid(f"Type d'objectif invalide : {o.objective_type}")
    if o.weight is not None and not 0 <= o.weight <= 100:
        raise invalid("La pondération doit être comprise entre 0 et 100")
    if o.objective_level == "individual":
        if not o.employee_id:
            raise invalid("Un objectif individuel doit être rattaché à un employé")
        if not Employee.query.filter_by(id=o.employee_id, company_id=company_id).first():
            raise not_found("Employé non trouvé")
    if o.parent_objective_id:
        get_objective(company_id, o.parent_objective_id)


def create_objective(company_id: int, data: Dict[str, Any], user_id: Optional[int]) -> Objective:
    o = Objective(company_id=company_id, status="draft", created_by=user_id,
                  objective_type=data.get("objective_type") or "qualitative",
                  objective_level=data.get("objective_level") or "individual")
    _apply(company_id, o, data)
    db.session.add(o)
    db.session.commit()
    return o


def update_objective(company_id: int, o: Objective, data: Dict[str, Any]) -> Objective:
    if o.status != "draft":
        raise conflict("Seuls les objectifs en brouillon peuvent être modifiés")
    _apply(company_id, o, data)
    db.session.commit()
    return o


def delete_objective(o: Objective):
    if o.status != "draft":
        raise conflict("Seuls les objectifs en brouillon peuvent être supprimés")
    db.session.delete(o)
    db.session.commit()


def transition(o: Objective, action: str, user_id: Optional[int] = None,
               data: Optional[Dict[str, Any]] = None) -> Objective:
    data = data or {}
    if action == "cancel":
        if o.status in FINAL_STATUSES:
            raise conflict(f"Un objectif au statut '{o.status}' ne peut pas être annulé")
        o.status = "cancelled"
        db.session.commit()
        return o

    allowed, target = TRANSITIONS[action]
    if o.status not in allowed:
        raise conflict(f"Transition '{action}' impossible depuis le statut '{o.status}'")
    now = datetime.utcnow()
    if action == "submit":
        o.proposed_at = now
    elif action == "approve":
        o.approved_by = user_id
        o.approved_at = now
    elif action == "complete":
        score = parse_dec(data.get("achievement_score"))
        if score is None or not 0 <= score <= 100:
            raise invalid("Le score de réalisation doit être compris entre 0 et 100")
        o.achievement_score = score
        o.achievement_notes = data.get("achievement_notes")
        o.completed_at = now
    o.status = target
    db.session.commit()
    return o


def update_progress(o: Objective, current_value) -> Objective:
    if o.status not in ("approved", "in_progress"):
        raise conflict("La progression ne peut être mise à jour que pour un objectif approuvé ou en cours")
    value = parse_dec(current_value)
    if value is None:
        raise invalid("current_value est requis")
    o.current_value = value
    db.session.commit()
    return o


def list_objectives(company_id: int, level: Optional[str] = None, status: Optional[str] = None,
                    employee_id: Optional[int] = None):
    q = Objective.query.filter_by(company_id=company_id)
    if level:
        q = q.filter(Objective.objective_level == level)
    if status:
        if status not in OBJECTIVE_STATUSES:
            raise invalid(f"Statut invalide : {status}")
        q = q.filter(Objective.status == status)
    if employee_id:
        q = q.filter(Objective.employee_id == employee_id)
    return q.order_by(Objective.due_date.asc(), Objective.id.asc())


def progress_percentage(o: Objective) -> Optional[float]:
    if o.target_value is None or o.target_value <= 0:
        return None
    return round(float(o.current_value or 0) * 100.0 / float(o.target_value), 2)


def row(o: Objective) -> Dict[str, Any]:
    return {
        "id": o.id,
        "title": o.title,
        "description": o.description,
        "objective_type": o.objective_type,
        "objective_level": o.objective_level,
        "employee_id": o.employee_id,
        "employee_name": o.employee.full_name if o.employee else None,
        "department": o.department,
        "parent_objective_id": o.parent_objective_id,
        "weight": num(o.weight),
        "target_value": num(o.target_value),
        "target_unit": o.target_unit,
        "current_value": num(o.current_value),
        "progress_percentage": progress_percentage(o),
        "status": o.status,
        "due_date": iso(o.due_date),
        "achievement_score": num(o.achievement_score),
        "achievement_notes": o.achievement_notes,
        "proposed_at": iso(o.proposed_at),
        "approved_at": iso(o.approved_at),
        "completed_at": iso(o.completed_at),
        "created_at": iso(o.created_at),
    }
