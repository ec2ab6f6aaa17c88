"""Annual training plans and their budget lines."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from paie_api.common.errors import conflict, invalid, not_found
from paie_api.common.paging import iso, num, parse_dec
from paie_api.extensions import db
from paie_api.models.training import (
    ITEM_PRIORITIES, ITEM_STATUSES, PLAN_STATUSES, TrainingPlan, TrainingPlanItem,
)
from paie_api.services.payroll_engine import fmt_fcfa

ITEM_FIELDS = ("course_name", "target_participant_count", "target_employee_ids", "budget_allocated",
               "budget_spent", "planned_quarter", "planned_month", "priority", "status", "notes")
INT_ITEM_FIELDS = ("target_participant_count", "planned_quarter", "planned_month")


def _to_int(value, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise invalid(f"{label} doit être un nombre entier")


def get_plan(company_id: int, plan_id: int) -> TrainingPlan:
    p = TrainingPlan.query.filter_by(id=plan_id, company_id=company_id).first()
    if p is None:
        raise not_found("Plan de formation non trouvé")
    return p


def _ensure_draft(plan: TrainingPlan):
    if plan.status != "draft":
        raise conflict("Seuls les plans en brouillon peuvent être modifiés")


def recompute(plan: TrainingPlan):
    plan.allocated_budget = sum((Decimal(str(i.budget_allocated or 0)) for i in plan.items), Decimal("0"))
    plan.spent_budget = sum((Decimal(str(i.budget_spent or 0)) for i in plan.items), Decimal("0"))


def budget_warnings(plan: TrainingPlan) -> List[str]:
    total = plan.total_budget
    allocated = Decimal(str(plan.allocated_budget or 0))
    if total is not None and allocated > Decimal(str(total)):
        return [f"Le budget alloué ({fmt_fcfa(allocated)}) dépasse le budget total ({fmt_fcfa(total)})"]
    return []


def create_plan(company_id: int, data: Dict[str, Any], user_id: Optional[int]) -> TrainingPlan:
    name = (data.get("name") or "").strip()
    if not name:
        raise invalid("Le nom du plan est requis")
    year = _to_int(data.get("year"), "year")
    if year is None:
        raise invalid("L'année est requise")
    total = parse_dec(data.get("total_budget"))
    if total is not None and total < 0:
        raise invalid("Le budget total ne peut pas être négatif")
    plan = TrainingPlan(
        company_id=company_id,
        name=name,
        year=year,
        description=data.get("description"),
        department=data.get("department"),
        total_budget=total,
        currency=(data.get("currency") or "XOF").upper(),
        allocated_budget=0,
        spent_budget=0,
        status="draft",
        created_by=user_id,
    )
    db.session.add(plan)
    db.session.commit()
    return plan


def update_plan(plan: TrainingPlan, data: Dict[str, Any]) -> TrainingPlan:
    _ensure_draft(plan)
    for field in ("name", "description", "department", "currency"):
        if field in data:
            setattr(plan, field, data[field])
    if "year" in data:
        year = _to_int(data["year"], "year")
        if year is None:
            raise invalid("L'année est requise")
        plan.year = year
    if "total_budget" in data:
        plan.total_budget = parse_dec(data["total_budget"])
    db.session.commit()
    return plan


def delete_plan(plan: TrainingPlan):
    _ensure_draft(plan)
    db.session.delete(plan)
    db.session.commit()


def _apply_item(item: TrainingPlanItem, data: Dict[str, Any]):
    for field in ITEM_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field in ("budget_allocated", "budget_spent"):
            value = parse_dec(value) or 0
        elif field in INT_ITEM_FIELDS:
            value = _to_int(value, field)
        setattr(item, field, value)
    if not (item.course_name or "").strip():
        raise invalid("Le nom de la formation est requis")
    if item.planned_quarter is not None and item.planned_quarter not in (1, 2, 3, 4):
        raise invalid("Le trimestre doit être compris entre 1 et 4")
    if item.planned_month is not None and not 1 <= item.planned_month <= 12:
        raise invalid("Le mois doit être compris entre 1 et 12")
    if item.priority not in ITEM_PRIORITIES:
        raise invalid(f"Priorité invalide : {item.priority}")
    if item.status not in ITEM_STATUSES:
        raise invalid(f"Statut invalide : {item.status}")
    if (item.target_participant_count or 0) < 1:
        raise invalid("Le nombre de participants doit être au moins 1")


def add_item(plan: TrainingPlan, data: Dict[str, Any]) -> TrainingPlanItem:
    _ensure_draft(plan)
    item = TrainingPlanItem(plan=plan, priority="medium", status="planned",
                            target_participant_count=1, budget_allocated=0, budget_spent=0)
    _apply_item(item, data)
    recompute(plan)
    db.session.commit()
    return item


def _get_item(plan: TrainingPlan, item_id: int) -> TrainingPlanItem:
    for item in plan.items:
        if item.id == item_id:
            return item
    raise not_found("Ligne du plan non trouvée")


def update_item(plan: TrainingPlan, item_id: int, data: Dict[str, Any]) -> TrainingPlanItem:
    _ensure_draft(plan)
    item = _get_item(plan, item_id)
    _apply_item(item, data)
    recompute(plan)
    db.session.commit()
    return item


def remove_item(plan: TrainingPlan, item_id: int):
    _ensure_draft(plan)
    item = _get_item(plan, item_id)
    plan.items.remove(item)
    recompute(plan)
    db.session.commit()


def submit(plan: TrainingPlan) -> TrainingPlan:
    if plan.status != "draft":
        raise conflict("Seul un plan en brouillon peut être soumis")
    if not plan.items:
        raise invalid("Le plan doit contenir au moins une formation")
    plan.status = "submitted"
    db.session.commit()
    return plan


def approve(plan: TrainingPlan, user_id: Optional[int]) -> TrainingPlan:
    if plan.status != "submitted":
        raise conflict("Seul un plan soumis peut être approuvé")
    plan.status = "approved"
    plan.approved_by = user_id
    plan.approved_at = datetime.utcnow()
    db.session.commit()
    return plan


def list_plans(company_id: int, year: Optional[int] = None, status: Optional[str] = None):
    q = TrainingPlan.query.filter_by(company_id=company_id)
    if year:
        q = q.filter(TrainingPlan.year == year)
    if status:
        if status not in PLAN_STATUSES:
            raise invalid(f"Statut invalide : {status}")
        q = q.filter(TrainingPlan.status == status)
    return q.order_by(TrainingPlan.year.desc(), TrainingPlan.id.desc())


def budget_summary(plan: TrainingPlan) -> Dict[str, Any]:
    total = Decimal(str(plan.total_budget or 0))
    allocated = Decimal(str(plan.allocated_budget or 0))
    spent = Decimal(str(plan.spent_budget or 0))

    by_quarter = {str(q): 0.0 for q in (1, 2, 3, 4)}
    by_priority = {p: 0.0 for p in ITEM_PRIORITIES}
    unscheduled = 0.0
    for i in plan.items:
        amount = float(i.budget_allocated or 0)
        if i.planned_quarter:
            by_quarter[str(i.planned_quarter)] += amount
        else:
            unscheduled += amount
        by_priority[i.priority] = by_priority.get(i.priority, 0.0) + amount
    return {
        "total": float(total),
        "allocated": float(allocated),
        "spent": float(spent),
        "remaining": float(total - allocated),
        "over_allocated": allocated > total if plan.total_budget is not None else False,
        "byQuarter": by_quarter,
        "unscheduled": unscheduled,
        "byPriority": by_priority,
        "warnings": budget_warnings(plan),
    }


def item_row(i: TrainingPlanItem) -> Dict[str, Any]:
    return {
        "id": i.id,
        "plan_id": i.plan_id,
        "course_name": i.course_name,
        "target_participant_count": i.target_participant_count,
        "target_employee_ids": i.target_employee_ids or [],
        "budget_allocated": num(i.budget_allocated),
        "budget_spent": num(i.budget_spent),
        "planned_quarter": i.planned_quarter,
        "planned_month": i.planned_month,
        "priority": i.priority,
        "status": i.status,
        "notes": i.notes,
    }


def plan_row(p: TrainingPlan, with_items: bool = False) -> Dict[str, Any]:
    out = {
        "id": p.id,
        "name": p.name,
        "year": p.year,
        "description": p.description,
        "department": p.department,
        "total_budget": num(p.total_budget),
        "currency": p.currency,
        "allocated_budget": num(p.allocated_budget),
        "spent_budget": num(p.spent_budget),
        "status": p.status,
        "approved_by": p.approved_by,
        "approved_at": iso(p.approved_at),
        "created_at": iso(p.created_at),
        "warnings": budget_warnings(p),
    }
    if with_items:
        out["items"] = [item_row(i) for i in p.items]
    return out
