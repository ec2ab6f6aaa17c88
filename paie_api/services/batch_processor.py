"""
Bulk operations over employees (salary updates, document generation,
contract renewals). Operations are queued as BatchOperation rows and processed
synchronously, one entity at a time, by process().
"""
from __future__ import annotations

import logging
from calendar import monthrange
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from paie_api.common.errors import APIError, conflict, invalid, not_found
from paie_api.common.paging import iso, parse_date, parse_dec
from paie_api.extensions import db
from paie_api.models.batch import BATCH_STATUSES, BATCH_TYPES, BatchOperation
from paie_api.models.employee import Employee
from paie_api.services import contract_rules, documents
from paie_api.services.payroll_engine import fcfa

log = logging.getLogger(__name__)

MAX_ENTITIES = 500
SALARY_UPDATE_TYPES = ("absolute", "percentage")
FINAL_STATUSES = ("completed", "failed", "cancelled")
# rough throughput used for estimated_completion_at
SECONDS_PER_ENTITY = 0.5


def _check_ids(employee_ids) -> List[int]:
    if not isinstance(employee_ids, list) or not employee_ids:
        raise invalid("Au moins un employé doit être sélectionné")
    if len(employee_ids) > MAX_ENTITIES:
        raise invalid(f"Maximum {MAX_ENTITIES} employés par opération")
    try:
        return [int(x) for x in employee_ids]
    except (TypeError, ValueError):
        raise invalid("Identifiants d'employés invalides")


def _queue(company_id: int, op_type: str, ids: List[int], params: Dict[str, Any],
           user_id: Optional[int]) -> BatchOperation:
    op = BatchOperation(
        company_id=company_id,
        operation_type=op_type,
        entity_type="employee",
        entity_ids=ids,
        params=params,
        status="pending",
        total_count=len(ids),
        errors=[],
        result_data={},
        started_by=user_id,
        estimated_completion_at=datetime.utcnow() + timedelta(seconds=len(ids) * SECONDS_PER_ENTITY),
    )
    db.session.add(op)
    db.session.commit()
    log.info("batch %s queued: %s x%d", op.id, op_type, len(ids))
    return op


def update_salaries(company_id: int, employee_ids, update_type: str, value, effective_date,
                    reason: Optional[str] = None, user_id: Optional[int] = None) -> BatchOperation:
    ids = _check_ids(employee_ids)
    if update_type not in SALARY_UPDATE_TYPES:
        raise invalid("Type de mise à jour invalide (absolute ou percentage)")
    val = parse_dec(value)
    if val is None or val <= 0:
        raise invalid("La valeur doit être positive")
    eff = parse_date(effective_date)
    if not eff:
        raise invalid("La date d'effet est requise")
    return _queue(company_id, "salary_update", ids, {
        "update_type": update_type, "value": str(val),
        "effective_date": eff.isoformat(), "reason": reason,
    }, user_id)


def generate_documents(company_id: int, employee_ids, document_type: str,
                       user_id: Optional[int] = None) -> BatchOperation:
    ids = _check_ids(employee_ids)
    if document_type not in documents.EMPLOYEE_DOCUMENT_KINDS:
        raise invalid(f"Type de document non supporté : {document_type}")
    return _queue(company_id, "document_generation", ids, {"document_type": document_type}, user_id)


def renew_contracts(company_id: int, employee_ids, new_end_date=None, duration_months=None,
                    user_id: Optional[int] = None) -> BatchOperation:
    ids = _check_ids(employee_ids)
    end = parse_date(new_end_date)
    months = int(duration_months) if duration_months not in (None, "") else None
    if not end and not months:
        raise invalid("Une nouvelle date de fin ou une durée est requise")
    if months is not None and months <= 0:
        raise invalid("La durée doit être positive")
    return _queue(company_id, "contract_renewal", ids, {
        "new_end_date": end.isoformat() if end else None, "duration_months": months,
    }, user_id)


# ---------- per-entity handlers ----------

def _add_months(d, months: int):
    y, m = divmod(d.month - 1 + months, 12)
    y, m = d.year + y, m + 1
    return d.replace(year=y, month=m, day=min(d.day, monthrange(y, m)[1]))


def _salary_update(op: BatchOperation, emp: Employee) -> Dict[str, Any]:
    p = op.params
    eff = parse_date(p["effective_date"])
    current = emp.active_salary(eff)
    if current is None:
        raise invalid("No active salary found")
    value = Decimal(p["value"])
    if p["update_type"] == "percentage":
        new_base = fcfa(Decimal(str(current.base_salary)) * (1 + value / 100))
    else:
        new_base = value
    old = current.base_salary
    contract_rules.change_salary(emp, new_base, eff, p.get("reason"))
    return {"old": float(old), "new": float(new_base)}


def _document(op: BatchOperation, emp: Employee) -> Dict[str, Any]:
    out = documents.generate_employee_document(emp, op.params["document_type"], op.started_by)
    return {"documentId": out["documentId"], "url": out["url"]}


def _renewal(op: BatchOperation, emp: Employee) -> Dict[str, Any]:
    p = op.params
    end = parse_date(p.get("new_end_date"))
    if end is None:
        current = emp.active_contract()
        if current is None or current.end_date is None:
            raise invalid("Aucun contrat à durée déterminée actif")
        end = _add_months(current.end_date, int(p["duration_months"]))
    c = contract_rules.renew_contract(emp, end)
    return {"contractId": c.id, "endDate": c.end_date.isoformat()}


HANDLERS = {
    "salary_update": _salary_update,
    "document_generation": _document,
    "contract_renewal": _renewal,
}


def process(op: BatchOperation) -> BatchOperation:
    if op.status != "pending":
        raise conflict(f"L'opération est au statut '{op.status}' et ne peut pas être traitée")
    handler = HANDLERS.get(op.operation_type)
    if handler is None:
        raise invalid(f"Type d'opération inconnu : {op.operation_type}")

    op.status = "running"
    op.started_at = datetime.utcnow()
    db.session.commit()
    log.info("batch %s started (%s, %d entities)", op.id, op.operation_type, op.total_count)

    errors: List[Dict[str, Any]] = list(op.errors or [])
    results: Dict[str, Any] = dict(op.result_data or {})
    for entity_id in op.entity_ids or []:
        db.session.refresh(op)
        if op.status == "cancelled":
            log.info("batch %s cancelled after %d entities", op.id, op.processed_count)
            return op
        emp = Employee.query.filter_by(id=entity_id, company_id=op.company_id).first()
        try:
            if emp is None:
                raise not_found("Employé non trouvé")
            results[str(entity_id)] = handler(op, emp)
            db.session.commit()
            op.success_count = (op.success_count or 0) + 1
        except APIError as e:
            db.session.rollback()
            errors.append({"entity_id": entity_id, "error": e.message})
            op.error_count = (op.error_count or 0) + 1
            log.warning("batch %s entity %s failed: %s", op.id, entity_id, e.message)
        except Exception as e:
            db.session.rollback()
            errors.append({"entity_id": entity_id, "error": str(e)})
            op.error_count = (op.error_count or 0) + 1
            log.exception("batch %s entity %s crashed", op.id, entity_id)
        op.processed_count = (op.processed_count or 0) + 1
        op.errors = list(errors)
        op.result_data = dict(results)
        db.session.commit()

    op.status = "failed" if op.total_count and op.error_count == op.total_count else "completed"
    op.completed_at = datetime.utcnow()
    db.session.commit()
    log.info("batch %s %s: %d ok, %d errors", op.id, op.status, op.success_count, op.error_count)
    return op


def process_pending(company_id: Optional[int] = None) -> List[BatchOperation]:
    q = BatchOperation.query.filter_by(status="pending")
    if company_id is not None:
        q = q.filter_by(company_id=company_id)
    return [process(op) for op in q.order_by(BatchOperation.created_at, BatchOperation.id).all()]


# ---------- management ----------

def get_operation(company_id: int, op_id: int) -> BatchOperation:
    op = BatchOperation.query.filter_by(id=op_id, company_id=company_id).first()
    if op is None:
        raise not_found("Opération groupée non trouvée")
    return op


def list_operations(company_id: int, status: Optional[str] = None, operation_type: Optional[str] = None,
                    limit: int = 50, offset: int = 0) -> Dict[str, Any]:
    q = BatchOperation.query.filter_by(company_id=company_id)
    if status:
        if status not in BATCH_STATUSES:
            raise invalid(f"Statut invalide : {status}")
        q = q.filter(BatchOperation.status == status)
    if operation_type:
        if operation_type not in BATCH_TYPES:
            raise invalid(f"Type d'opération invalide : {operation_type}")
        q = q.filter(BatchOperation.operation_type == operation_type)
    total = q.count()
    rows = q.order_by(BatchOperation.created_at.desc(), BatchOperation.id.desc()) \
        .limit(limit).offset(offset).all()
    return {"operations": [row(o) for o in rows], "total": total, "hasMore": offset + len(rows) < total}


def cancel(op: BatchOperation) -> BatchOperation:
    if op.status == "completed":
        raise conflict("Impossible d'annuler une opération terminée")
    if op.status == "cancelled":
        raise conflict("Opération déjà annulée")
    op.status = "cancelled"
    op.completed_at = datetime.utcnow()
    db.session.commit()
    return op


def retry_failed(op: BatchOperation, user_id: Optional[int] = None) -> BatchOperation:
    failed_ids = [e["entity_id"] for e in op.errors or [] if e.get("entity_id") is not None]
    if not failed_ids:
        raise invalid("Aucune erreur à réessayer")
    return _queue(op.company_id, op.operation_type, failed_ids, dict(op.params or {}),
                  user_id or op.started_by)


def delete(op: BatchOperation):
    if op.status not in FINAL_STATUSES:
        raise conflict("Impossible de supprimer une opération en cours")
    db.session.delete(op)
    db.session.commit()


def stats(company_id: int) -> Dict[str, Any]:
    rows = (db.session.query(BatchOperation.status, db.func.count(BatchOperation.id))
            .filter(BatchOperation.company_id == company_id)
            .group_by(BatchOperation.status)
            .all())
    by_status = {s: 0 for s in BATCH_STATUSES}
    by_status.update({s: int(n) for s, n in rows})
    return {"total": sum(by_status.values()), "byStatus": by_status}


def row(op: BatchOperation) -> Dict[str, Any]:
    return {
        "id": op.id,
        "operation_type": op.operation_type,
        "entity_type": op.entity_type,
        "entity_ids": op.entity_ids or [],
        "params": op.params or {},
        "status": op.status,
        "total_count": op.total_count,
        "processed_count": op.processed_count,
        "success_count": op.success_count,
        "error_count": op.error_count,
        "progress_percentage": op.progress_percentage,
        "errors": op.errors or [],
        "result_data": op.result_data or {},
        "started_by": op.started_by,
        "started_at": iso(op.started_at),
        "completed_at": iso(op.completed_at),
        "estimated_completion_at": iso(op.estimated_completion_at),
        "created_at": iso(op.created_at),
    }
