from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.http import ok
from paie_api.common.paging import limit_offset
from paie_api.services import batch_processor as bp_svc

bp = Blueprint("batch_operations", __name__, url_prefix="/api/v1/batch-operations")


def _get(op_id: int):
    return bp_svc.get_operation(current_company_id(), op_id)


@bp.get("")
@requires_perms("batch.read")
def list_operations():
    limit, offset = limit_offset()
    return ok(bp_svc.list_operations(current_company_id(),
                                     (request.args.get("status") or "").strip() or None,
                                     (request.args.get("operation_type") or "").strip() or None,
                                     limit, offset))


@bp.get("/stats")
@requires_perms("batch.read")
def stats():
    return ok(bp_svc.stats(current_company_id()))


@bp.post("/salary-update")
@requires_perms("batch.write")
def salary_update():
    d = request.get_json(silent=True) or {}
    op = bp_svc.update_salaries(current_company_id(), d.get("employee_ids"), d.get("update_type"),
                                d.get("value"), d.get("effective_date"), d.get("reason"),
                                current_user_id())
    return ok(bp_svc.row(op), status=201)


@bp.post("/generate-documents")
@requires_perms("batch.write")
def generate_documents():
    d = request.get_json(silent=True) or {}
    op = bp_svc.generate_documents(current_company_id(), d.get("employee_ids"), d.get("document_type"),
                                   current_user_id())
    return ok(bp_svc.row(op), status=201)


@bp.post("/contract-renewal")
@requires_perms("batch.write")
def contract_renewal():
    d = request.get_json(silent=True) or {}
    op = bp_svc.renew_contracts(current_company_id(), d.get("employee_ids"), d.get("new_end_date"),
                                d.get("duration_months"), current_user_id())
    return ok(bp_svc.row(op), status=201)


@bp.get("/<int:op_id>")
@requires_perms("batch.read")
def get_status(op_id: int):
    return ok(bp_svc.row(_get(op_id)))


@bp.post("/<int:op_id>/process")
@requires_perms("batch.write")
def process(op_id: int):
    return ok(bp_svc.row(bp_svc.process(_get(op_id))))


@bp.post("/<int:op_id>/cancel")
@requires_perms("batch.write")
def cancel(op_id: int):
    return ok(bp_svc.row(bp_svc.cancel(_get(op_id))))


@bp.post("/<int:op_id>/retry")
@requires_perms("batch.write")
def retry(op_id: int):
    return ok(bp_svc.row(bp_svc.retry_failed(_get(op_id), current_user_id())), status=201)


@bp.delete("/<int:op_id>")
@requires_perms("batch.write")
def delete(op_id: int):
    bp_svc.delete(_get(op_id))
    return ok({"deleted": op_id})
