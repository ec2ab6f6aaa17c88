from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.http import ok
from paie_api.common.paging import limit_offset, parse_date
from paie_api.services import documents, terminations
from paie_api.services.stc_calculator import jsonable

bp = Blueprint("terminations", __name__, url_prefix="/api/v1/terminations")


@bp.get("")
@requires_perms("terminations.read")
def list_terminations():
    limit, offset = limit_offset()
    rows, total = terminations.list_terminations(
        current_company_id(), (request.args.get("status") or "").strip() or None, limit, offset)
    return ok([terminations.row(t) for t in rows], total=total, limit=limit, offset=offset)


@bp.post("/preview")
@requires_perms("terminations.read")
def preview():
    return ok(terminations.preview(current_company_id(), request.get_json(silent=True) or {}))


@bp.post("")
@requires_perms("terminations.write")
def create():
    t, stc = terminations.create_termination(current_company_id(), request.get_json(silent=True) or {},
                                             current_user_id())
    return ok(dict(terminations.row(t), stc=jsonable(stc)), status=201)


@bp.get("/<int:tid>")
@requires_perms("terminations.read")
def get_termination(tid: int):
    return ok(terminations.row(terminations.get_termination(current_company_id(), tid)))


@bp.patch("/<int:tid>")
@requires_perms("terminations.write")
def update(tid: int):
    t = terminations.update_termination(current_company_id(), tid, request.get_json(silent=True) or {})
    return ok(terminations.row(t))


# ---------- documents ----------

@bp.post("/<int:tid>/documents/work-certificate")
@requires_perms("documents.write")
def work_certificate(tid: int):
    data = request.get_json(silent=True) or {}
    return ok(documents.generate_work_certificate(current_company_id(), tid, data.get("issued_by"),
                                                  current_user_id()), status=201)


@bp.post("/<int:tid>/documents/cnps-attestation")
@requires_perms("documents.write")
def cnps_attestation(tid: int):
    data = request.get_json(silent=True) or {}
    return ok(documents.generate_cnps_attestation(current_company_id(), tid, data.get("issued_by"),
                                                  current_user_id()), status=201)


@bp.post("/<int:tid>/documents/final-payslip")
@requires_perms("documents.write")
def final_payslip(tid: int):
    data = request.get_json(silent=True) or {}
    return ok(documents.generate_final_payslip(current_company_id(), tid, parse_date(data.get("pay_date")),
                                               current_user_id()), status=201)
