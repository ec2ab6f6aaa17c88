from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.errors import invalid
from paie_api.common.http import ok
from paie_api.common.paging import page_limit
from paie_api.services import objectives

bp = Blueprint("objectives", __name__, url_prefix="/api/v1/objectives")


def _get(oid: int):
    return objectives.get_objective(current_company_id(), oid)


@bp.get("")
@requires_perms("objectives.read")
def list_objectives():
    q = objectives.list_objectives(current_company_id(),
                                   (request.args.get("level") or "").strip() or None,
                                   (request.args.get("status") or "").strip() or None,
                                   request.args.get("employee_id", type=int))
    page, size = page_limit()
    total = q.count()
    rows = q.offset((page - 1) * size).limit(size).all()
    return ok([objectives.row(o) for o in rows], page=page, size=size, total=total)


@bp.post("")
@requires_perms("objectives.write")
def create():
    o = objectives.create_objective(current_company_id(), request.get_json(silent=True) or {},
                                    current_user_id())
    return ok(objectives.row(o), status=201)


@bp.get("/<int:oid>")
@requires_perms("objectives.read")
def get_objective(oid: int):
    return ok(objectives.row(_get(oid)))


@bp.put("/<int:oid>")
@requires_perms("objectives.write")
def update(oid: int):
    o = objectives.update_objective(current_company_id(), _get(oid), request.get_json(silent=True) or {})
    return ok(objectives.row(o))


@bp.delete("/<int:oid>")
@requires_perms("objectives.write")
def delete(oid: int):
    objectives.delete_objective(_get(oid))
    return ok({"deleted": oid})


@bp.post("/<int:oid>/<any(submit, start, complete, cancel):action>")
@requires_perms("objectives.write")
def transition(oid: int, action: str):
    o = objectives.transition(_get(oid), action, current_user_id(), request.get_json(silent=True) or {})
    return ok(objectives.row(o))


@bp.post("/<int:oid>/<any(approve, reject):action>")
@requires_perms("objectives.approve")
def review(oid: int, action: str):
    return ok(objectives.row(objectives.transition(_get(oid), action, current_user_id())))


@bp.patch("/<int:oid>/progress")
@requires_perms("objectives.write")
def progress(oid: int):
    data = request.get_json(silent=True) or {}
    if "current_value" not in data:
        raise invalid("current_value est requis")
    return ok(objectives.row(objectives.update_progress(_get(oid), data["current_value"])))
