from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.http import ok
from paie_api.services import training

bp = Blueprint("training_plans", __name__, url_prefix="/api/v1/training-plans")


def _get(pid: int):
    return training.get_plan(current_company_id(), pid)


@bp.get("")
@requires_perms("training.read")
def list_plans():
    q = training.list_plans(current_company_id(), request.args.get("year", type=int),
                            (request.args.get("status") or "").strip() or None)
    return ok([training.plan_row(p) for p in q.all()])


@bp.post("")
@requires_perms("training.write")
def create():
    p = training.create_plan(current_company_id(), request.get_json(silent=True) or {}, current_user_id())
    return ok(training.plan_row(p, with_items=True), status=201)


@bp.get("/<int:pid>")
@requires_perms("training.read")
def get_plan(pid: int):
    return ok(training.plan_row(_get(pid), with_items=True))


@bp.put("/<int:pid>")
@requires_perms("training.write")
def update(pid: int):
    p = training.update_plan(_get(pid), request.get_json(silent=True) or {})
    return ok(training.plan_row(p, with_items=True))


@bp.delete("/<int:pid>")
@requires_perms("training.write")
def delete(pid: int):
    training.delete_plan(_get(pid))
    return ok({"deleted": pid})


@bp.post("/<int:pid>/items")
@requires_perms("training.write")
def add_item(pid: int):
    p = _get(pid)
    item = training.add_item(p, request.get_json(silent=True) or {})
    return ok(training.item_row(item), status=201, warnings=training.budget_warnings(p))


@bp.put("/<int:pid>/items/<int:item_id>")
@requires_perms("training.write")
def update_item(pid: int, item_id: int):
    p = _get(pid)
    item = training.update_item(p, item_id, request.get_json(silent=True) or {})
    return ok(training.item_row(item), warnings=training.budget_warnings(p))


@bp.delete("/<int:pid>/items/<int:item_id>")
@requires_perms("training.write")
def remove_item(pid: int, item_id: int):
    p = _get(pid)
    training.remove_item(p, item_id)
    return ok(training.plan_row(p, with_items=True))


@bp.post("/<int:pid>/submit")
@requires_perms("training.write")
def submit(pid: int):
    return ok(training.plan_row(training.submit(_get(pid)), with_items=True))


@bp.post("/<int:pid>/approve")
@requires_perms("training.approve")
def approve(pid: int):
    return ok(training.plan_row(training.approve(_get(pid), current_user_id()), with_items=True))


@bp.get("/<int:pid>/budget")
@requires_perms("training.read")
def budget(pid: int):
    return ok(training.budget_summary(_get(pid)))
