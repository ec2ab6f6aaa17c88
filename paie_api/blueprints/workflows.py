from flask import Blueprint, request

from paie_api.common.auth import current_company_id, current_user_id, requires_perms
from paie_api.common.errors import invalid
from paie_api.common.http import ok
from paie_api.common.paging import limit_offset
from paie_api.services import workflow_engine as wfe

bp = Blueprint("workflows", __name__, url_prefix="/api/v1/workflows")


def _get(wid: int):
    return wfe.get_workflow(current_company_id(), wid)


@bp.get("")
@requires_perms("workflows.read")
def list_workflows():
    q = wfe.list_workflows(current_company_id(),
                           (request.args.get("status") or "").strip() or None,
                           (request.args.get("category") or "").strip() or None)
    return ok([wfe.workflow_row(w) for w in q.all()])


@bp.post("")
@requires_perms("workflows.write")
def create():
    wf = wfe.create_workflow(current_company_id(), request.get_json(silent=True) or {}, current_user_id())
    return ok(wfe.workflow_row(wf), status=201)


@bp.get("/<int:wid>")
@requires_perms("workflows.read")
def get_workflow(wid: int):
    return ok(wfe.workflow_row(_get(wid)))


@bp.put("/<int:wid>")
@requires_perms("workflows.write")
def update(wid: int):
    return ok(wfe.workflow_row(wfe.update_workflow(_get(wid), request.get_json(silent=True) or {})))


@bp.delete("/<int:wid>")
@requires_perms("workflows.write")
def delete(wid: int):
    wfe.delete_workflow(_get(wid))
    return ok({"deleted": wid})


@bp.post("/<int:wid>/<any(activate, pause, archive):action>")
@requires_perms("workflows.write")
def change_status(wid: int, action: str):
    return ok(wfe.workflow_row(wfe.change_status(_get(wid), action)))


@bp.post("/<int:wid>/execute")
@requires_perms("workflows.execute")
def execute(wid: int):
    data = request.get_json(silent=True) or {}
    ex = wfe.execute_workflow(_get(wid), data.get("trigger_data") or {},
                              data.get("employee_id"), current_user_id())
    return ok(wfe.execution_row(ex))


@bp.post("/<int:wid>/test")
@requires_perms("workflows.read")
def dry_run(wid: int):
    data = request.get_json(silent=True) or {}
    return ok(wfe.test_workflow(_get(wid), data.get("test_data") or {}))


@bp.post("/trigger")
@requires_perms("workflows.execute")
def trigger():
    data = request.get_json(silent=True) or {}
    event_type = (data.get("event_type") or "").strip()
    if not event_type:
        raise invalid("event_type est requis")
    rows = wfe.trigger_event(current_company_id(), event_type, data.get("data") or {}, current_user_id())
    return ok([wfe.execution_row(ex) for ex in rows], count=len(rows))


@bp.get("/<int:wid>/executions")
@requires_perms("workflows.read")
def executions(wid: int):
    limit, offset = limit_offset()
    rows, total = wfe.list_executions(_get(wid), limit, offset)
    return ok([wfe.execution_row(ex) for ex in rows], total=total, limit=limit, offset=offset)


@bp.get("/<int:wid>/stats")
@requires_perms("workflows.read")
def stats(wid: int):
    return ok(wfe.get_stats(_get(wid)))
