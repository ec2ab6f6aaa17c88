from flask import Blueprint, current_app, request

from paie_api.common.auth import requires_perms
from paie_api.common.errors import invalid
from paie_api.common.http import ok
from paie_api.common.paging import parse_date
from paie_api.services import holidays

bp = Blueprint("public_holidays", __name__, url_prefix="/api/v1/public-holidays")


def _country():
    return request.args.get("country") or current_app.config.get("PAIE_COUNTRY_CODE", "CI")


@bp.get("")
@requires_perms("holidays.read")
def list_holidays():
    rows = holidays.list_holidays(_country(), request.args.get("year", type=int))
    return ok([holidays.row(h) for h in rows])


@bp.get("/check")
@requires_perms("holidays.read")
def check():
    on = parse_date(request.args.get("date"))
    if on is None:
        raise invalid("date est requis (YYYY-MM-DD)")
    return ok({"date": on.isoformat(), "isPublicHoliday": holidays.is_public_holiday(_country(), on)})


@bp.post("")
@requires_perms("holidays.write")
def create():
    data = request.get_json(silent=True) or {}
    data.setdefault("country_code", current_app.config.get("PAIE_COUNTRY_CODE", "CI"))
    return ok(holidays.row(holidays.create_holiday(data)), status=201)


@bp.put("/<int:hid>")
@requires_perms("holidays.write")
def update(hid: int):
    h = holidays.update_holiday(holidays.get_holiday(hid), request.get_json(silent=True) or {})
    return ok(holidays.row(h))


@bp.delete("/<int:hid>")
@requires_perms("holidays.write")
def delete(hid: int):
    holidays.delete_holiday(holidays.get_holiday(hid))
    return ok({"deleted": hid})
