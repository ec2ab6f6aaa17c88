from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from paie_api.common.http import ok
from paie_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@bp.get("")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("health check: database unreachable: %s", e)
        return ok({"status": "degraded", "database": "down"}, status=503)
    return ok({"status": "ok", "database": "up",
               "country": current_app.config["PAIE_COUNTRY_CODE"]})
