from datetime import datetime

from flask import Blueprint, request
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    get_jwt, get_jwt_identity, jwt_required,
)

from paie_api.common.auth import collect_perms_from_db, current_company_id, requires_roles
from paie_api.common.errors import invalid, not_found
from paie_api.common.http import ok, fail
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.security import Role, UserRole
from paie_api.models.user import User

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")


def _company_id(u: User):
    if u.company_id:
        return u.company_id
    emp = Employee.query.filter_by(user_id=u.id).first()
    return emp.company_id if emp else None


def _claims(u: User):
    return {
        "roles": u.role_codes(),
        "perms": sorted(collect_perms_from_db(u.id)),
        "email": u.email,
        "name": u.full_name,
        "company_id": _company_id(u),
    }


def _user_row(u: User):
    return {"id": u.id, "email": u.email, "full_name": u.full_name,
            "roles": u.role_codes(), "company_id": _company_id(u)}


def _token_user():
    uid = get_jwt_identity()
    return db.session.get(User, int(uid)) if uid else None


@bp.post("/login")
def login():
    data = request.get_json(silent=True, force=True)
    data = data if isinstance(data, dict) else {}
    u = User.query.filter_by(email=(data.get("email") or "").strip().lower()).first()
    if u is None or u.status != "active" or not u.check_password(data.get("password") or ""):
        return fail("Identifiants invalides", status=401, code="BAD_CREDENTIALS")

    u.last_login_at = datetime.utcnow()
    db.session.commit()
    claims = _claims(u)
    return ok({
        "access": create_access_token(identity=str(u.id), additional_claims=claims),
        "refresh": create_refresh_token(identity=str(u.id), additional_claims={"roles": claims["roles"]}),
        "user": _user_row(u),
    })


@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    u = _token_user()
    if u is None:
        return fail("Utilisateur introuvable", status=404, code="NOT_FOUND")
    return ok({"access": create_access_token(identity=str(u.id), additional_claims=_claims(u))})


@bp.get("/me")
@jwt_required()
def me():
    u = _token_user()
    if u is None:
        return fail("Utilisateur introuvable", status=404, code="NOT_FOUND")
    return ok(dict(_user_row(u), perms=sorted(collect_perms_from_db(u.id))))


# ---------- role administration ----------

@bp.get("/roles")
@requires_roles("hr")
def list_roles():
    rows = Role.query.order_by(Role.code).all()
    return ok([{"code": r.code, "name": r.name,
                "permissions": r.permission_codes()} for r in rows])


@bp.post("/users/<int:uid>/roles")
@requires_roles("hr")
def assign_role(uid: int):
    """Attach a role to a user of the caller's company; admin can only be granted by admin."""
    u = User.query.filter_by(id=uid, company_id=current_company_id()).first()
    if u is None:
        raise not_found("Utilisateur introuvable")
    code = ((request.get_json(silent=True) or {}).get("role") or "").strip().lower()
    role = Role.query.filter_by(code=code).first()
    if role is None:
        raise invalid(f"Rôle inconnu : {code or '-'}")
    if code == "admin" and "admin" not in (get_jwt().get("roles") or []):
        return fail("Seul un administrateur peut attribuer ce rôle", status=403, code="FORBIDDEN")
    if code not in u.role_codes():
        db.session.add(UserRole(user_id=u.id, role_id=role.id))
        db.session.commit()
        db.session.expire(u, ["roles"])
    return ok(_user_row(u))
