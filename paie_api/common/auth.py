from __future__ import annotations

from functools import wraps
from typing import Iterable, Optional, Set, Tuple

from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required

from paie_api.common.errors import APIError
from paie_api.common.http import fail
from paie_api.extensions import db
from paie_api.models.employee import Employee
from paie_api.models.security import Permission, Role, RolePermission, UserRole
from paie_api.models.user import User

ADMIN = "admin"


def _wildcard_match(granted: str, required: str) -> bool:
    """'payroll.*' grants 'payroll.runs.write'; '*' grants everything."""
    if granted in (required, "*"):
        return True
    return granted.endswith(".*") and required.startswith(granted[:-1])


def has_any_perm(granted: Set[str], required: Iterable[str]) -> bool:
    required = list(required)
    if not required:
        return True
    return any(_wildcard_match(g, r) for r in required for g in granted)


def collect_roles_from_db(user_id: int) -> Set[str]:
    rows = (db.session.query(Role.code)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user_id)
            .distinct())
    return {code for (code,) in rows}


def collect_perms_from_db(user_id: int) -> Set[str]:
    rows = (db.session.query(Permission.code)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .filter(UserRole.user_id == user_id)
            .distinct())
    return {code for (code,) in rows}


def current_user_id() -> Optional[int]:
    try:
        return int(get_jwt_identity())
    except (TypeError, ValueError):
        return None


def _current_user() -> Optional[User]:
    uid = current_user_id()
    return db.session.get(User, uid) if uid is not None else None


def current_company_id() -> int:
    """Tenant of the caller: token claim, then the user row, then the linked employee."""
    cid = (get_jwt() or {}).get("company_id")
    if cid:
        return int(cid)
    user = _current_user()
    if user is not None:
        if user.company_id:
            return user.company_id
        emp = Employee.query.filter_by(user_id=user.id).first()
        if emp is not None:
            return emp.company_id
    raise APIError("NO_TENANT", "Aucune entreprise associée à cet utilisateur", 403)


def _grants(from_db: bool = False) -> Optional[Tuple[Set[str], Set[str]]]:
    """(roles, perms) of the caller; None when the token's user no longer exists."""
    if not from_db:
        claims = get_jwt() or {}
        return set(claims.get("roles") or []), set(claims.get("perms") or [])
    user = _current_user()
    if user is None:
        return None
    return collect_roles_from_db(user.id), collect_perms_from_db(user.id)


def _guard(allowed):
    """Wrap a view with jwt_required and `allowed(roles, perms)`.

    Claims are tried first; a refusal re-reads the grants from the DB so a
    token issued before a role change still sees the new rights.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            roles, perms = _grants()
            if ADMIN in roles or allowed(roles, perms):
                return fn(*args, **kwargs)
            live = _grants(from_db=True)
            if live is None:
                return fail("Authentification requise", status=401, code="AUTH_REQUIRED")
            roles, perms = live
            if ADMIN in roles or allowed(roles, perms):
                return fn(*args, **kwargs)
            return fail("Accès refusé", status=403, code="FORBIDDEN")
        return inner
    return outer


def requires_roles(*codes: str):
    """At least one of the role codes; admin always passes."""
    return _guard(lambda roles, _perms: bool(roles.intersection(codes)))


def requires_perms(*perm_codes: str):
    """At least one of the permission codes (wildcards allowed); admin always passes."""
    return _guard(lambda _roles, perms: has_any_perm(perms, perm_codes))
