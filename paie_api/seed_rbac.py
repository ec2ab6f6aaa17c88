"""Default roles and permission catalogue, seeded idempotently."""
from paie_api.common.auth import has_any_perm
from paie_api.extensions import db
from paie_api.models.security import Permission, Role, RolePermission, UserRole

ROLES = {
    "admin": "Administrateur",
    "hr": "Ressources humaines",
    "manager": "Manager",
    "employee": "Employé",
}

PERMISSIONS = {
    "employees.read": "Consulter les employés, contrats et salaires",
    "employees.write": "Gérer les employés et les contrats",
    "payroll.salaries.write": "Modifier les salaires",
    "payroll.runs.read": "Consulter les paies",
    "payroll.runs.write": "Préparer et calculer les paies",
    "payroll.runs.approve": "Approuver et payer les paies",
    "payroll.export": "Exporter les déclarations CNPS",
    "terminations.read": "Consulter les départs",
    "terminations.write": "Enregistrer les départs (STC)",
    "documents.read": "Télécharger les documents",
    "documents.write": "Générer les documents",
    "workflows.read": "Consulter les automatisations",
    "workflows.write": "Gérer les automatisations",
    "workflows.execute": "Exécuter les automatisations",
    "batch.read": "Consulter les opérations groupées",
    "batch.write": "Lancer les opérations groupées",
    "objectives.read": "Consulter les objectifs",
    "objectives.write": "Gérer les objectifs",
    "objectives.approve": "Approuver les objectifs",
    "training.read": "Consulter les plans de formation",
    "training.write": "Gérer les plans de formation",
    "training.approve": "Approuver les plans de formation",
    "holidays.read": "Consulter les jours fériés",
    "holidays.write": "Gérer les jours fériés",
}

# grants may use wildcards; they are expanded against PERMISSIONS.
# Holidays are shared by every company, so only admin writes them.
ROLE_GRANTS = {
    "admin": ["*"],
    "hr": ["employees.*", "payroll.*", "terminations.*", "documents.*", "workflows.*",
           "batch.*", "objectives.*", "training.*", "holidays.read"],
    "manager": ["employees.read", "payroll.runs.read", "terminations.read", "documents.read",
                "objectives.*", "training.read", "training.write", "holidays.read"],
    "employee": ["objectives.read", "training.read", "holidays.read"],
}


def _upsert(model, code, name):
    row = model.query.filter_by(code=code).first()
    if row is None:
        row = model(code=code, name=name)
        db.session.add(row)
        db.session.flush()
    return row


def assign_role(user, code: str) -> bool:
    """Attach role `code` to `user`; False when it was already there."""
    role = Role.query.filter_by(code=code).first() or _upsert(Role, code, ROLES.get(code, code.title()))
    if UserRole.query.filter_by(user_id=user.id, role_id=role.id).first():
        return False
    db.session.add(UserRole(user_id=user.id, role_id=role.id))
    return True


def run():
    roles = {code: _upsert(Role, code, name) for code, name in ROLES.items()}
    perms = {code: _upsert(Permission, code, name) for code, name in PERMISSIONS.items()}

    mapped = revoked = 0
    for role_code, grants in ROLE_GRANTS.items():
        role = roles[role_code]
        have = {rp.permission_id for rp in role.permissions}
        for rp in list(role.permissions):
            if not any(has_any_perm({g}, [rp.permission.code]) for g in grants):
                role.permissions.remove(rp)
                revoked += 1
        for code, perm in perms.items():
            if perm.id in have or not any(has_any_perm({g}, [code]) for g in grants):
                continue
            db.session.add(RolePermission(role_id=role.id, permission_id=perm.id))
            mapped += 1
    db.session.commit()
    return {"ok": True, "roles": len(roles), "perms": len(perms), "mapped": mapped, "revoked": revoked}
