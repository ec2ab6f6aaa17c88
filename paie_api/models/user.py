from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from paie_api.extensions import db


class User(db.Model):
    """Login account. Payroll data lives on Employee, linked by Employee.user_id."""
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="SET NULL"), index=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), default="active")   # active|disabled
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    roles = db.relationship("Role", secondary="user_roles", lazy="joined", viewonly=True)

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)

    def role_codes(self):
        return sorted(r.code for r in self.roles)
