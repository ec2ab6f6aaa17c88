from datetime import datetime

from paie_api.extensions import db

OBJECTIVE_LEVELS = ("company", "team", "individual")
OBJECTIVE_TYPES = ("quantitative", "qualitative", "behavioral", "project")
OBJECTIVE_STATUSES = ("draft", "proposed", "approved", "in_progress", "completed", "cancelled")


class Objective(db.Model):
    __tablename__ = "objectives"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=True)
    department = db.Column(db.String(120))
    parent_objective_id = db.Column(db.Integer, db.ForeignKey("objectives.id", ondelete="SET NULL"))

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    objective_type = db.Column(db.String(20), nullable=False, default="qualitative")
    objective_level = db.Column(db.String(20), nullable=False, default="individual")

    target_value = db.Column(db.Numeric(15, 2))
    target_unit = db.Column(db.String(30))
    current_value = db.Column(db.Numeric(15, 2))
    weight = db.Column(db.Numeric(5, 2), default=1)

    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    due_date = db.Column(db.Date)
    achievement_score = db.Column(db.Numeric(5, 2))
    achievement_notes = db.Column(db.Text)

    proposed_at = db.Column(db.DateTime)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
