from datetime import datetime

from paie_api.extensions import db

PLAN_STATUSES = ("draft", "submitted", "approved", "in_progress", "completed")
ITEM_PRIORITIES = ("low", "medium", "high", "critical")
ITEM_STATUSES = ("planned", "scheduled", "in_progress", "completed", "cancelled")


class TrainingPlan(db.Model):
    __tablename__ = "training_plans"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)      # "Plan de Formation 2025"
    year = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text)
    department = db.Column(db.String(120))                # null = company-wide

    total_budget = db.Column(db.Numeric(15, 2))
    currency = db.Column(db.String(3), default="XOF")
    allocated_budget = db.Column(db.Numeric(15, 2), default=0)
    spent_budget = db.Column(db.Numeric(15, 2), default=0)

    status = db.Column(db.String(20), nullable=False, default="draft")
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship("TrainingPlanItem", back_populates="plan",
                            cascade="all, delete-orphan", order_by="TrainingPlanItem.id")


class TrainingPlanItem(db.Model):
    __tablename__ = "training_plan_items"

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("training_plans.id", ondelete="CASCADE"), nullable=False, index=True)

    course_name = db.Column(db.String(255), nullable=False)
    target_participant_count = db.Column(db.Integer, nullable=False, default=1)
    target_employee_ids = db.Column(db.JSON, default=list)

    budget_allocated = db.Column(db.Numeric(15, 2), default=0)
    budget_spent = db.Column(db.Numeric(15, 2), default=0)
    planned_quarter = db.Column(db.Integer)   # 1..4
    planned_month = db.Column(db.Integer)     # 1..12
    priority = db.Column(db.String(10), nullable=False, default="medium")
    status = db.Column(db.String(20), nullable=False, default="planned")
    notes = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    plan = db.relationship("TrainingPlan", back_populates="items")
