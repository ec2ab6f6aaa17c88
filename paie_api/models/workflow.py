from datetime import datetime

from paie_api.extensions import db

WORKFLOW_STATUSES = ("draft", "active", "paused", "archived")


class WorkflowDefinition(db.Model):
    __tablename__ = "workflow_definitions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    trigger_type = db.Column(db.String(60), nullable=False)
    trigger_config = db.Column(db.JSON, nullable=False, default=dict)
    conditions = db.Column(db.JSON, nullable=False, default=list)
    actions = db.Column(db.JSON, nullable=False, default=list)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    version = db.Column(db.Integer, nullable=False, default=1)

    execution_count = db.Column(db.Integer, nullable=False, default=0)
    success_count = db.Column(db.Integer, nullable=False, default=0)
    error_count = db.Column(db.Integer, nullable=False, default=0)
    last_executed_at = db.Column(db.DateTime)

    is_template = db.Column(db.Boolean, default=False)
    template_category = db.Column(db.String(60))

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WorkflowExecution(db.Model):
    __tablename__ = "workflow_executions"

    id = db.Column(db.Integer, primary_key=True)
    workflow_id = db.Column(db.Integer, db.ForeignKey("workflow_definitions.id", ondelete="CASCADE"),
                            nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"))

    status = db.Column(db.String(20), nullable=False)   # running|success|failed|skipped
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_at = db.Column(db.DateTime)
    duration_ms = db.Column(db.Integer)
    actions_executed = db.Column(db.JSON, nullable=False, default=list)
    error_message = db.Column(db.Text)
    execution_log = db.Column(db.JSON, nullable=False, default=list)
    workflow_snapshot = db.Column(db.JSON, nullable=False, default=dict)
    trigger_data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Alert(db.Model):
    __tablename__ = "alerts"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(60), nullable=False)
    severity = db.Column(db.String(20), nullable=False, default="info")
    message = db.Column(db.Text, nullable=False)
    assignee_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"))
    action_url = db.Column(db.Text)
    due_date = db.Column(db.DateTime)
    status = db.Column(db.String(20), nullable=False, default="active")
    metadata_json = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    channel = db.Column(db.String(20), nullable=False, default="in_app")
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text)
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class PayrollEvent(db.Model):
    """Variable-pay event raised by automation, picked up by the next run."""
    __tablename__ = "payroll_events"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"))
    event_type = db.Column(db.String(60), nullable=False)
    amount = db.Column(db.Numeric(15, 2))
    event_date = db.Column(db.Date)
    metadata_json = db.Column("metadata", db.JSON, nullable=False, default=dict)
    processed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
