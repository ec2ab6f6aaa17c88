from datetime import datetime
from paie_api.extensions import db

RUN_STATUSES = ("draft", "calculating", "calculated", "approved", "paid", "failed")


class PayrollRun(db.Model):
    __tablename__ = "payroll_runs"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    run_number = db.Column(db.String(40), nullable=False)
    name = db.Column(db.String(255))
    description = db.Column(db.Text)

    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    pay_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(30), default="bank_transfer", nullable=False)
    payment_frequency = db.Column(db.String(10), default="MONTHLY", nullable=False)
    status = db.Column(db.Enum(*RUN_STATUSES, name="payroll_run_status_enum"), default="draft", nullable=False)

    total_gross = db.Column(db.Numeric(15, 2))
    total_net = db.Column(db.Numeric(15, 2))
    total_tax = db.Column(db.Numeric(15, 2))
    total_employee_contributions = db.Column(db.Numeric(15, 2))
    total_employer_contributions = db.Column(db.Numeric(15, 2))
    employee_count = db.Column(db.Integer)
    error_message = db.Column(db.Text)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    calculated_at = db.Column(db.DateTime)
    approved_at = db.Column(db.DateTime)
    paid_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("company_id", "run_number", name="uq_payroll_run_number"),
        db.Index("ix_payroll_runs_company_period", "company_id", "period_start", "period_end"),
        db.Index("ix_payroll_runs_status", "status"),
    )

    items = db.relationship("PayrollRunItem", back_populates="run",
                            cascade="all, delete-orphan", lazy="dynamic")


class PayrollRunItem(db.Model):
    __tablename__ = "payroll_run_items"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(db.Integer, db.ForeignKey("payroll_runs.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    contract_type = db.Column(db.String(10))

    days_worked = db.Column(db.Numeric(6, 2), default=0)
    hours_worked = db.Column(db.Numeric(7, 2), default=0)

    base_salary = db.Column(db.Numeric(15, 2), default=0)
    gross = db.Column(db.Numeric(15, 2), default=0)
    cnps_employee = db.Column(db.Numeric(15, 2), default=0)
    cnps_employer = db.Column(db.Numeric(15, 2), default=0)
    cmu_employee = db.Column(db.Numeric(15, 2), default=0)
    cmu_employer = db.Column(db.Numeric(15, 2), default=0)
    its = db.Column(db.Numeric(15, 2), default=0)
    other_employer_taxes = db.Column(db.Numeric(15, 2), default=0)
    total_deductions = db.Column(db.Numeric(15, 2), default=0)
    net = db.Column(db.Numeric(15, 2), default=0)
    employer_cost = db.Column(db.Numeric(15, 2), default=0)

    components = db.Column(db.JSON)   # [{code, label, amount}]
    calc_meta = db.Column(db.JSON)    # inputs used for the calculation

    __table_args__ = (
        db.UniqueConstraint("run_id", "employee_id", name="uq_run_item_employee"),
    )

    run = db.relationship("PayrollRun", back_populates="items")
    employee = db.relationship("Employee", lazy="joined")
