from datetime import datetime, date
from typing import Optional

from paie_api.extensions import db

EMPLOYEE_STATUSES = ("active", "terminated", "suspended", "on_leave")
PAYMENT_FREQUENCIES = ("MONTHLY", "WEEKLY", "BIWEEKLY", "DAILY")
HOURS_REGIMES = ("40h", "44h", "48h", "52h", "56h")


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False)
    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    code  = db.Column(db.String(32), nullable=False)    # matricule, unique per company
    email = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=False)
    birth_date = db.Column(db.Date, nullable=True)
    cnps_number = db.Column(db.String(30), nullable=True)
    job_title = db.Column(db.String(120), nullable=True)
    department = db.Column(db.String(120), nullable=True)
    is_cadre = db.Column(db.Boolean, default=False, nullable=False)

    hire_date = db.Column(db.Date, nullable=False)
    termination_date = db.Column(db.Date, nullable=True)

    fiscal_parts = db.Column(db.Numeric(3, 1), default=1.0, nullable=False)
    has_family = db.Column(db.Boolean, default=False, nullable=False)
    weekly_hours_regime = db.Column(db.String(4), default="40h", nullable=False)
    payment_frequency = db.Column(db.String(10), default="MONTHLY", nullable=False)

    status = db.Column(db.String(16), default="active", nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_employee_company_code"),
        db.Index("ix_emp_company_status", "company_id", "status"),
    )

    company = db.relationship("Company", lazy="joined")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def active_contract(self) -> Optional["EmploymentContract"]:
        return (EmploymentContract.query
                .filter_by(employee_id=self.id, is_active=True)
                .order_by(EmploymentContract.start_date.desc())
                .first())

    def active_salary(self, on_date: Optional[date] = None) -> Optional["EmployeeSalary"]:
        on_date = on_date or date.today()
        return (EmployeeSalary.query
                .filter(EmployeeSalary.employee_id == self.id)
                .filter(EmployeeSalary.effective_from <= on_date)
                .filter(db.or_(EmployeeSalary.effective_to.is_(None),
                               EmployeeSalary.effective_to >= on_date))
                .order_by(EmployeeSalary.effective_from.desc())
                .first())


class EmploymentContract(db.Model):
    __tablename__ = "employment_contracts"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    contract_type = db.Column(db.Enum("CDI", "CDD", "CDDTI", "INTERIM", "STAGE", name="contract_type_enum"),
                              nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    cdd_reason = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    renewal_count = db.Column(db.Integer, default=0, nullable=False)
    replaces_contract_id = db.Column(db.Integer, db.ForeignKey("employment_contracts.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    employee = db.relationship("Employee", backref=db.backref("contracts", lazy="dynamic"))


class EmployeeSalary(db.Model):
    __tablename__ = "employee_salaries"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    base_salary = db.Column(db.Numeric(15, 2), nullable=False)
    # salaire catégoriel: basis for hourly rates and gratification
    categorical_salary = db.Column(db.Numeric(15, 2), nullable=True)
    housing_allowance = db.Column(db.Numeric(15, 2), default=0)
    transport_allowance = db.Column(db.Numeric(15, 2), default=0)
    meal_allowance = db.Column(db.Numeric(15, 2), default=0)
    daily_transport_rate = db.Column(db.Numeric(15, 2), default=0)

    effective_from = db.Column(db.Date, nullable=False)
    effective_to = db.Column(db.Date, nullable=True)
    change_reason = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    employee = db.relationship("Employee", backref=db.backref("salaries", lazy="dynamic"))
