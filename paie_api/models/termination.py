from datetime import datetime

from paie_api.extensions import db

DEPARTURE_TYPES = (
    "FIN_CDD", "DEMISSION_CDI", "DEMISSION_CDD", "LICENCIEMENT",
    "RUPTURE_CONVENTIONNELLE", "RETRAITE", "DECES",
)
LICENCIEMENT_TYPES = ("normal", "faute_grave", "faute_lourde", "inaptitude")
TERMINATION_STATUSES = ("pending", "notice_period", "documents_pending", "completed")
# document kind -> column prefix on Termination
DOCUMENT_KINDS = {
    "work_certificate": "work_certificate",
    "cnps_attestation": "cnps_attestation",
    "final_payslip": "final_payslip",
}


class Termination(db.Model):
    __tablename__ = "employee_terminations"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)

    termination_date = db.Column(db.Date, nullable=False)
    termination_reason = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text)

    departure_type = db.Column(db.Enum(*DEPARTURE_TYPES, name="departure_type_enum"),
                               nullable=False, default="LICENCIEMENT")
    contract_type_at_termination = db.Column(db.String(20))
    licenciement_type = db.Column(db.Enum(*LICENCIEMENT_TYPES, name="licenciement_type_enum"))

    # notice
    notice_period_days = db.Column(db.Integer, nullable=False, default=0)
    notice_period_months = db.Column(db.Numeric(3, 1))
    notice_payment_amount = db.Column(db.Numeric(15, 2), default=0)
    notice_period_status = db.Column(db.String(20), default="worked")

    # indemnities
    severance_amount = db.Column(db.Numeric(15, 2), default=0)
    severance_rate = db.Column(db.Integer)
    vacation_payout_amount = db.Column(db.Numeric(15, 2), default=0)
    gratification_amount = db.Column(db.Numeric(15, 2), default=0)
    cdd_end_indemnity = db.Column(db.Numeric(15, 2), default=0)
    funeral_expenses = db.Column(db.Numeric(15, 2), default=0)
    rupture_negotiated_amount = db.Column(db.Numeric(15, 2))
    average_salary_12m = db.Column(db.Numeric(15, 2))
    years_of_service = db.Column(db.Numeric(5, 2))
    beneficiaries = db.Column(db.JSON, default=list)
    stc_details = db.Column(db.JSON)

    # generated documents
    work_certificate_url = db.Column(db.Text)
    work_certificate_generated_at = db.Column(db.DateTime)
    cnps_attestation_url = db.Column(db.Text)
    cnps_attestation_generated_at = db.Column(db.DateTime)
    final_payslip_url = db.Column(db.Text)
    final_payslip_generated_at = db.Column(db.DateTime)

    status = db.Column(db.String(20), nullable=False, default="pending")
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
