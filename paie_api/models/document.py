from datetime import datetime

from paie_api.extensions import db


class GeneratedDocument(db.Model):
    """Binary output of the document generator (PDF), served back by id."""
    __tablename__ = "generated_documents"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=True, index=True)
    termination_id = db.Column(db.Integer, db.ForeignKey("employee_terminations.id", ondelete="SET NULL"), nullable=True)

    kind = db.Column(db.String(40), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    content_type = db.Column(db.String(100), nullable=False, default="application/pdf")
    content = db.Column(db.LargeBinary, nullable=False)
    size_bytes = db.Column(db.Integer)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
