from datetime import datetime

from paie_api.extensions import db

BATCH_TYPES = ("salary_update", "document_generation", "contract_renewal")
BATCH_STATUSES = ("pending", "running", "completed", "failed", "cancelled")


class BatchOperation(db.Model):
    __tablename__ = "batch_operations"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    operation_type = db.Column(db.String(40), nullable=False)
    entity_type = db.Column(db.String(40), nullable=False, default="employee")
    entity_ids = db.Column(db.JSON, nullable=False, default=list)
    params = db.Column(db.JSON, nullable=False, default=dict)

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    total_count = db.Column(db.Integer, nullable=False)
    processed_count = db.Column(db.Integer, nullable=False, default=0)
    success_count = db.Column(db.Integer, nullable=False, default=0)
    error_count = db.Column(db.Integer, nullable=False, default=0)
    errors = db.Column(db.JSON, nullable=False, default=list)
    result_data = db.Column(db.JSON, nullable=False, default=dict)

    started_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)
    estimated_completion_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def progress_percentage(self) -> int:
        if not self.total_count:
            return 0
        return int(round((self.processed_count or 0) * 100 / self.total_count))
