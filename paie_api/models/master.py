from datetime import datetime

from paie_api.extensions import db

SECTORS = ("services", "commerce", "industry", "agriculture", "construction")


class Company(db.Model):
    """Tenant. Every business row hangs off a company."""
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    country_code = db.Column(db.String(2), nullable=False, default="CI")
    # work-accident rate depends on the sector (construction pays the upper rate)
    sector = db.Column(db.String(30), nullable=False, default="services")
    cnps_number = db.Column(db.String(30))
    address = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
