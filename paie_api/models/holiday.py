from datetime import datetime

from paie_api.extensions import db


class PublicHoliday(db.Model):
    __tablename__ = "public_holidays"

    id = db.Column(db.Integer, primary_key=True)
    country_code = db.Column(db.String(2), nullable=False, index=True)
    holiday_date = db.Column(db.Date, nullable=False, index=True)
    name = db.Column(db.JSON, nullable=False)          # {"fr": ..., "en": ...}
    description = db.Column(db.JSON)
    is_recurring = db.Column(db.Boolean, default=True)
    is_paid = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("country_code", "holiday_date", name="uq_country_holiday_date"),
    )
