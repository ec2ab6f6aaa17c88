"""Public holidays per country, with recurring (fixed-date) holidays."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from paie_api.common.errors import conflict, invalid, not_found
from paie_api.common.paging import iso, parse_date
from paie_api.extensions import db
from paie_api.models.holiday import PublicHoliday

# Fixed-date Ivorian holidays; the Muslim and Easter-based ones move every year
# and are entered through the API.
CI_FIXED_HOLIDAYS = [
    ((1, 1), {"fr": "Jour de l'An", "en": "New Year's Day"}),
    ((5, 1), {"fr": "Fête du Travail", "en": "Labour Day"}),
    ((8, 7), {"fr": "Fête de l'Indépendance", "en": "Independence Day"}),
    ((8, 15), {"fr": "Assomption", "en": "Assumption Day"}),
    ((11, 1), {"fr": "Toussaint", "en": "All Saints' Day"}),
    ((11, 15), {"fr": "Journée nationale de la Paix", "en": "National Peace Day"}),
    ((12, 25), {"fr": "Noël", "en": "Christmas Day"}),
]


def _country(code) -> str:
    code = (code or "").strip().upper()
    if len(code) != 2 or not code.isalpha():
        raise invalid("Le code pays doit comporter 2 lettres")
    return code


def _name(value) -> Dict[str, str]:
    if isinstance(value, str):
        value = {"fr": value}
    if not isinstance(value, dict) or not (value.get("fr") or "").strip():
        raise invalid("Le nom en français (name.fr) est requis")
    return value


def get_holiday(holiday_id: int) -> PublicHoliday:
    h = db.session.get(PublicHoliday, holiday_id)
    if h is None:
        raise not_found("Jour férié non trouvé")
    return h


def list_holidays(country: str, year: Optional[int] = None):
    q = PublicHoliday.query.filter_by(country_code=_country(country))
    if year:
        q = q.filter(PublicHoliday.holiday_date >= date(year, 1, 1),
                     PublicHoliday.holiday_date <= date(year, 12, 31))
    return q.order_by(PublicHoliday.holiday_date.asc()).all()


def create_holiday(data: Dict[str, Any]) -> PublicHoliday:
    hdate = parse_date(data.get("holiday_date"))
    if hdate is None:
        raise invalid("Date invalide (YYYY-MM-DD)")
    country = _country(data.get("country_code"))
    if PublicHoliday.query.filter_by(country_code=country, holiday_date=hdate).first():
        raise conflict(f"Un jour férié existe déjà le {hdate.isoformat()} pour {country}")
    h = PublicHoliday(
        country_code=country,
        holiday_date=hdate,
        name=_name(data.get("name")),
        description=data.get("description"),
        is_recurring=bool(data.get("is_recurring", False)),
        is_paid=bool(data.get("is_paid", True)),
    )
    db.session.add(h)
    db.session.commit()
    return h


def update_holiday(h: PublicHoliday, data: Dict[str, Any]) -> PublicHoliday:
    if "holiday_date" in data:
        hdate = parse_date(data["holiday_date"])
        if hdate is None:
            raise invalid("Date invalide (YYYY-MM-DD)")
        h.holiday_date = hdate
    if "name" in data:
        h.name = _name(data["name"])
    for field in ("description", "is_recurring", "is_paid"):
        if field in data:
            setattr(h, field, data[field])
    db.session.commit()
    return h


def delete_holiday(h: PublicHoliday):
    db.session.delete(h)
    db.session.commit()


def is_public_holiday(country: str, on: date) -> bool:
    country = _country(country)
    if PublicHoliday.query.filter_by(country_code=country, holiday_date=on).first():
        return True
    for h in PublicHoliday.query.filter_by(country_code=country, is_recurring=True).all():
        if (h.holiday_date.month, h.holiday_date.day) == (on.month, on.day):
            return True
    return False


def seed_fixed_holidays(year: int, country: str = "CI") -> int:
    """Insert the fixed-date holidays of `year`; returns how many were created."""
    created = 0
    for (m, d), name in CI_FIXED_HOLIDAYS:
        hdate = date(year, m, d)
        if PublicHoliday.query.filter_by(country_code=country, holiday_date=hdate).first():
            continue
        db.session.add(PublicHoliday(country_code=country, holiday_date=hdate, name=name,
                                     is_recurring=True, is_paid=True))
        created += 1
    db.session.commit()
    return created


def row(h: PublicHoliday) -> Dict[str, Any]:
    return {
        "id": h.id,
        "country_code": h.country_code,
        "holiday_date": iso(h.holiday_date),
        "name": h.name,
        "description": h.description,
        "is_recurring": bool(h.is_recurring),
        "is_paid": bool(h.is_paid),
    }
