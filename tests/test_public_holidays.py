from datetime import date

import pytest

from paie_api.common.errors import APIError
from paie_api.services import holidays


def test_seed_is_idempotent(app):
    assert holidays.seed_fixed_holidays(2025) == len(holidays.CI_FIXED_HOLIDAYS)
    assert holidays.seed_fixed_holidays(2025) == 0
    assert len(holidays.list_holidays("ci", 2025)) == len(holidays.CI_FIXED_HOLIDAYS)


def test_recurring_holiday_matches_other_years(app):
    holidays.seed_fixed_holidays(2025)
    assert holidays.is_public_holiday("CI", date(2025, 8, 7))
    assert holidays.is_public_holiday("CI", date(2030, 8, 7))
    assert not holidays.is_public_holiday("CI", date(2025, 8, 8))


def test_movable_holiday(app):
    h = holidays.create_holiday({"country_code": "CI", "holiday_date": "2025-03-31",
                                 "name": {"fr": "Aïd el-Fitr", "en": "Eid al-Fitr"},
                                 "is_recurring": False})
    assert holidays.is_public_holiday("CI", date(2025, 3, 31))
    assert not holidays.is_public_holiday("CI", date(2026, 3, 31))
    with pytest.raises(APIError) as exc:
        holidays.create_holiday({"country_code": "CI", "holiday_date": "2025-03-31", "name": "Doublon"})
    assert exc.value.status_code == 409
    holidays.delete_holiday(h)
    assert not holidays.is_public_holiday("CI", date(2025, 3, 31))


def test_validation(app):
    with pytest.raises(APIError):
        holidays.create_holiday({"country_code": "CIV", "holiday_date": "2025-01-01", "name": "x"})
    with pytest.raises(APIError):
        holidays.create_holiday({"country_code": "CI", "holiday_date": "2025-01-01", "name": {"en": "x"}})
