# clinic_api/utils/operating_hours.py
"""
Weekly opening hours shared by laboratories and pharmacies.

Stored as JSON keyed by lower-case English weekday:

    {"monday": {"is_open": true,
                "morning": {"open": "08:00", "close": "12:00"},
                "afternoon": {"open": "14:00", "close": "18:00"}},
     ...}
"""
from datetime import datetime

from clinic_api.utils.datetime_utils import utc_now

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _window(day_schedule: dict, name: str) -> tuple[str, str] | None:
    window = day_schedule.get(name) or {}
    opens, closes = window.get("open"), window.get("close")
    if not opens or not closes:
        return None
    return opens, closes


def is_open_at(operating_hours: dict | None, moment: datetime) -> bool:
    """
    True when moment falls inside the morning or afternoon window of its
    weekday. Bounds are inclusive; a day marked closed is always closed.
    """
    day_schedule = (operating_hours or {}).get(WEEKDAYS[moment.weekday()])
    if not day_schedule or not day_schedule.get("is_open"):
        return False

    current = moment.strftime("%H:%M")
    for name in ("morning", "afternoon"):
        window = _window(day_schedule, name)
        if window and window[0] <= current <= window[1]:
            return True
    return False


def is_open_now(operating_hours: dict | None, now: datetime | None = None) -> bool:
    return is_open_at(operating_hours, now or utc_now())


def default_operating_hours() -> dict:
    """Weekdays 08:00-12:00 / 14:00-18:00, Saturday afternoon until 17:00, Sunday closed."""
    hours = {}
    for day in WEEKDAYS[:5]:
        hours[day] = {
            "is_open": True,
            "morning": {"open": "08:00", "close": "12:00"},
            "afternoon": {"open": "14:00", "close": "18:00"},
        }
    hours["saturday"] = {
        "is_open": True,
        "morning": {"open": "08:00", "close": "12:00"},
        "afternoon": {"open": "14:00", "close": "17:00"},
    }
    hours["sunday"] = {"is_open": False, "morning": {"open": "09:00", "close": "12:00"}}
    return hours
