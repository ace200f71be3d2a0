# clinic_api/services/availability_service.py
from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.config import get_settings
from clinic_api.core.errors import ValidationError
from clinic_api.models.appointment import BLOCKING_STATUSES, Appointment
from clinic_api.services.lookups import require_doctor
from clinic_api.utils.datetime_utils import at_time_utc, format_hhmm, parse_calendar_date
from clinic_api.utils.intervals import TimeInterval


def free_slots(
    window: TimeInterval,
    booked: list[TimeInterval],
) -> list[TimeInterval]:
    """
    Sweep booked intervals (sorted by start) across the working window and
    return the gaps between them. Booked edges outside the window are clamped.
    """
    slots: list[TimeInterval] = []
    cursor = window.start
    for interval in booked:
        start = max(interval.start, window.start)
        end = min(interval.end, window.end)
        if cursor < start:
            slots.append(TimeInterval(cursor, start))
        cursor = max(cursor, end)
    if cursor < window.end:
        slots.append(TimeInterval(cursor, window.end))
    return slots


def _parse_day(day: date | str) -> date:
    if isinstance(day, date):
        return day
    try:
        return parse_calendar_date(day)
    except (ValueError, AttributeError):
        raise ValidationError("Invalid date, expected YYYY-MM-DD.", detail={"date": day}) from None


def get_availability(db: Session, doctor_id: UUID, day: date | str) -> dict:
    """
    Free slots of a doctor for one calendar day, inside the configured working hours.
    """
    settings = get_settings()
    day = _parse_day(day)
    doctor = require_doctor(db, doctor_id)

    window = TimeInterval(
        at_time_utc(day, settings.work_day_start),
        at_time_utc(day, settings.work_day_end),
    )

    appointments = (
        db.query(Appointment)
        .filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(BLOCKING_STATUSES),
            Appointment.start_time < window.end,
            Appointment.end_time > window.start,
        )
        .order_by(Appointment.start_time.asc())
        .all()
    )
    booked = [TimeInterval(a.start_time, a.end_time) for a in appointments]
    slots = free_slots(window, booked)

    return {
        "doctor_id": doctor.id,
        "doctor_name": doctor.full_name,
        "date": day.isoformat(),
        "working_hours": {"start": settings.work_day_start, "end": settings.work_day_end},
        "available_slots": [{"start": format_hhmm(s.start), "end": format_hhmm(s.end)} for s in slots],
        "total_slots_available": len(slots),
    }
