"""
Doctor availability inside the configured working window (08:00-18:00 UTC).
"""
import uuid
from datetime import date

import pytest

from clinic_api.core.errors import NotFoundError, ValidationError
from clinic_api.models.appointment import AppointmentStatus
from clinic_api.services.availability_service import free_slots, get_availability
from clinic_api.utils.intervals import TimeInterval
from helpers import DAY, at


WINDOW = TimeInterval(at(8), at(18))


class TestFreeSlots:
    def test_empty_calendar_is_one_slot(self):
        assert free_slots(WINDOW, []) == [WINDOW]

    def test_booking_splits_the_window(self):
        slots = free_slots(WINDOW, [TimeInterval(at(10), at(10, 30))])

        assert slots == [TimeInterval(at(8), at(10)), TimeInterval(at(10, 30), at(18))]

    def test_bookings_outside_the_window_are_clamped(self):
        slots = free_slots(
            WINDOW,
            [TimeInterval(at(7), at(8, 30)), TimeInterval(at(17, 30), at(19))],
        )

        assert slots == [TimeInterval(at(8, 30), at(17, 30))]

    def test_nested_booking_does_not_move_cursor_back(self):
        slots = free_slots(
            WINDOW,
            [TimeInterval(at(9), at(12)), TimeInterval(at(10), at(11))],
        )

        assert slots == [TimeInterval(at(8), at(9)), TimeInterval(at(12), at(18))]

    def test_fully_booked_day_has_no_slots(self):
        assert free_slots(WINDOW, [TimeInterval(at(8), at(18))]) == []


class TestGetAvailability:
    def test_no_appointments(self, db, doctor):
        availability = get_availability(db, doctor.id, DAY.date().isoformat())

        assert availability["available_slots"] == [{"start": "08:00", "end": "18:00"}]
        assert availability["total_slots_available"] == 1
        assert availability["working_hours"] == {"start": "08:00", "end": "18:00"}
        assert availability["doctor_name"] == "Amina Benali"
        assert availability["date"] == "2026-11-02"

    def test_one_appointment_splits_day(self, db, doctor, patient, make_appointment):
        make_appointment(patient, doctor, at(10), at(10, 30))

        availability = get_availability(db, doctor.id, date(2026, 11, 2))

        assert availability["available_slots"] == [
            {"start": "08:00", "end": "10:00"},
            {"start": "10:30", "end": "18:00"},
        ]
        assert availability["total_slots_available"] == 2

    def test_cancelled_appointments_are_ignored(self, db, doctor, patient, make_appointment):
        make_appointment(patient, doctor, at(10), at(10, 30), status=AppointmentStatus.CANCELLED)

        availability = get_availability(db, doctor.id, "2026-11-02")

        assert availability["total_slots_available"] == 1

    def test_other_days_are_ignored(self, db, doctor, patient, make_appointment):
        make_appointment(patient, doctor, at(10, day=DAY.replace(day=3)))

        availability = get_availability(db, doctor.id, "2026-11-02")

        assert availability["total_slots_available"] == 1

    @pytest.mark.parametrize("value", ["02/11/2026", "2026-13-01", "tomorrow", ""])
    def test_invalid_date_is_rejected(self, db, doctor, value):
        with pytest.raises(ValidationError):
            get_availability(db, doctor.id, value)

    def test_unknown_doctor(self, db):
        with pytest.raises(NotFoundError):
            get_availability(db, uuid.uuid4(), "2026-11-02")
