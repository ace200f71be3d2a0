"""
Partner laboratories and pharmacies: registration, generated codes,
opening hours and catalog lookups.
"""
import re
import uuid
from datetime import datetime, timezone

import pytest

from clinic_api.core.errors import ConflictError, NotFoundError
from clinic_api.models.laboratory import PartnershipStatus
from clinic_api.schemas.laboratory import LaboratoryCreate
from clinic_api.schemas.pharmacy import PharmacyCreate
from clinic_api.services import laboratory_service, pharmacy_service
from clinic_api.utils import id_generators
from clinic_api.utils.operating_hours import default_operating_hours, is_open_at

HOURS = default_operating_hours()


def _moment(day: int, hour: int, minute: int = 0) -> datetime:
    # November 2026: the 2nd is a Monday, the 7th a Saturday, the 8th a Sunday
    return datetime(2026, 11, day, hour, minute, tzinfo=timezone.utc)


class TestOperatingHours:
    @pytest.mark.parametrize(
        "moment, expected",
        [
            (_moment(2, 8), True),
            (_moment(2, 12), True),
            (_moment(2, 13), False),
            (_moment(2, 18), True),
            (_moment(2, 18, 1), False),
            (_moment(7, 16, 30), True),
            (_moment(7, 17, 30), False),
            (_moment(8, 10), False),
        ],
    )
    def test_default_week(self, moment, expected):
        assert is_open_at(HOURS, moment) is expected

    def test_missing_schedule_is_closed(self):
        assert not is_open_at({}, _moment(2, 10))
        assert not is_open_at(None, _moment(2, 10))

    def test_day_without_afternoon(self):
        hours = {"monday": {"is_open": True, "morning": {"open": "09:00", "close": "12:00"}}}

        assert is_open_at(hours, _moment(2, 9, 30))
        assert not is_open_at(hours, _moment(2, 15))


class TestGeneratedCodes:
    def test_lab_code_format(self, db):
        assert re.fullmatch(r"BIOCA\d{3}", id_generators.generate_lab_code(db, "Biolab", "Casablanca"))

    def test_pharmacy_code_format(self, db):
        assert re.fullmatch(r"PHRAB\d{4}", id_generators.generate_pharmacy_code(db, "Rabat"))

    def test_gives_up_after_repeated_collisions(self, db, make_pharmacy, monkeypatch):
        make_pharmacy()  # pharmacy_code PHCAS0001
        monkeypatch.setattr(id_generators, "_random_digits", lambda width: "0001")

        with pytest.raises(ConflictError):
            id_generators.generate_pharmacy_code(db, "Casablanca")


def _laboratory_payload(**overrides) -> LaboratoryCreate:
    data = {
        "name": "Biolab",
        "license_number": "LIC-001",
        "email": "contact@biolab.ma",
        "phone": "+212522000000",
        "street": "1 Avenue Hassan II",
        "city": "Casablanca",
        "zip_code": "20000",
        "available_tests": [
            {"test_code": "NFS", "test_name": "Numeration formule sanguine", "price": 80},
            {"test_code": "GLY", "test_name": "Glycemie", "price": 40, "is_active": False},
        ],
    }
    data.update(overrides)
    return LaboratoryCreate(**data)


class TestLaboratoryCatalog:
    def test_create_generates_code_and_default_hours(self, db):
        laboratory = laboratory_service.create_laboratory(db, _laboratory_payload())

        assert laboratory.lab_code.startswith("BIOCA")
        assert laboratory.operating_hours == default_operating_hours()
        assert {t.test_code for t in laboratory.available_tests} == {"NFS", "GLY"}

    def test_duplicate_license_conflicts(self, db):
        laboratory_service.create_laboratory(db, _laboratory_payload())

        with pytest.raises(ConflictError):
            laboratory_service.create_laboratory(db, _laboratory_payload(name="Other lab"))

    def test_inactive_catalog_entries_cannot_be_performed(self, db):
        laboratory = laboratory_service.create_laboratory(db, _laboratory_payload())

        assert laboratory_service.get_available_test(laboratory, "NFS") is not None
        assert laboratory_service.get_available_test(laboratory, "GLY") is None
        assert laboratory_service.unavailable_test_codes(laboratory, ["NFS", "GLY"]) == ["GLY"]

    def test_list_filters_by_active_test(self, db, make_laboratory):
        with_tsh = make_laboratory(test_codes=("TSH",))
        make_laboratory(test_codes=("NFS",), inactive_codes=("TSH",))

        found = laboratory_service.list_laboratories(db, test_code="TSH")

        assert [lab.id for lab in found] == [with_tsh.id]

    def test_list_filters_by_city_and_partnership(self, db, make_laboratory):
        make_laboratory()
        suspended = make_laboratory(partnership_status=PartnershipStatus.SUSPENDED)

        found = laboratory_service.list_laboratories(
            db, city="casa", partnership_status=PartnershipStatus.SUSPENDED
        )

        assert [lab.id for lab in found] == [suspended.id]

    def test_processing_time_running_average(self, make_laboratory):
        laboratory = make_laboratory()

        laboratory_service.record_processing_time(laboratory, 10.0)
        laboratory_service.record_processing_time(laboratory, 20.0)

        assert laboratory.completed_orders == 2
        assert laboratory.average_processing_time == pytest.approx(15.0)

    def test_unknown_laboratory(self, db):
        with pytest.raises(NotFoundError):
            laboratory_service.get_laboratory(db, uuid.uuid4())


class TestPharmacyRegistration:
    def test_create_generates_code(self, db):
        pharmacy = pharmacy_service.create_pharmacy(
            db,
            PharmacyCreate(
                name="Pharmacie Centrale",
                license_number="PH-001",
                email="contact@centrale.ma",
                phone="+212522111111",
                street="10 Rue Allal Ben Abdellah",
                city="Rabat",
                zip_code="10000",
                services=["delivery", "night"],
            ),
        )

        assert re.fullmatch(r"PHRAB\d{4}", pharmacy.pharmacy_code)
        assert pharmacy.full_address == "10 Rue Allal Ben Abdellah, Rabat 10000, Maroc"
        assert pharmacy.services == ["delivery", "night"]
