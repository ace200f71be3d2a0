# clinic_api/services/laboratory_service.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_api.models.laboratory import Laboratory, LaboratoryTest, PartnershipStatus
from clinic_api.schemas.laboratory import LaboratoryCreate
from clinic_api.services.lookups import active_query, require_active
from clinic_api.utils.id_generators import generate_lab_code
from clinic_api.utils.operating_hours import default_operating_hours

logger = logging.getLogger(__name__)


# -------------------------
# Capability matching
# -------------------------
def get_available_test(laboratory: Laboratory, test_code: str) -> LaboratoryTest | None:
    """Active catalog entry for test_code, or None."""
    for test in laboratory.available_tests:
        if test.test_code == test_code and test.is_active:
            return test
    return None


def unavailable_test_codes(laboratory: Laboratory, test_codes: Iterable[str]) -> list[str]:
    return [code for code in test_codes if get_available_test(laboratory, code) is None]


def ensure_can_perform(laboratory: Laboratory, test_codes: Iterable[str]) -> None:
    """
    The laboratory must perform every requested test. A panel with any
    unavailable test is rejected as a whole.
    """
    missing = unavailable_test_codes(laboratory, test_codes)
    if missing:
        raise ValidationError(
            "The laboratory cannot perform all requested tests.",
            detail={"unavailable_tests": missing},
        )


def require_partner_laboratory(db: Session, laboratory_id: UUID) -> Laboratory:
    """Active laboratory with an active partnership, else NotFoundError."""
    laboratory = (
        active_query(db, Laboratory)
        .filter(
            Laboratory.id == laboratory_id,
            Laboratory.partnership_status == PartnershipStatus.ACTIVE,
        )
        .first()
    )
    if not laboratory:
        raise NotFoundError("Laboratory not found or inactive")
    return laboratory


# -------------------------
# Statistics
# -------------------------
def update_statistics(laboratory: Laboratory, new_orders: int = 1) -> None:
    laboratory.total_orders = (laboratory.total_orders or 0) + new_orders
    laboratory.last_month_orders = (laboratory.last_month_orders or 0) + new_orders


def record_processing_time(laboratory: Laboratory, hours: float) -> None:
    """Fold one completed order's turnaround into the running average."""
    completed = laboratory.completed_orders or 0
    if completed > 0:
        current = laboratory.average_processing_time or 0.0
        laboratory.average_processing_time = (current * completed + hours) / (completed + 1)
    else:
        laboratory.average_processing_time = hours
    laboratory.completed_orders = completed + 1


# -------------------------
# Catalog
# -------------------------
def create_laboratory(db: Session, payload: LaboratoryCreate) -> Laboratory:
    existing = db.query(Laboratory).filter(Laboratory.license_number == payload.license_number).first()
    if existing:
        raise ConflictError(
            "A laboratory with this license number already exists.",
            detail={"license_number": payload.license_number},
        )

    operating_hours = (
        {day: schedule.model_dump(exclude_none=True) for day, schedule in payload.operating_hours.items()}
        if payload.operating_hours
        else default_operating_hours()
    )

    laboratory = Laboratory(
        name=payload.name,
        license_number=payload.license_number,
        lab_code=generate_lab_code(db, payload.name, payload.city),
        email=payload.email,
        phone=payload.phone,
        street=payload.street,
        city=payload.city,
        zip_code=payload.zip_code,
        country=payload.country,
        operating_hours=operating_hours,
        partnership_status=payload.partnership_status,
        available_tests=[LaboratoryTest(**test.model_dump()) for test in payload.available_tests],
    )
    db.add(laboratory)
    commit_or_raise(db, "create laboratory")
    db.refresh(laboratory)

    logger.info("Laboratory %s registered as %s", laboratory.name, laboratory.lab_code)
    return laboratory


def get_laboratory(db: Session, laboratory_id: UUID) -> Laboratory:
    return require_active(db, Laboratory, laboratory_id, "Laboratory not found")


def list_laboratories(
    db: Session,
    *,
    city: str | None = None,
    partnership_status: PartnershipStatus | None = None,
    test_code: str | None = None,
) -> list[Laboratory]:
    query = active_query(db, Laboratory)
    if city:
        query = query.filter(Laboratory.city.ilike(f"%{city}%"))
    if partnership_status is not None:
        query = query.filter(Laboratory.partnership_status == partnership_status)
    if test_code:
        query = query.filter(
            Laboratory.available_tests.any(
                (LaboratoryTest.test_code == test_code) & LaboratoryTest.is_active.is_(True)
            )
        )
    return query.order_by(Laboratory.name.asc()).all()
