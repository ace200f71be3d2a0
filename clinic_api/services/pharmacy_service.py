# clinic_api/services/pharmacy_service.py
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import nulls_last
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_api.models.laboratory import PartnershipStatus
from clinic_api.models.pharmacy import Pharmacy
from clinic_api.models.prescription import Prescription, PrescriptionStatus
from clinic_api.schemas.pharmacy import PharmacyCreate
from clinic_api.services.lookups import active_query, require_active
from clinic_api.services.prescription_service import require_prescription
from clinic_api.utils.datetime_utils import utc_now
from clinic_api.utils.id_generators import generate_pharmacy_code
from clinic_api.utils.operating_hours import default_operating_hours

logger = logging.getLogger(__name__)

# Pharmacist-driven transitions: target status -> statuses it may be reached from
PHARMACY_TRANSITIONS: dict[PrescriptionStatus, frozenset[PrescriptionStatus]] = {
    PrescriptionStatus.PREPARING: frozenset({PrescriptionStatus.ASSIGNED}),
    PrescriptionStatus.READY: frozenset({PrescriptionStatus.PREPARING}),
    PrescriptionStatus.DELIVERED: frozenset({PrescriptionStatus.READY}),
    PrescriptionStatus.REJECTED: frozenset({PrescriptionStatus.ASSIGNED, PrescriptionStatus.PREPARING}),
}

# Timestamp column stamped by each transition
_TRANSITION_TIMESTAMPS = {
    PrescriptionStatus.PREPARING: "preparing_started_at",
    PrescriptionStatus.READY: "ready_at",
    PrescriptionStatus.DELIVERED: "delivered_at",
    PrescriptionStatus.REJECTED: "rejected_at",
}

QUEUE_STATUSES = (
    PrescriptionStatus.ASSIGNED,
    PrescriptionStatus.PREPARING,
    PrescriptionStatus.READY,
    PrescriptionStatus.DELIVERED,
)
DEFAULT_QUEUE_FILTER = "assigned,preparing"


def require_partner_pharmacy(db: Session, pharmacy_id: UUID) -> Pharmacy:
    pharmacy = (
        active_query(db, Pharmacy)
        .filter(
            Pharmacy.id == pharmacy_id,
            Pharmacy.partnership_status == PartnershipStatus.ACTIVE,
        )
        .first()
    )
    if not pharmacy:
        raise NotFoundError("Pharmacy not found or inactive")
    return pharmacy


def create_pharmacy(db: Session, payload: PharmacyCreate) -> Pharmacy:
    existing = db.query(Pharmacy).filter(Pharmacy.license_number == payload.license_number).first()
    if existing:
        raise ConflictError(
            "A pharmacy with this license number already exists.",
            detail={"license_number": payload.license_number},
        )

    operating_hours = (
        {day: schedule.model_dump(exclude_none=True) for day, schedule in payload.operating_hours.items()}
        if payload.operating_hours
        else default_operating_hours()
    )

    pharmacy = Pharmacy(
        name=payload.name,
        license_number=payload.license_number,
        pharmacy_code=generate_pharmacy_code(db, payload.city),
        email=payload.email,
        phone=payload.phone,
        street=payload.street,
        city=payload.city,
        zip_code=payload.zip_code,
        country=payload.country,
        operating_hours=operating_hours,
        services=list(payload.services),
        partnership_status=payload.partnership_status,
    )
    db.add(pharmacy)
    commit_or_raise(db, "create pharmacy")
    db.refresh(pharmacy)

    logger.info("Pharmacy %s registered as %s", pharmacy.name, pharmacy.pharmacy_code)
    return pharmacy


def list_pharmacies(db: Session) -> list[Pharmacy]:
    return active_query(db, Pharmacy).order_by(Pharmacy.name.asc()).all()


def assign_to_pharmacy(db: Session, prescription_id: UUID, pharmacy_id: UUID) -> Prescription:
    """
    signed -> assigned.

    Rules:
    - Prescription must be signed.
    - Pharmacy must be active with an active partnership.
    """
    prescription = require_prescription(db, prescription_id)
    if prescription.status != PrescriptionStatus.SIGNED:
        raise ValidationError(
            "Only signed prescriptions can be assigned to a pharmacy.",
            detail={"status": prescription.status.value},
        )

    pharmacy = require_partner_pharmacy(db, pharmacy_id)

    prescription.status = PrescriptionStatus.ASSIGNED
    prescription.pharmacy_id = pharmacy.id
    prescription.assigned_at = utc_now()

    commit_or_raise(db, "assign prescription to pharmacy")
    db.refresh(prescription)
    logger.info("Prescription %s assigned to pharmacy %s", prescription.prescription_number, pharmacy.pharmacy_code)
    return prescription


def record_delivery(pharmacy: Pharmacy, processing_hours: float) -> None:
    """Fold one delivered prescription into the pharmacy's running statistics."""
    handled = pharmacy.total_prescriptions or 0
    current = pharmacy.average_processing_time or 0.0
    pharmacy.average_processing_time = (current * handled + processing_hours) / (handled + 1)
    pharmacy.total_prescriptions = handled + 1
    pharmacy.last_activity = utc_now()


def _update_pharmacy_statistics(db: Session, prescription: Prescription) -> None:
    # Non-critical: the delivery is already committed
    try:
        with db.begin_nested():
            pharmacy = db.get(Pharmacy, prescription.pharmacy_id)
            if pharmacy and prescription.assigned_at and prescription.delivered_at:
                hours = (prescription.delivered_at - prescription.assigned_at).total_seconds() / 3600
                record_delivery(pharmacy, hours)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to update pharmacy statistics (non-critical): %s", e, exc_info=True)


def pharmacist_update_status(
    db: Session,
    prescription_id: UUID,
    new_status: PrescriptionStatus | str,
    *,
    notes: str | None = None,
) -> Prescription:
    """
    Advance a prescription at the pharmacy.

    Rules:
    - new_status must be one of preparing, ready, delivered, rejected.
    - assigned -> preparing -> ready -> delivered; assigned|preparing -> rejected.
    - Each transition stamps its own timestamp.
    """
    try:
        target = PrescriptionStatus(new_status)
    except ValueError:
        target = None
    if target not in PHARMACY_TRANSITIONS:
        raise ValidationError(
            "Invalid status.",
            detail={"valid_statuses": [s.value for s in PHARMACY_TRANSITIONS]},
        )

    prescription = require_prescription(db, prescription_id)
    if prescription.status not in PHARMACY_TRANSITIONS[target]:
        raise ValidationError(
            f"Cannot move a prescription from {prescription.status.value} to {target.value}.",
            detail={"current_status": prescription.status.value, "requested_status": target.value},
        )

    previous = prescription.status
    prescription.status = target
    setattr(prescription, _TRANSITION_TIMESTAMPS[target], utc_now())
    if notes:
        prescription.pharmacy_notes = notes

    commit_or_raise(db, "update prescription status")
    db.refresh(prescription)
    logger.info(
        "Prescription %s moved %s -> %s",
        prescription.prescription_number,
        previous.value,
        target.value,
    )

    if target == PrescriptionStatus.DELIVERED:
        _update_pharmacy_statistics(db, prescription)
    return prescription


def parse_status_filter(raw: str | None) -> list[PrescriptionStatus]:
    """
    Parse a comma separated status list for the pharmacy queue.
    Unknown tokens and an empty result are both rejected.
    """
    tokens = [t.strip() for t in (raw or DEFAULT_QUEUE_FILTER).split(",") if t.strip()]
    allowed = {s.value: s for s in QUEUE_STATUSES}

    unknown = [t for t in tokens if t not in allowed]
    if unknown or not tokens:
        raise ValidationError(
            "Invalid statuses.",
            detail={"invalid": unknown, "valid_statuses": list(allowed)},
        )
    return [allowed[t] for t in dict.fromkeys(tokens)]


def list_pharmacy_prescriptions(
    db: Session,
    pharmacy_id: UUID,
    *,
    statuses: str | None = DEFAULT_QUEUE_FILTER,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Prescription], int]:
    """
    Prescriptions currently routed to a pharmacy, newest assignment first.
    """
    require_active(db, Pharmacy, pharmacy_id, "Pharmacy not found")
    wanted = parse_status_filter(statuses)

    query = active_query(db, Prescription).filter(
        Prescription.pharmacy_id == pharmacy_id,
        Prescription.status.in_(wanted),
    )
    total = query.count()
    items = (
        query.order_by(nulls_last(Prescription.assigned_at.desc()), Prescription.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return items, total
