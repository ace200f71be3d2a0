# clinic_api/services/prescription_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.config import get_settings
from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.security import Actor
from clinic_api.models.base import RecordState
from clinic_api.models.consultation import Consultation
from clinic_api.models.prescription import Prescription, PrescriptionMedication, PrescriptionStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.prescription import MedicationCreate, MedicationResponse, PrescriptionResponse
from clinic_api.services.lookups import active_query, require_active, require_user
from clinic_api.utils.datetime_utils import utc_now
from clinic_api.utils.id_generators import generate_prescription_number

logger = logging.getLogger(__name__)


def _build_medications(items: list[MedicationCreate], now: datetime) -> list[PrescriptionMedication]:
    return [
        PrescriptionMedication(
            position=position,
            name=item.name,
            dosage=item.dosage,
            route=item.route,
            frequency=item.frequency,
            duration=item.duration,
            renewals=item.renewals,
            instructions=item.instructions,
            start_date=item.start_date or now,
            end_date=item.end_date,
        )
        for position, item in enumerate(items)
    ]


def prescription_to_dict(prescription: Prescription, now: datetime | None = None) -> dict:
    """Read-side view: stored columns, medications and derived flags."""
    data = {column.key: getattr(prescription, column.key) for column in Prescription.__table__.columns}
    data["medications"] = [MedicationResponse.model_validate(m) for m in prescription.medications]
    data["total_medications"] = len(prescription.medications)
    data["is_expired"] = prescription.is_expired(now)
    return PrescriptionResponse.model_validate(data).model_dump()


def create_prescription(
    db: Session,
    *,
    consultation_id: UUID,
    doctor_id: UUID,
    medications: list[MedicationCreate],
    notes: str | None = None,
) -> Prescription:
    """
    Create a draft prescription for a consultation.

    Rules:
    - Consultation must exist and belong to the calling doctor.
    - One prescription per consultation.
    - At least one medication.
    """
    consultation = db.get(Consultation, consultation_id)
    if not consultation:
        raise NotFoundError("Consultation not found")

    if consultation.doctor_id != doctor_id:
        raise ForbiddenError("You can only prescribe for your own consultations.")

    existing = db.query(Prescription).filter(Prescription.consultation_id == consultation_id).first()
    if existing:
        raise ConflictError(
            "A prescription already exists for this consultation.",
            detail={"prescription_id": str(existing.id)},
        )

    if not medications:
        raise ValidationError("A prescription needs at least one medication.")

    now = utc_now()
    prescription = Prescription(
        consultation_id=consultation.id,
        patient_id=consultation.patient_id,
        doctor_id=consultation.doctor_id,
        prescription_number=generate_prescription_number(db, now),
        status=PrescriptionStatus.DRAFT,
        notes=notes,
        medications=_build_medications(medications, now),
    )
    db.add(prescription)
    commit_or_raise(db, "create prescription")
    db.refresh(prescription)

    logger.info("Prescription %s created as draft", prescription.prescription_number)
    return prescription


def require_prescription(db: Session, prescription_id: UUID) -> Prescription:
    return require_active(db, Prescription, prescription_id, "Prescription not found")


def get_prescription(db: Session, prescription_id: UUID, actor: Actor) -> Prescription:
    """
    Patients see their own prescriptions, doctors those they wrote,
    other staff every prescription.
    """
    prescription = require_prescription(db, prescription_id)

    if actor.role == RoleName.PATIENT and prescription.patient_id != actor.id:
        raise ForbiddenError("You can only view your own prescriptions.")
    if actor.role == RoleName.DOCTOR and prescription.doctor_id != actor.id:
        raise ForbiddenError("You can only view prescriptions you wrote.")
    return prescription


def update_prescription(
    db: Session,
    prescription_id: UUID,
    *,
    doctor_id: UUID,
    medications: list[MedicationCreate] | None = None,
    notes: str | None = None,
) -> Prescription:
    """
    Replace the medication list and/or notes of a draft prescription.
    Medications are immutable once the prescription leaves draft.
    """
    prescription = require_prescription(db, prescription_id)

    if prescription.doctor_id != doctor_id:
        raise ForbiddenError("Only the prescribing doctor can modify this prescription.")
    if not prescription.can_be_modified():
        raise ValidationError(
            "Only draft prescriptions can be modified.",
            detail={"status": prescription.status.value},
        )

    if medications is not None:
        if not medications:
            raise ValidationError("A prescription needs at least one medication.")
        prescription.medications = _build_medications(medications, utc_now())
    if notes is not None:
        prescription.notes = notes

    commit_or_raise(db, "update prescription")
    db.refresh(prescription)
    logger.info("Prescription %s updated", prescription.prescription_number)
    return prescription


def sign_prescription(db: Session, prescription_id: UUID, *, doctor_id: UUID) -> Prescription:
    """
    draft -> signed. Stamps signed_at and valid_until (signed_at + validity period) once.
    """
    prescription = require_prescription(db, prescription_id)

    if prescription.doctor_id != doctor_id:
        raise ForbiddenError("Only the prescribing doctor can sign this prescription.")
    if not prescription.can_be_signed():
        raise ValidationError(
            "This prescription cannot be signed.",
            detail={"status": prescription.status.value, "medications": len(prescription.medications)},
        )

    signed_at = utc_now()
    prescription.status = PrescriptionStatus.SIGNED
    prescription.signed_at = signed_at
    prescription.valid_until = signed_at + timedelta(days=get_settings().prescription_validity_days)

    commit_or_raise(db, "sign prescription")
    db.refresh(prescription)
    logger.info("Prescription %s signed, valid until %s", prescription.prescription_number, prescription.valid_until)
    return prescription


def delete_prescription(db: Session, prescription_id: UUID, *, actor: Actor) -> None:
    """
    Soft delete a draft prescription. Prescribing doctor or admin only.
    """
    prescription = require_prescription(db, prescription_id)

    if prescription.doctor_id != actor.id and actor.role != RoleName.ADMIN:
        raise ForbiddenError("Only the prescribing doctor or an admin can delete this prescription.")
    if not prescription.can_be_modified():
        raise ValidationError(
            "Only draft prescriptions can be deleted.",
            detail={"status": prescription.status.value},
        )

    prescription.state = RecordState.DEACTIVATED
    commit_or_raise(db, "delete prescription")
    logger.info("Prescription %s deactivated by %s", prescription.prescription_number, actor.id)


def list_prescriptions(
    db: Session,
    *,
    actor: Actor,
    status: PrescriptionStatus | None = None,
    patient_id: UUID | None = None,
    doctor_id: UUID | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Prescription], int]:
    """
    Active prescriptions, newest first. Patients are scoped to their own,
    doctors to those they wrote.
    """
    query = active_query(db, Prescription)

    if actor.role == RoleName.PATIENT:
        patient_id = actor.id
    elif actor.role == RoleName.DOCTOR:
        doctor_id = actor.id

    if status is not None:
        query = query.filter(Prescription.status == status)
    if patient_id is not None:
        query = query.filter(Prescription.patient_id == patient_id)
    if doctor_id is not None:
        query = query.filter(Prescription.doctor_id == doctor_id)

    total = query.count()
    items = query.order_by(Prescription.created_at.desc()).offset(skip).limit(limit).all()
    return items, total


def list_patient_prescriptions(
    db: Session,
    patient_id: UUID,
    *,
    actor: Actor,
    status: PrescriptionStatus | None = None,
    skip: int = 0,
    limit: int = 10,
) -> tuple[list[Prescription], int]:
    if actor.role == RoleName.PATIENT and actor.id != patient_id:
        raise ForbiddenError("You can only view your own prescriptions.")
    require_user(db, patient_id, "Patient not found")

    query = active_query(db, Prescription).filter(Prescription.patient_id == patient_id)
    if status is not None:
        query = query.filter(Prescription.status == status)

    total = query.count()
    items = query.order_by(Prescription.created_at.desc()).offset(skip).limit(limit).all()
    return items, total
