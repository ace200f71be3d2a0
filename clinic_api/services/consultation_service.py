# clinic_api/services/consultation_service.py
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.security import Actor
from clinic_api.models.appointment import Appointment, AppointmentStatus
from clinic_api.models.consultation import Consultation
from clinic_api.models.prescription import Prescription
from clinic_api.models.user import RoleName
from clinic_api.schemas.consultation import ConsultationCreate, ConsultationUpdate
from clinic_api.services.lookups import active_query, require_user
from clinic_api.utils.datetime_utils import as_utc, utc_now

logger = logging.getLogger(__name__)

VITAL_SIGN_FIELDS = ("blood_pressure", "temperature", "heart_rate", "weight", "height")
_TEXT_FIELDS = ("diagnosis", "symptoms", "treatment", "medical_notes")
_LIST_FIELDS = ("lab_tests", "attachments")


def calculate_bmi(weight: float | None, height: float | None) -> float | None:
    """
    BMI = weight(kg) / height(m)^2, rounded to one decimal.
    None unless both measurements are present.
    """
    if not weight or not height:
        return None
    height_m = height / 100
    return round(weight / (height_m * height_m), 1)


def needs_follow_up(follow_up_date: datetime | None, now: datetime | None = None) -> bool:
    return follow_up_date is not None and as_utc(follow_up_date) > (now or utc_now())


def prescription_ids_for(db: Session, consultation_id: UUID) -> list[UUID]:
    rows = (
        active_query(db, Prescription)
        .with_entities(Prescription.id)
        .filter(Prescription.consultation_id == consultation_id)
        .all()
    )
    return [row.id for row in rows]


def consultation_to_dict(db: Session, consultation: Consultation, now: datetime | None = None) -> dict:
    """Read-side view: stored fields plus the derived clinical values."""
    bmi = calculate_bmi(consultation.weight, consultation.height)
    follow_up = needs_follow_up(consultation.follow_up_date, now)
    return {
        "id": consultation.id,
        "appointment_id": consultation.appointment_id,
        "patient_id": consultation.patient_id,
        "doctor_id": consultation.doctor_id,
        "date": consultation.date,
        "diagnosis": consultation.diagnosis,
        "symptoms": consultation.symptoms,
        "treatment": consultation.treatment,
        "medical_notes": consultation.medical_notes,
        "vital_signs": {field: getattr(consultation, field) for field in VITAL_SIGN_FIELDS},
        "lab_tests": consultation.lab_tests or [],
        "attachments": consultation.attachments or [],
        "follow_up_date": consultation.follow_up_date,
        "prescription_ids": prescription_ids_for(db, consultation.id),
        "bmi": bmi,
        "needs_follow_up": follow_up,
        "summary": {
            "date": consultation.date,
            "diagnosis": consultation.diagnosis,
            "treatment": consultation.treatment,
            "follow_up_needed": follow_up,
            "bmi": bmi,
        },
        "created_at": consultation.created_at,
        "updated_at": consultation.updated_at,
    }


def create_consultation(
    db: Session,
    *,
    doctor_id: UUID,
    payload: ConsultationCreate,
) -> Consultation:
    """
    Record the consultation of a completed appointment.

    Rules:
    - Appointment must exist and be completed.
    - Only the appointment's doctor can record it.
    - One consultation per appointment.
    """
    appointment = db.get(Appointment, payload.appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")

    if appointment.status != AppointmentStatus.COMPLETED:
        raise ValidationError(
            "A consultation can only be created for a completed appointment.",
            detail={"appointment_status": appointment.status.value},
        )

    if appointment.doctor_id != doctor_id:
        raise ForbiddenError("You can only record consultations for your own appointments.")

    existing = db.query(Consultation).filter(Consultation.appointment_id == appointment.id).first()
    if existing:
        raise ConflictError(
            "A consultation already exists for this appointment.",
            detail={"consultation_id": str(existing.id)},
        )

    vitals = payload.vital_signs.model_dump() if payload.vital_signs else {}
    consultation = Consultation(
        appointment_id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        date=utc_now(),
        diagnosis=payload.diagnosis,
        symptoms=payload.symptoms,
        treatment=payload.treatment,
        medical_notes=payload.medical_notes,
        lab_tests=list(payload.lab_tests),
        attachments=list(payload.attachments),
        follow_up_date=payload.follow_up_date,
        **{field: vitals.get(field) for field in VITAL_SIGN_FIELDS},
    )
    db.add(consultation)
    commit_or_raise(db, "create consultation")
    db.refresh(consultation)

    logger.info("Consultation %s recorded for appointment %s", consultation.id, appointment.id)
    return consultation


def _require_consultation(db: Session, consultation_id: UUID) -> Consultation:
    consultation = db.get(Consultation, consultation_id)
    if not consultation:
        raise NotFoundError("Consultation not found")
    return consultation


def get_consultation(db: Session, consultation_id: UUID, actor: Actor) -> Consultation:
    """
    Admins see every consultation; doctors those they authored; patients their own.
    """
    consultation = _require_consultation(db, consultation_id)

    if actor.role == RoleName.ADMIN:
        return consultation
    if actor.role == RoleName.DOCTOR and consultation.doctor_id == actor.id:
        return consultation
    if actor.role == RoleName.PATIENT and consultation.patient_id == actor.id:
        return consultation
    raise ForbiddenError("You can only view your own consultations.")


def update_consultation(
    db: Session,
    consultation_id: UUID,
    *,
    actor_id: UUID,
    payload: ConsultationUpdate,
) -> Consultation:
    """
    Partial update by the owning doctor. Vital signs merge field by field:
    measurements left out of the patch keep their stored value.
    """
    consultation = _require_consultation(db, consultation_id)
    if consultation.doctor_id != actor_id:
        raise ForbiddenError("Only the doctor who recorded this consultation can update it.")

    changes = payload.model_dump(exclude_unset=True)

    # An explicit null clears the field
    for field in _TEXT_FIELDS:
        if field in changes:
            setattr(consultation, field, changes[field])
    for field in _LIST_FIELDS:
        if field in changes:
            setattr(consultation, field, changes[field] or [])

    if "follow_up_date" in changes:
        consultation.follow_up_date = changes["follow_up_date"]

    vital_changes = payload.vital_signs.model_dump(exclude_unset=True) if payload.vital_signs else {}
    for field, value in vital_changes.items():
        setattr(consultation, field, value)

    commit_or_raise(db, "update consultation")
    db.refresh(consultation)
    logger.info("Consultation %s updated: %s", consultation.id, sorted(changes))
    return consultation


def list_patient_consultations(db: Session, patient_id: UUID, actor: Actor) -> list[Consultation]:
    """
    Consultations of one patient, newest first.
    Patients see only their own; doctors only those they authored.
    """
    if actor.role == RoleName.PATIENT and actor.id != patient_id:
        raise ForbiddenError("You can only view your own consultations.")
    require_user(db, patient_id, "Patient not found")

    query = db.query(Consultation).filter(Consultation.patient_id == patient_id)
    if actor.role == RoleName.DOCTOR:
        query = query.filter(Consultation.doctor_id == actor.id)
    return query.order_by(Consultation.date.desc()).all()
