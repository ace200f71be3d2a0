# clinic_api/services/appointment_service.py
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.security import Actor
from clinic_api.models.appointment import BLOCKING_STATUSES, Appointment, AppointmentStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.appointment import AppointmentUpdate
from clinic_api.services.lookups import require_doctor, require_user
from clinic_api.utils.datetime_utils import as_utc, utc_now
from clinic_api.utils.intervals import intervals_overlap

logger = logging.getLogger(__name__)


def _validate_interval(start_time: datetime, end_time: datetime) -> None:
    if start_time >= end_time:
        raise ValidationError(
            "Appointment end time must be after its start time.",
            detail={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )


def find_conflict(
    db: Session,
    *,
    doctor_id: UUID,
    start_time: datetime,
    end_time: datetime,
    exclude_id: UUID | None = None,
) -> Appointment | None:
    """
    First slot-holding appointment of the doctor overlapping [start_time, end_time).

    Back-to-back appointments sharing a boundary do not overlap.
    """
    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)

    for candidate in query.order_by(Appointment.start_time.asc()):
        if intervals_overlap(candidate.start_time, candidate.end_time, start_time, end_time):
            return candidate
    return None


def _raise_if_conflicting(db: Session, *, doctor_id: UUID, start_time, end_time, exclude_id=None) -> None:
    conflicting = find_conflict(
        db,
        doctor_id=doctor_id,
        start_time=start_time,
        end_time=end_time,
        exclude_id=exclude_id,
    )
    if conflicting:
        raise ConflictError(
            "The doctor already has an appointment in this time slot.",
            detail={
                "conflict": {
                    "start": conflicting.start_time.isoformat(),
                    "end": conflicting.end_time.isoformat(),
                }
            },
        )


def create_appointment(
    db: Session,
    *,
    patient_id: UUID,
    doctor_id: UUID,
    start_time: datetime,
    end_time: datetime,
    reason: str | None = None,
) -> Appointment:
    """
    Book an appointment.

    Rules:
    - start_time must be before end_time.
    - Patient and doctor must resolve to active users; the doctor must carry the doctor role.
    - No overlap with a scheduled/confirmed appointment of the same doctor.
    """
    start_time, end_time = as_utc(start_time), as_utc(end_time)
    _validate_interval(start_time, end_time)

    require_user(db, patient_id, "Patient not found")
    # Row lock on the doctor serialises concurrent bookings for the same calendar
    require_doctor(db, doctor_id, lock=True)

    _raise_if_conflicting(db, doctor_id=doctor_id, start_time=start_time, end_time=end_time)

    appointment = Appointment(
        patient_id=patient_id,
        doctor_id=doctor_id,
        start_time=start_time,
        end_time=end_time,
        reason=reason,
        status=AppointmentStatus.SCHEDULED,
    )
    db.add(appointment)
    commit_or_raise(db, "create appointment")
    db.refresh(appointment)

    logger.info(
        "Appointment %s booked for doctor %s [%s, %s)",
        appointment.id,
        doctor_id,
        start_time.isoformat(),
        end_time.isoformat(),
    )
    return appointment


def get_appointment(db: Session, appointment_id: UUID, actor: Actor | None = None) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")
    if actor is not None and actor.role == RoleName.PATIENT and appointment.patient_id != actor.id:
        raise ForbiddenError("You can only view your own appointments.")
    return appointment


def update_appointment(db: Session, appointment_id: UUID, patch: AppointmentUpdate) -> Appointment:
    """
    Partial update.

    Rules:
    - Cancellation is final: a cancelled appointment keeps its status.
    - Setting status to cancelled stamps cancelled_at like cancel_appointment does.
    - The overlap check re-runs when the slot moves or a freed slot becomes
      slot-holding again (e.g. no-show back to scheduled).
    """
    appointment = get_appointment(db, appointment_id)
    changes = patch.model_dump(exclude_unset=True)

    current_status = appointment.status
    new_status = changes.get("status") or current_status
    if current_status == AppointmentStatus.CANCELLED and new_status != AppointmentStatus.CANCELLED:
        raise ValidationError(
            "Cancelled appointments cannot be reopened.",
            detail={"current_status": current_status.value, "requested_status": new_status.value},
        )

    moves_slot = "start_time" in changes or "end_time" in changes
    start_time = as_utc(changes.get("start_time") or appointment.start_time)
    end_time = as_utc(changes.get("end_time") or appointment.end_time)
    if moves_slot:
        _validate_interval(start_time, end_time)

    takes_slot_back = new_status in BLOCKING_STATUSES and current_status not in BLOCKING_STATUSES
    if new_status in BLOCKING_STATUSES and (moves_slot or takes_slot_back):
        require_doctor(db, appointment.doctor_id, lock=True)
        _raise_if_conflicting(
            db,
            doctor_id=appointment.doctor_id,
            start_time=start_time,
            end_time=end_time,
            exclude_id=appointment.id,
        )

    if moves_slot:
        # Assign start first so the end_time validator sees the new start
        appointment.start_time = start_time
        appointment.end_time = end_time

    if new_status != current_status:
        appointment.status = new_status
        if new_status == AppointmentStatus.CANCELLED:
            appointment.cancelled_at = utc_now()

    for field in ("reason", "notes"):
        if field in changes:
            setattr(appointment, field, changes[field])

    commit_or_raise(db, "update appointment")
    db.refresh(appointment)
    logger.info("Appointment %s updated: %s", appointment.id, sorted(changes))
    return appointment


def cancel_appointment(
    db: Session,
    appointment_id: UUID,
    *,
    actor: Actor,
    reason: str | None = None,
) -> Appointment:
    """
    Cancel an appointment.

    Rules:
    - Patients may cancel only their own appointments.
    - Cancelling an already cancelled appointment is a no-op that returns it unchanged.
    """
    appointment = get_appointment(db, appointment_id)

    if actor.role == RoleName.PATIENT and appointment.patient_id != actor.id:
        raise ForbiddenError("You can only cancel your own appointments.")

    if appointment.status == AppointmentStatus.CANCELLED:
        return appointment

    appointment.status = AppointmentStatus.CANCELLED
    appointment.cancelled_at = utc_now()
    if reason:
        appointment.cancellation_reason = reason

    commit_or_raise(db, "cancel appointment")
    db.refresh(appointment)
    logger.info("Appointment %s cancelled by %s", appointment.id, actor.id)
    return appointment


def list_appointments(
    db: Session,
    *,
    actor: Actor,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    doctor_id: UUID | None = None,
    patient_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Appointment], int]:
    """
    Appointment listing with optional filters. Patients only ever see their own.
    """
    query = db.query(Appointment)

    if actor.role == RoleName.PATIENT:
        patient_id = actor.id
    if doctor_id is not None:
        query = query.filter(Appointment.doctor_id == doctor_id)
    if patient_id is not None:
        query = query.filter(Appointment.patient_id == patient_id)
    if status is not None:
        query = query.filter(Appointment.status == status)
    if from_date is not None:
        query = query.filter(Appointment.start_time >= as_utc(from_date))
    if to_date is not None:
        query = query.filter(Appointment.start_time <= as_utc(to_date))

    total = query.count()
    items = query.order_by(Appointment.start_time.asc()).offset(skip).limit(limit).all()
    return items, total
