# clinic_api/api/v1/endpoints/appointments.py
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import get_current_actor, require_roles
from clinic_api.models.appointment import AppointmentStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.appointment import (
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    AvailabilityResponse,
)
from clinic_api.schemas.common import Envelope, ok
from clinic_api.services import appointment_service, availability_service

router = APIRouter()
logger = logging.getLogger(__name__)

SCHEDULING_ROLES = (RoleName.DOCTOR, RoleName.NURSE, RoleName.SECRETARY, RoleName.ADMIN)


def _to_response(appointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "",
    response_model=Envelope[AppointmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*SCHEDULING_ROLES)),
):
    """
    Book an appointment for a patient with a doctor.

    Rules:
    - start_time < end_time.
    - Patient and doctor must exist; doctor must have the doctor role.
    - 409 when the slot overlaps another scheduled/confirmed appointment of the doctor.
    """
    appointment = appointment_service.create_appointment(
        db,
        patient_id=payload.patient_id,
        doctor_id=payload.doctor_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        reason=payload.reason,
    )
    return ok("Appointment created successfully", _to_response(appointment))


@router.get("", response_model=Envelope[list[AppointmentResponse]])
def list_appointments(
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    items, total = appointment_service.list_appointments(
        db,
        actor=actor,
        from_date=from_date,
        to_date=to_date,
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=status_filter,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return ok(f"{total} appointment(s) found", [_to_response(a) for a in items])


@router.get("/availability/{doctor_id}", response_model=Envelope[AvailabilityResponse])
def get_availability(
    doctor_id: UUID,
    date: str = Query(..., description="Calendar day, YYYY-MM-DD"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Free slots of a doctor within working hours for one day.
    """
    availability = availability_service.get_availability(db, doctor_id, date)
    return ok("Availability retrieved successfully", availability)


@router.get("/{appointment_id}", response_model=Envelope[AppointmentResponse])
def get_appointment(
    appointment_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    appointment = appointment_service.get_appointment(db, appointment_id, actor)
    return ok("Appointment retrieved successfully", _to_response(appointment))


@router.patch("/{appointment_id}", response_model=Envelope[AppointmentResponse])
def update_appointment(
    appointment_id: UUID,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*SCHEDULING_ROLES)),
):
    """
    Reschedule or update an appointment. A new slot is checked for overlaps
    against the doctor's other appointments.
    """
    appointment = appointment_service.update_appointment(db, appointment_id, payload)
    return ok("Appointment updated successfully", _to_response(appointment))


@router.patch("/{appointment_id}/cancel", response_model=Envelope[AppointmentResponse])
def cancel_appointment(
    appointment_id: UUID,
    payload: AppointmentCancelRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Cancel an appointment. Patients can cancel only their own.
    Cancelling twice returns the already cancelled appointment.
    """
    appointment = appointment_service.cancel_appointment(
        db,
        appointment_id,
        actor=actor,
        reason=payload.reason if payload else None,
    )
    return ok("Appointment cancelled successfully", _to_response(appointment))
