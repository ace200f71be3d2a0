# clinic_api/api/v1/endpoints/consultations.py
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import require_roles
from clinic_api.models.user import RoleName
from clinic_api.schemas.common import Envelope, ok
from clinic_api.schemas.consultation import ConsultationCreate, ConsultationResponse, ConsultationUpdate
from clinic_api.services import consultation_service

router = APIRouter()
logger = logging.getLogger(__name__)

READ_ROLES = (RoleName.DOCTOR, RoleName.PATIENT, RoleName.ADMIN)


@router.post(
    "",
    response_model=Envelope[ConsultationResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_consultation(
    payload: ConsultationCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.DOCTOR)),
):
    """
    Record the consultation of a completed appointment.

    Rules:
    - Appointment must be completed (400) and belong to the calling doctor (403).
    - One consultation per appointment (409).
    """
    consultation = consultation_service.create_consultation(db, doctor_id=actor.id, payload=payload)
    return ok("Consultation created successfully", consultation_service.consultation_to_dict(db, consultation))


@router.get("/patient/{patient_id}", response_model=Envelope[list[ConsultationResponse]])
def list_patient_consultations(
    patient_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*READ_ROLES)),
):
    consultations = consultation_service.list_patient_consultations(db, patient_id, actor)
    return ok(
        "Patient consultations retrieved successfully",
        [consultation_service.consultation_to_dict(db, c) for c in consultations],
    )


@router.get("/{consultation_id}", response_model=Envelope[ConsultationResponse])
def get_consultation(
    consultation_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*READ_ROLES)),
):
    consultation = consultation_service.get_consultation(db, consultation_id, actor)
    return ok("Consultation retrieved successfully", consultation_service.consultation_to_dict(db, consultation))


@router.patch("/{consultation_id}", response_model=Envelope[ConsultationResponse])
def update_consultation(
    consultation_id: UUID,
    payload: ConsultationUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.DOCTOR)),
):
    consultation = consultation_service.update_consultation(
        db,
        consultation_id,
        actor_id=actor.id,
        payload=payload,
    )
    return ok("Consultation updated successfully", consultation_service.consultation_to_dict(db, consultation))
