# clinic_api/api/v1/endpoints/prescriptions.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import require_roles
from clinic_api.models.prescription import PrescriptionStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.common import Envelope, ok
from clinic_api.schemas.prescription import (
    PrescriptionCreate,
    PrescriptionListResponse,
    PrescriptionResponse,
    PrescriptionUpdate,
)
from clinic_api.services import prescription_service
from clinic_api.services.prescription_service import prescription_to_dict

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=Envelope[PrescriptionResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_prescription(
    payload: PrescriptionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.DOCTOR)),
):
    """
    Create a draft prescription for one of the calling doctor's consultations.
    """
    prescription = prescription_service.create_prescription(
        db,
        consultation_id=payload.consultation_id,
        doctor_id=actor.id,
        medications=payload.medications,
        notes=payload.notes,
    )
    return ok("Prescription created successfully", prescription_to_dict(prescription))


@router.get("", response_model=Envelope[PrescriptionListResponse])
def list_prescriptions(
    status_filter: PrescriptionStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    doctor_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(
        require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.SECRETARY, RoleName.PATIENT)
    ),
):
    items, total = prescription_service.list_prescriptions(
        db,
        actor=actor,
        status=status_filter,
        patient_id=patient_id,
        doctor_id=doctor_id,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return ok(
        "Prescriptions retrieved successfully",
        {"items": [prescription_to_dict(p) for p in items], "total": total, "page": page, "page_size": page_size},
    )


@router.get("/patient/{patient_id}", response_model=Envelope[PrescriptionListResponse])
def list_patient_prescriptions(
    patient_id: UUID,
    status_filter: PrescriptionStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.PATIENT)),
):
    items, total = prescription_service.list_patient_prescriptions(
        db,
        patient_id,
        actor=actor,
        status=status_filter,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return ok(
        "Patient prescriptions retrieved successfully",
        {"items": [prescription_to_dict(p) for p in items], "total": total, "page": page, "page_size": page_size},
    )


@router.get("/{prescription_id}", response_model=Envelope[PrescriptionResponse])
def get_prescription(
    prescription_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.PATIENT)),
):
    prescription = prescription_service.get_prescription(db, prescription_id, actor)
    return ok("Prescription retrieved successfully", prescription_to_dict(prescription))


@router.patch("/{prescription_id}", response_model=Envelope[PrescriptionResponse])
def update_prescription(
    prescription_id: UUID,
    payload: PrescriptionUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.DOCTOR)),
):
    """
    Replace medications and/or notes. Draft prescriptions only.
    """
    prescription = prescription_service.update_prescription(
        db,
        prescription_id,
        doctor_id=actor.id,
        medications=payload.medications,
        notes=payload.notes,
    )
    return ok("Prescription updated successfully", prescription_to_dict(prescription))


@router.patch("/{prescription_id}/sign", response_model=Envelope[PrescriptionResponse])
def sign_prescription(
    prescription_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.DOCTOR)),
):
    prescription = prescription_service.sign_prescription(db, prescription_id, doctor_id=actor.id)
    return ok("Prescription signed successfully", prescription_to_dict(prescription))


@router.delete("/{prescription_id}", response_model=Envelope[None])
def delete_prescription(
    prescription_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR)),
):
    prescription_service.delete_prescription(db, prescription_id, actor=actor)
    return ok("Prescription deleted successfully")
