# clinic_api/api/v1/endpoints/pharmacies.py
from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import require_roles
from clinic_api.models.user import RoleName
from clinic_api.schemas.common import Envelope, ok
from clinic_api.schemas.pharmacy import (
    PharmacyAssignRequest,
    PharmacyCreate,
    PharmacyResponse,
    PharmacyStatusUpdate,
)
from clinic_api.schemas.prescription import PrescriptionListResponse, PrescriptionResponse
from clinic_api.services import pharmacy_service
from clinic_api.services.pharmacy_service import DEFAULT_QUEUE_FILTER
from clinic_api.services.prescription_service import prescription_to_dict

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=Envelope[PharmacyResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_pharmacy(
    payload: PharmacyCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN)),
):
    pharmacy = pharmacy_service.create_pharmacy(db, payload)
    return ok("Pharmacy created successfully", PharmacyResponse.model_validate(pharmacy))


@router.get("", response_model=Envelope[list[PharmacyResponse]])
def list_pharmacies(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.SECRETARY)),
):
    pharmacies = pharmacy_service.list_pharmacies(db)
    return ok("Pharmacies retrieved successfully", [PharmacyResponse.model_validate(p) for p in pharmacies])


@router.post("/prescriptions/{prescription_id}/assign", response_model=Envelope[PrescriptionResponse])
def assign_prescription(
    prescription_id: UUID,
    payload: PharmacyAssignRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.SECRETARY)),
):
    """
    Route a signed prescription to a partner pharmacy.
    """
    prescription = pharmacy_service.assign_to_pharmacy(db, prescription_id, payload.pharmacy_id)
    return ok("Prescription assigned to pharmacy successfully", prescription_to_dict(prescription))


@router.patch("/prescriptions/{prescription_id}/status", response_model=Envelope[PrescriptionResponse])
def update_prescription_status(
    prescription_id: UUID,
    payload: PharmacyStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.PHARMACIST)),
):
    """
    Pharmacist-side progress: assigned -> preparing -> ready -> delivered,
    or rejected from assigned/preparing.
    """
    prescription = pharmacy_service.pharmacist_update_status(
        db,
        prescription_id,
        payload.status,
        notes=payload.notes,
    )
    return ok("Prescription status updated successfully", prescription_to_dict(prescription))


@router.get("/{pharmacy_id}/prescriptions", response_model=Envelope[PrescriptionListResponse])
def list_pharmacy_prescriptions(
    pharmacy_id: UUID,
    status_filter: str = Query(DEFAULT_QUEUE_FILTER, alias="status", description="Comma separated statuses"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.PHARMACIST, RoleName.DOCTOR, RoleName.NURSE)),
):
    items, total = pharmacy_service.list_pharmacy_prescriptions(
        db,
        pharmacy_id,
        statuses=status_filter,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return ok(
        "Pharmacy prescriptions retrieved successfully",
        {"items": [prescription_to_dict(p) for p in items], "total": total, "page": page, "page_size": page_size},
    )
