# clinic_api/api/v1/endpoints/laboratories.py
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import require_roles
from clinic_api.models.laboratory import PartnershipStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.common import Envelope, ok
from clinic_api.schemas.laboratory import LaboratoryCreate, LaboratoryResponse
from clinic_api.services import laboratory_service

router = APIRouter()
logger = logging.getLogger(__name__)

READ_ROLES = (RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.LAB_TECHNICIAN)


@router.post(
    "",
    response_model=Envelope[LaboratoryResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_laboratory(
    payload: LaboratoryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN)),
):
    laboratory = laboratory_service.create_laboratory(db, payload)
    return ok("Laboratory created successfully", LaboratoryResponse.model_validate(laboratory))


@router.get("", response_model=Envelope[list[LaboratoryResponse]])
def list_laboratories(
    city: str | None = Query(None),
    partnership_status: PartnershipStatus | None = Query(None),
    test_code: str | None = Query(None, description="Only laboratories performing this test"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*READ_ROLES)),
):
    laboratories = laboratory_service.list_laboratories(
        db,
        city=city,
        partnership_status=partnership_status,
        test_code=test_code,
    )
    return ok("Laboratories retrieved successfully", [LaboratoryResponse.model_validate(lab) for lab in laboratories])


@router.get("/{laboratory_id}", response_model=Envelope[LaboratoryResponse])
def get_laboratory(
    laboratory_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(*READ_ROLES)),
):
    laboratory = laboratory_service.get_laboratory(db, laboratory_id)
    return ok("Laboratory retrieved successfully", LaboratoryResponse.model_validate(laboratory))
