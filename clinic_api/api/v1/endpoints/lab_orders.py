# clinic_api/api/v1/endpoints/lab_orders.py
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from clinic_api.core.database import get_db
from clinic_api.core.errors import ValidationError
from clinic_api.core.security import Actor
from clinic_api.dependencies.authz import require_roles
from clinic_api.models.lab_order import LabOrderStatus
from clinic_api.models.user import RoleName
from clinic_api.schemas.common import Envelope, ok
from clinic_api.schemas.lab_order import (
    LabOrderAssignRequest,
    LabOrderCancelRequest,
    LabOrderCreate,
    LabOrderResponse,
    LabOrderStatusUpdate,
    LabOrderTestResponse,
    LabTestResultResponse,
    LabTestResultUpdate,
)
from clinic_api.services import lab_order_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_response(order) -> LabOrderResponse:
    return LabOrderResponse.model_validate(order)


@router.post(
    "",
    response_model=Envelope[LabOrderResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_lab_order(
    payload: LabOrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE)),
):
    """
    Create a lab order.

    Rules:
    - doctor_id defaults to the calling doctor; other roles must name the doctor.
    - A given laboratory must be an active partner performing every requested test.
    """
    doctor_id = payload.doctor_id
    if doctor_id is None:
        if actor.role != RoleName.DOCTOR:
            raise ValidationError("doctor_id is required.")
        doctor_id = actor.id

    order = lab_order_service.create_lab_order(db, doctor_id=doctor_id, payload=payload)
    return ok("Lab order created successfully", _to_response(order))


@router.get("/patient/{patient_id}", response_model=Envelope[list[LabOrderResponse]])
def list_patient_lab_orders(
    patient_id: UUID,
    status_filter: LabOrderStatus | None = Query(None, alias="status"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.PATIENT)),
):
    orders = lab_order_service.list_patient_lab_orders(
        db,
        patient_id,
        actor=actor,
        status=status_filter,
        limit=limit,
    )
    return ok("Patient lab orders retrieved successfully", [_to_response(o) for o in orders])


@router.get("/{order_id}", response_model=Envelope[LabOrderResponse])
def get_lab_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(
        require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE, RoleName.LAB_TECHNICIAN, RoleName.PATIENT)
    ),
):
    order = lab_order_service.get_lab_order(db, order_id, actor)
    return ok("Lab order retrieved successfully", _to_response(order))


@router.patch("/{order_id}/status", response_model=Envelope[LabOrderResponse])
def update_lab_order_status(
    order_id: UUID,
    payload: LabOrderStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.LAB_TECHNICIAN)),
):
    order = lab_order_service.update_lab_order_status(
        db,
        order_id,
        payload.status,
        lab_notes=payload.lab_notes,
    )
    return ok("Lab order status updated successfully", _to_response(order))


@router.patch("/{order_id}/tests/{test_index}/result", response_model=Envelope[LabTestResultResponse])
def update_test_result(
    order_id: UUID,
    test_index: int,
    payload: LabTestResultUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.LAB_TECHNICIAN, RoleName.DOCTOR)),
):
    """
    Record a test result. The order status is rolled up from its tests.
    """
    order = lab_order_service.update_test_result(
        db,
        order_id,
        test_index,
        payload,
        reported_by=actor.id,
    )
    return ok(
        "Test result updated successfully",
        {
            "test": LabOrderTestResponse.model_validate(order.tests[test_index]),
            "overall_status": order.status,
        },
    )


@router.patch("/{order_id}/assign", response_model=Envelope[LabOrderResponse])
def assign_lab_order(
    order_id: UUID,
    payload: LabOrderAssignRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR, RoleName.NURSE)),
):
    order = lab_order_service.assign_to_laboratory(db, order_id, payload.laboratory_id)
    return ok("Lab order assigned to laboratory successfully", _to_response(order))


@router.patch("/{order_id}/cancel", response_model=Envelope[LabOrderResponse])
def cancel_lab_order(
    order_id: UUID,
    payload: LabOrderCancelRequest | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles(RoleName.ADMIN, RoleName.DOCTOR)),
):
    order = lab_order_service.cancel_lab_order(
        db,
        order_id,
        actor=actor,
        reason=payload.reason if payload else None,
    )
    return ok("Lab order cancelled successfully", _to_response(order))
