# clinic_api/services/lab_order_service.py
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.core.database import commit_or_raise
from clinic_api.core.errors import ForbiddenError, NotFoundError, ValidationError
from clinic_api.core.security import Actor
from clinic_api.models.consultation import Consultation
from clinic_api.models.lab_order import (
    LabOrder,
    LabOrderPriority,
    LabOrderStatus,
    LabOrderTest,
    LabTestStatus,
)
from clinic_api.models.laboratory import Laboratory
from clinic_api.models.user import RoleName
from clinic_api.schemas.lab_order import LabOrderCreate, LabTestResultUpdate
from clinic_api.services import laboratory_service
from clinic_api.services.lookups import active_query, require_active, require_doctor, require_user
from clinic_api.utils.datetime_utils import as_utc, utc_now
from clinic_api.utils.id_generators import generate_lab_order_number

logger = logging.getLogger(__name__)

# Turnaround promised per priority
REPORT_SLA: dict[LabOrderPriority, timedelta] = {
    LabOrderPriority.STAT: timedelta(hours=2),
    LabOrderPriority.URGENT: timedelta(hours=6),
}
DEFAULT_REPORT_SLA = timedelta(hours=48)

# Orders in these statuses accept no further status changes
FROZEN_STATUSES = (LabOrderStatus.CANCELLED, LabOrderStatus.REPORTED)

_DONE_TEST_STATUSES = (LabTestStatus.COMPLETED, LabTestStatus.REPORTED)


# -------------------------
# Derived values
# -------------------------
def expected_report_date(
    priority: LabOrderPriority,
    sample_collection_date: datetime | None,
    appointment_date: datetime | None,
) -> datetime | None:
    base = sample_collection_date or appointment_date
    if base is None:
        return None
    return as_utc(base) + REPORT_SLA.get(priority, DEFAULT_REPORT_SLA)


def total_amount(prices: Sequence[float | None]) -> float:
    return float(sum(price or 0 for price in prices))


def roll_up_status(current: LabOrderStatus, test_statuses: Sequence[LabTestStatus]) -> LabOrderStatus:
    """
    Derive the order status from its tests. Rules are evaluated in order,
    first match wins:

    - every test cancelled            -> cancelled
    - every remaining test done       -> completed
    - some remaining tests done       -> partially_completed
    - any test in progress            -> in_progress
    - every remaining sample taken    -> sample_collected
    - otherwise                       -> current

    Cancelled tests are left out of the remaining rules; reported counts as done.
    """
    remaining = [s for s in test_statuses if s != LabTestStatus.CANCELLED]
    if not remaining:
        return LabOrderStatus.CANCELLED if test_statuses else current

    done = sum(1 for s in remaining if s in _DONE_TEST_STATUSES)
    if done == len(remaining):
        return LabOrderStatus.COMPLETED
    if done > 0:
        return LabOrderStatus.PARTIALLY_COMPLETED
    if any(s == LabTestStatus.IN_PROGRESS for s in remaining):
        return LabOrderStatus.IN_PROGRESS
    if all(s == LabTestStatus.SAMPLE_COLLECTED for s in remaining):
        return LabOrderStatus.SAMPLE_COLLECTED
    return current


# -------------------------
# Laboratory statistics (best-effort)
# -------------------------
def _update_laboratory_statistics(
    db: Session,
    laboratory_id: UUID,
    apply: Callable[[Laboratory], None],
    action: str,
) -> None:
    # Non-critical: the lab order write is already committed
    try:
        with db.begin_nested():
            laboratory = db.get(Laboratory, laboratory_id)
            if laboratory:
                apply(laboratory)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to %s for laboratory %s (non-critical): %s", action, laboratory_id, e, exc_info=True)


def _count_new_order(db: Session, laboratory_id: UUID) -> None:
    _update_laboratory_statistics(
        db,
        laboratory_id,
        lambda lab: laboratory_service.update_statistics(lab, 1),
        "update order statistics",
    )


def _record_turnaround(db: Session, order: LabOrder) -> None:
    started = order.sample_collection_date or order.created_at
    hours = (utc_now() - as_utc(started)).total_seconds() / 3600
    _update_laboratory_statistics(
        db,
        order.laboratory_id,
        lambda lab: laboratory_service.record_processing_time(lab, hours),
        "record processing time",
    )


# -------------------------
# Lifecycle
# -------------------------
def create_lab_order(db: Session, *, doctor_id: UUID, payload: LabOrderCreate) -> LabOrder:
    """
    Create a lab order with its test panel.

    Rules:
    - Patient and doctor must resolve; consultation too when given.
    - When a laboratory is given it must be an active partner able to perform every test.
    - total_amount is the sum of test prices; expected_report_date follows the priority SLA.
    """
    require_user(db, payload.patient_id, "Patient not found")
    require_doctor(db, doctor_id)
    if payload.consultation_id and not db.get(Consultation, payload.consultation_id):
        raise NotFoundError("Consultation not found")

    laboratory = None
    if payload.laboratory_id:
        laboratory = laboratory_service.require_partner_laboratory(db, payload.laboratory_id)
        laboratory_service.ensure_can_perform(laboratory, [t.test_code for t in payload.tests])

    now = utc_now()
    order = LabOrder(
        order_number=generate_lab_order_number(db, now),
        patient_id=payload.patient_id,
        doctor_id=doctor_id,
        consultation_id=payload.consultation_id,
        laboratory_id=laboratory.id if laboratory else None,
        status=LabOrderStatus.PENDING,
        priority=payload.priority,
        clinical_info=payload.clinical_info.model_dump() if payload.clinical_info else None,
        appointment_date=payload.appointment_date,
        sample_collection_date=payload.sample_collection_date,
        notes=payload.notes,
        tests=[LabOrderTest(position=i, **test.model_dump()) for i, test in enumerate(payload.tests)],
    )
    order.total_amount = total_amount([t.price for t in payload.tests])
    order.expected_report_date = expected_report_date(
        order.priority, payload.sample_collection_date, payload.appointment_date
    )

    db.add(order)
    commit_or_raise(db, "create lab order")
    db.refresh(order)
    logger.info("Lab order %s created with %d test(s)", order.order_number, len(order.tests))

    if laboratory:
        _count_new_order(db, laboratory.id)
    return order


def require_lab_order(db: Session, order_id: UUID) -> LabOrder:
    return require_active(db, LabOrder, order_id, "Lab order not found")


def get_lab_order(db: Session, order_id: UUID, actor: Actor | None = None) -> LabOrder:
    order = require_lab_order(db, order_id)
    if actor is not None and actor.role == RoleName.PATIENT and order.patient_id != actor.id:
        raise ForbiddenError("You can only view your own lab orders.")
    return order


def update_test_result(
    db: Session,
    order_id: UUID,
    test_index: int,
    result: LabTestResultUpdate,
    *,
    reported_by: UUID,
) -> LabOrder:
    """
    Store one test's result, mark it completed and roll the order status up.
    """
    order = require_lab_order(db, order_id)

    if order.status in FROZEN_STATUSES:
        raise ValidationError(
            "Results cannot be recorded on a cancelled or reported lab order.",
            detail={"current_status": order.status.value},
        )
    if test_index < 0 or test_index >= len(order.tests):
        raise ValidationError(
            "Invalid test index.",
            detail={"test_index": test_index, "tests": len(order.tests)},
        )

    now = utc_now()
    test = order.tests[test_index]
    test.result = {
        **result.model_dump(mode="json"),
        "reported_at": now.isoformat(),
        "reported_by": str(reported_by),
    }
    test.status = LabTestStatus.COMPLETED
    test.completed_at = now

    previous = order.status
    order.status = roll_up_status(previous, [t.status for t in order.tests])

    commit_or_raise(db, "update test result")
    db.refresh(order)
    logger.info(
        "Lab order %s test %d completed, order %s -> %s",
        order.order_number,
        test_index,
        previous.value,
        order.status.value,
    )

    if order.status == LabOrderStatus.COMPLETED and previous != LabOrderStatus.COMPLETED and order.laboratory_id:
        _record_turnaround(db, order)
    return order


def assign_to_laboratory(db: Session, order_id: UUID, laboratory_id: UUID) -> LabOrder:
    """
    Route an order to a partner laboratory able to perform the whole panel.
    Only orders that have not started processing can be (re)assigned.
    """
    order = require_lab_order(db, order_id)
    if not order.can_be_modified():
        raise ValidationError(
            "Only pending or ordered lab orders can be assigned.",
            detail={"status": order.status.value},
        )

    laboratory = laboratory_service.require_partner_laboratory(db, laboratory_id)
    laboratory_service.ensure_can_perform(laboratory, [t.test_code for t in order.tests])

    order.laboratory_id = laboratory.id
    order.status = LabOrderStatus.ORDERED
    order.expected_report_date = expected_report_date(
        order.priority, order.sample_collection_date, order.appointment_date
    )

    commit_or_raise(db, "assign lab order")
    db.refresh(order)
    logger.info("Lab order %s assigned to laboratory %s", order.order_number, laboratory.lab_code)

    _count_new_order(db, laboratory.id)
    return order


def cancel_lab_order(db: Session, order_id: UUID, *, actor: Actor, reason: str | None = None) -> LabOrder:
    order = require_lab_order(db, order_id)
    if not order.can_be_cancelled():
        raise ValidationError(
            "This lab order cannot be cancelled.",
            detail={"current_status": order.status.value},
        )

    order.status = LabOrderStatus.CANCELLED
    if reason:
        order.notes = f"{order.notes or ''}\nCancelled: {reason}".strip()

    commit_or_raise(db, "cancel lab order")
    db.refresh(order)
    logger.info("Lab order %s cancelled by %s", order.order_number, actor.id)
    return order


def update_lab_order_status(
    db: Session,
    order_id: UUID,
    new_status: LabOrderStatus,
    *,
    lab_notes: str | None = None,
) -> LabOrder:
    """
    Laboratory-side status update.

    Rules:
    - Cancelled and reported orders are frozen.
    - sample_collected stamps the collection date (once) and recomputes the expected report date.
    - reported stamps the actual report date.
    """
    order = require_lab_order(db, order_id)
    if order.status in FROZEN_STATUSES:
        raise ValidationError(
            "A cancelled or reported lab order cannot be modified.",
            detail={"current_status": order.status.value},
        )

    now = utc_now()
    previous = order.status
    order.status = new_status
    if new_status == LabOrderStatus.SAMPLE_COLLECTED and order.sample_collection_date is None:
        order.sample_collection_date = now
        order.expected_report_date = expected_report_date(order.priority, now, order.appointment_date)
    elif new_status == LabOrderStatus.REPORTED:
        order.actual_report_date = now
    if lab_notes:
        order.lab_notes = lab_notes

    commit_or_raise(db, "update lab order status")
    db.refresh(order)
    logger.info("Lab order %s moved %s -> %s", order.order_number, previous.value, new_status.value)
    return order


def list_patient_lab_orders(
    db: Session,
    patient_id: UUID,
    *,
    actor: Actor,
    status: LabOrderStatus | None = None,
    limit: int = 10,
) -> list[LabOrder]:
    if actor.role == RoleName.PATIENT and actor.id != patient_id:
        raise ForbiddenError("You can only view your own lab orders.")

    query = active_query(db, LabOrder).filter(LabOrder.patient_id == patient_id)
    if status is not None:
        query = query.filter(LabOrder.status == status)
    return query.order_by(LabOrder.created_at.desc()).limit(limit).all()
