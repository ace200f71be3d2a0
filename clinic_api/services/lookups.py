# clinic_api/services/lookups.py
"""
Central id resolution. Every service resolves referenced records through
these helpers so deactivated rows behave as if they did not exist.
"""
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Query, Session

from clinic_api.core.errors import NotFoundError
from clinic_api.models.base import RecordState
from clinic_api.models.user import RoleName, User

ModelT = TypeVar("ModelT")


def active_query(db: Session, model: type[ModelT]) -> Query:
    query = db.query(model)
    if hasattr(model, "state"):
        query = query.filter(model.state == RecordState.ACTIVE)
    return query


def get_active(db: Session, model: type[ModelT], record_id: UUID) -> ModelT | None:
    return active_query(db, model).filter(model.id == record_id).first()


def require_active(db: Session, model: type[ModelT], record_id: UUID, message: str) -> ModelT:
    record = get_active(db, model, record_id)
    if record is None:
        raise NotFoundError(message)
    return record


def require_user(db: Session, user_id: UUID, message: str = "User not found") -> User:
    return require_active(db, User, user_id, message)


def require_doctor(db: Session, doctor_id: UUID, *, lock: bool = False) -> User:
    """
    Resolve a doctor. A user that exists but is not a doctor is reported
    as not found, same as a missing id.

    lock=True takes a row lock on the doctor for the rest of the
    transaction, serialising calendar writes per doctor.
    """
    query = active_query(db, User).filter(User.id == doctor_id)
    if lock:
        query = query.with_for_update()
    doctor = query.first()
    if doctor is None:
        raise NotFoundError("Doctor not found")
    if doctor.role != RoleName.DOCTOR:
        raise NotFoundError("Selected user is not a doctor", detail={"doctor_id": str(doctor_id)})
    return doctor
