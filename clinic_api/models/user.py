import uuid
from enum import Enum as PyEnum

from sqlalchemy import Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, LifecycleMixin, TimestampMixin


class RoleName(str, PyEnum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    SECRETARY = "secretary"
    PATIENT = "patient"
    PHARMACIST = "pharmacist"
    LAB_TECHNICIAN = "lab_technician"

    @classmethod
    def _missing_(cls, value):
        # Canonical comparison is case-insensitive ("Doctor" == "doctor").
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class User(LifecycleMixin, TimestampMixin, Base):
    """
    Represents a clinic user. Staff and patients share this table;
    role decides what they can do.
    """

    __tablename__ = "users"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Personal Information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Professional Information
    specialization: Mapped[str | None] = mapped_column(String(100), nullable=True)

    role: Mapped[RoleName] = mapped_column(
        Enum(RoleName, name="role_name_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
