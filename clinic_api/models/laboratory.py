# clinic_api/models/laboratory.py
import uuid
from enum import Enum as PyEnum

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.models.base import Base, LifecycleMixin, TimestampMixin
from clinic_api.utils.operating_hours import is_open_now


class PartnershipStatus(str, PyEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


PARTNERSHIP_STATUS_ENUM = Enum(
    PartnershipStatus,
    name="partnership_status_enum",
    values_callable=lambda e: [m.value for m in e],
)


class Laboratory(LifecycleMixin, TimestampMixin, Base):
    """
    External laboratory the clinic routes lab orders to.
    Catalog entity owned by clinic administration.
    """

    __tablename__ = "laboratories"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    license_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    lab_code: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)

    # Contact
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    # Address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="Maroc")

    # {"monday": {"is_open": true, "morning": {"open": "08:00", "close": "12:00"}, "afternoon": {...}}, ...}
    operating_hours: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    partnership_status: Mapped[PartnershipStatus] = mapped_column(
        PARTNERSHIP_STATUS_ENUM,
        nullable=False,
        default=PartnershipStatus.ACTIVE,
        server_default=text("'active'"),
        index=True,
    )

    # Statistics
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_month_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_processing_time: Mapped[float | None] = mapped_column(Float, nullable=True)  # hours

    available_tests: Mapped[list["LaboratoryTest"]] = relationship(
        "LaboratoryTest",
        back_populates="laboratory",
        cascade="all, delete-orphan",
    )

    @property
    def is_open_now(self) -> bool:
        return is_open_now(self.operating_hours)


class LaboratoryTest(Base):
    """One entry of a laboratory's test catalog."""

    __tablename__ = "laboratory_tests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    laboratory_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("laboratories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    test_code: Mapped[str] = mapped_column(String(50), nullable=False)
    test_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    duration: Mapped[str | None] = mapped_column(String(50), nullable=True)  # e.g. "24 heures"
    specimen: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )

    laboratory: Mapped["Laboratory"] = relationship("Laboratory", back_populates="available_tests")
