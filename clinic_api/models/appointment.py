# clinic_api/models/appointment.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from clinic_api.models.base import Base, TimestampMixin, UTCDateTime
from clinic_api.models.user import User
from clinic_api.utils.datetime_utils import as_utc, utc_now


class AppointmentStatus(str, PyEnum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Statuses that hold a slot in the doctor's calendar
BLOCKING_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)

APPOINTMENT_STATUS_ENUM = Enum(
    AppointmentStatus,
    name="appointment_status_enum",
    values_callable=lambda e: [m.value for m in e],
)


class Appointment(TimestampMixin, Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_patient_start", "patient_id", "start_time"),
        Index("ix_appointments_doctor_start", "doctor_id", "start_time"),
    )

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        doc="User with role doctor",
    )

    # Slot, half-open [start_time, end_time)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    status: Mapped[AppointmentStatus] = mapped_column(
        APPOINTMENT_STATUS_ENUM,
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
        server_default=text("'scheduled'"),
        index=True,
    )

    # Cancellation fields
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    reminder_sent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    patient: Mapped["User"] = relationship("User", foreign_keys=[patient_id])
    doctor: Mapped["User"] = relationship("User", foreign_keys=[doctor_id])

    @validates("end_time")
    def _validate_end_time(self, key, value):
        if value is not None and self.start_time is not None and as_utc(value) <= as_utc(self.start_time):
            raise ValueError("end_time must be after start_time")
        return value

    def is_future(self, now: datetime | None = None) -> bool:
        return as_utc(self.start_time) > (now or utc_now())

    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)
