# clinic_api/models/consultation.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.models.appointment import Appointment
from clinic_api.models.base import Base, TimestampMixin, UTCDateTime
from clinic_api.models.user import User
from clinic_api.utils.datetime_utils import utc_now


class Consultation(TimestampMixin, Base):
    """
    Clinical record of a completed appointment. Exactly one per appointment.
    """

    __tablename__ = "consultations"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Foreign Keys
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    doctor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)

    # Clinical notes
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    treatment: Mapped[str | None] = mapped_column(Text, nullable=True)
    medical_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Vital Signs
    blood_pressure: Mapped[str | None] = mapped_column(String(20), nullable=True)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    heart_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    weight: Mapped[float | None] = mapped_column(Float, nullable=True)  # kg
    height: Mapped[float | None] = mapped_column(Float, nullable=True)  # cm

    lab_tests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    attachments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    follow_up_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    appointment: Mapped["Appointment"] = relationship("Appointment")
    patient: Mapped["User"] = relationship("User", foreign_keys=[patient_id])
    doctor: Mapped["User"] = relationship("User", foreign_keys=[doctor_id])
