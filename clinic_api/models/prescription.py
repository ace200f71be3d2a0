# clinic_api/models/prescription.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Enum, ForeignKey, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.models.base import Base, LifecycleMixin, TimestampMixin, UTCDateTime
from clinic_api.models.consultation import Consultation
from clinic_api.models.user import User
from clinic_api.utils.datetime_utils import utc_now


class PrescriptionStatus(str, PyEnum):
    DRAFT = "draft"
    SIGNED = "signed"
    ASSIGNED = "assigned"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    REJECTED = "rejected"


class MedicationRoute(str, PyEnum):
    ORAL = "Orale"
    INTRAVENOUS = "Intraveineuse"
    INTRAMUSCULAR = "Intramusculaire"
    SUBCUTANEOUS = "Sous-cutanée"
    TOPICAL = "Topique"
    NASAL = "Nasale"
    OCULAR = "Oculaire"
    AURICULAR = "Auriculaire"
    RECTAL = "Rectale"
    VAGINAL = "Vaginale"
    INHALATION = "Inhalation"
    SUBLINGUAL = "Sublinguale"


def _values(enum_cls):
    return [m.value for m in enum_cls]


class Prescription(LifecycleMixin, TimestampMixin, Base):
    __tablename__ = "prescriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    consultation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("consultations.id", ondelete="CASCADE"),
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

    prescription_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus, name="prescription_status_enum", values_callable=_values),
        nullable=False,
        default=PrescriptionStatus.DRAFT,
        server_default=text("'draft'"),
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Lifecycle timestamps, one per transition
    signed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    valid_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    assigned_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    preparing_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    ready_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Pharmacy routing
    pharmacy_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("pharmacies.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    pharmacy_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    consultation: Mapped["Consultation"] = relationship("Consultation")
    patient: Mapped["User"] = relationship("User", foreign_keys=[patient_id])
    doctor: Mapped["User"] = relationship("User", foreign_keys=[doctor_id])
    medications: Mapped[list["PrescriptionMedication"]] = relationship(
        "PrescriptionMedication",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionMedication.position",
    )

    def can_be_modified(self) -> bool:
        return self.status == PrescriptionStatus.DRAFT

    def can_be_signed(self) -> bool:
        return self.status == PrescriptionStatus.DRAFT and len(self.medications) > 0

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.valid_until is not None and self.valid_until < (now or utc_now())

    def active_medications(self, now: datetime | None = None) -> list["PrescriptionMedication"]:
        now = now or utc_now()
        return [m for m in self.medications if m.end_date is None or m.end_date > now]


class PrescriptionMedication(Base):
    __tablename__ = "prescription_medications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    prescription_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("prescriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    dosage: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "500mg"
    route: Mapped[MedicationRoute] = mapped_column(
        Enum(MedicationRoute, name="medication_route_enum", values_callable=_values),
        nullable=False,
    )
    frequency: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "every 8 hours"
    duration: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "5 days"
    renewals: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    instructions: Mapped[str | None] = mapped_column(String(500), nullable=True)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    prescription: Mapped["Prescription"] = relationship("Prescription", back_populates="medications")
