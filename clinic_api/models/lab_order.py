# clinic_api/models/lab_order.py
import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_api.models.base import Base, LifecycleMixin, TimestampMixin, UTCDateTime
from clinic_api.models.consultation import Consultation
from clinic_api.models.laboratory import Laboratory
from clinic_api.models.user import User


class LabOrderStatus(str, PyEnum):
    PENDING = "pending"
    ORDERED = "ordered"
    SAMPLE_COLLECTED = "sample_collected"
    IN_PROGRESS = "in_progress"
    PARTIALLY_COMPLETED = "partially_completed"
    COMPLETED = "completed"
    REPORTED = "reported"
    CANCELLED = "cancelled"


class LabTestStatus(str, PyEnum):
    ORDERED = "ordered"
    SAMPLE_COLLECTED = "sample_collected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REPORTED = "reported"
    CANCELLED = "cancelled"


class LabOrderPriority(str, PyEnum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"
    STAT = "STAT"


class LabTestUrgency(str, PyEnum):
    NORMAL = "Normal"
    URGENT = "Urgent"
    STAT = "STAT"
    SCHEDULED = "Programmé"


class LabTestCategory(str, PyEnum):
    HEMATOLOGY = "Hématologie"
    BIOCHEMISTRY = "Biochimie"
    IMMUNOLOGY = "Immunologie"
    MICROBIOLOGY = "Microbiologie"
    PARASITOLOGY = "Parasitologie"
    HORMONOLOGY = "Hormonologie"
    TOXICOLOGY = "Toxicologie"
    GENETICS = "Génétique"
    PATHOLOGY = "Anatomie pathologique"
    CYTOLOGY = "Cytologie"
    SEROLOGY = "Sérologie"
    ALLERGY = "Allergie"
    COAGULATION = "Coagulation"
    URINARY = "Urinaire"
    CARDIAC = "Cardiaque"
    HEPATIC = "Hépatique"
    RENAL = "Rénal"
    LIPID = "Lipidique"
    DIABETES = "Diabète"
    THYROID = "Thyroïde"
    OTHER = "Autre"


class SpecimenType(str, PyEnum):
    BLOOD = "Sang"
    URINE = "Urine"
    STOOL = "Selles"
    SALIVA = "Salive"
    SPUTUM = "Expectoration"
    CSF = "LCR"
    PLEURAL_FLUID = "Liquide pleural"
    ASCITIC_FLUID = "Liquide ascite"
    BIOPSY = "Biopsie"
    SMEAR = "Frottis"
    OTHER = "Autre"


class SpecimenContainer(str, PyEnum):
    EDTA_TUBE = "Tube EDTA"
    HEPARIN_TUBE = "Tube héparine"
    DRY_TUBE = "Tube sec"
    CITRATE_TUBE = "Tube citrate"
    STERILE_BOTTLE = "Flacon stérile"
    STERILE_POT = "Pot stérile"
    SLIDE = "Lame"
    SPECIAL = "Container spécial"


def _values(enum_cls):
    return [m.value for m in enum_cls]


class LabOrder(LifecycleMixin, TimestampMixin, Base):
    __tablename__ = "lab_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

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
    consultation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("consultations.id", ondelete="SET NULL"),
        nullable=True,
    )
    laboratory_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("laboratories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status: Mapped[LabOrderStatus] = mapped_column(
        Enum(LabOrderStatus, name="lab_order_status_enum", values_callable=_values),
        nullable=False,
        default=LabOrderStatus.PENDING,
        server_default=text("'pending'"),
        index=True,
    )
    priority: Mapped[LabOrderPriority] = mapped_column(
        Enum(LabOrderPriority, name="lab_order_priority_enum", values_callable=_values),
        nullable=False,
        default=LabOrderPriority.NORMAL,
        server_default=text("'Normal'"),
    )

    # {"symptoms": [...], "diagnosis": "...", "medications": [...], "allergies": [...], "relevant_history": "..."}
    clinical_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    appointment_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    sample_collection_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    expected_report_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    actual_report_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    lab_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    patient: Mapped["User"] = relationship("User", foreign_keys=[patient_id])
    doctor: Mapped["User"] = relationship("User", foreign_keys=[doctor_id])
    consultation: Mapped["Consultation"] = relationship("Consultation")
    laboratory: Mapped["Laboratory"] = relationship("Laboratory")
    tests: Mapped[list["LabOrderTest"]] = relationship(
        "LabOrderTest",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="LabOrderTest.position",
    )

    def can_be_modified(self) -> bool:
        return self.status in (LabOrderStatus.PENDING, LabOrderStatus.ORDERED)

    def can_be_cancelled(self) -> bool:
        return self.status not in (
            LabOrderStatus.COMPLETED,
            LabOrderStatus.REPORTED,
            LabOrderStatus.CANCELLED,
        )

    def completed_tests(self) -> list["LabOrderTest"]:
        return [t for t in self.tests if t.status == LabTestStatus.COMPLETED]

    def pending_tests(self) -> list["LabOrderTest"]:
        return [
            t
            for t in self.tests
            if t.status in (LabTestStatus.ORDERED, LabTestStatus.SAMPLE_COLLECTED, LabTestStatus.IN_PROGRESS)
        ]


class LabOrderTest(Base):
    """A single requested test inside a lab order, with its own sub-status."""

    __tablename__ = "lab_order_tests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lab_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    test_code: Mapped[str] = mapped_column(String(50), nullable=False)
    test_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[LabTestCategory] = mapped_column(
        Enum(LabTestCategory, name="lab_test_category_enum", values_callable=_values),
        nullable=False,
    )
    specimen_type: Mapped[SpecimenType] = mapped_column(
        Enum(SpecimenType, name="specimen_type_enum", values_callable=_values),
        nullable=False,
    )
    specimen_container: Mapped[SpecimenContainer | None] = mapped_column(
        Enum(SpecimenContainer, name="specimen_container_enum", values_callable=_values),
        nullable=True,
    )
    urgency: Mapped[LabTestUrgency] = mapped_column(
        Enum(LabTestUrgency, name="lab_test_urgency_enum", values_callable=_values),
        nullable=False,
        default=LabTestUrgency.NORMAL,
    )
    fasting_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    special_instructions: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    status: Mapped[LabTestStatus] = mapped_column(
        Enum(LabTestStatus, name="lab_test_status_enum", values_callable=_values),
        nullable=False,
        default=LabTestStatus.ORDERED,
    )

    # {"value": ..., "unit": ..., "reference_range": ..., "interpretation": ..., "comments": ...,
    #  "reported_at": ..., "reported_by": ...}
    result: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    collected_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    order: Mapped["LabOrder"] = relationship("LabOrder", back_populates="tests")
