# clinic_api/models/pharmacy.py
import uuid
from datetime import datetime

from sqlalchemy import JSON, Float, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, LifecycleMixin, TimestampMixin, UTCDateTime
from clinic_api.models.laboratory import PARTNERSHIP_STATUS_ENUM, PartnershipStatus
from clinic_api.utils.operating_hours import is_open_now


class Pharmacy(LifecycleMixin, TimestampMixin, Base):
    """
    Partner pharmacy that signed prescriptions are routed to.
    """

    __tablename__ = "pharmacies"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    license_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    pharmacy_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    # Contact
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    # Address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="Maroc")

    operating_hours: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    services: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    partnership_status: Mapped[PartnershipStatus] = mapped_column(
        PARTNERSHIP_STATUS_ENUM,
        nullable=False,
        default=PartnershipStatus.ACTIVE,
        server_default=text("'active'"),
    )

    # Statistics
    total_prescriptions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_processing_time: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # hours
    last_activity: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    @property
    def is_open_now(self) -> bool:
        return is_open_now(self.operating_hours)

    @property
    def full_address(self) -> str:
        return f"{self.street}, {self.city} {self.zip_code}, {self.country}"
