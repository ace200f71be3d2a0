# clinic_api/schemas/pharmacy.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from clinic_api.models.laboratory import PartnershipStatus
from clinic_api.models.prescription import PrescriptionStatus


class TimeWindow(BaseModel):
    open: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    close: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class DaySchedule(BaseModel):
    is_open: bool = True
    morning: TimeWindow | None = None
    afternoon: TimeWindow | None = None


class PharmacyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    license_number: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = "Maroc"
    operating_hours: dict[str, DaySchedule] | None = None
    services: list[str] = Field(default_factory=list)
    partnership_status: PartnershipStatus = PartnershipStatus.ACTIVE


class PharmacyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    license_number: str
    pharmacy_code: str
    email: str
    phone: str
    street: str
    city: str
    zip_code: str
    country: str
    full_address: str
    operating_hours: dict
    services: list[str]
    partnership_status: PartnershipStatus
    total_prescriptions: int
    average_processing_time: float
    last_activity: datetime | None = None
    is_open_now: bool = False


class PharmacyAssignRequest(BaseModel):
    pharmacy_id: UUID


class PharmacyStatusUpdate(BaseModel):
    status: PrescriptionStatus
    notes: str | None = Field(default=None, max_length=500)
