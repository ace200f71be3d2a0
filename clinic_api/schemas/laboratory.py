# clinic_api/schemas/laboratory.py
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from clinic_api.models.laboratory import PartnershipStatus
from clinic_api.schemas.pharmacy import DaySchedule


class LaboratoryTestCreate(BaseModel):
    test_code: str = Field(min_length=1, max_length=50)
    test_name: str = Field(min_length=1, max_length=255)
    category: str | None = None
    price: float | None = Field(default=None, ge=0)
    duration: str | None = None  # e.g. "24 heures"
    specimen: str | None = None
    is_active: bool = True


class LaboratoryCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    license_number: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=50)
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = "Maroc"
    operating_hours: dict[str, DaySchedule] | None = None
    available_tests: list[LaboratoryTestCreate] = Field(default_factory=list)
    partnership_status: PartnershipStatus = PartnershipStatus.ACTIVE


class LaboratoryTestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    test_code: str
    test_name: str
    category: str | None = None
    price: float | None = None
    duration: str | None = None
    specimen: str | None = None
    is_active: bool


class LaboratoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    license_number: str
    lab_code: str | None = None
    email: str
    phone: str
    street: str
    city: str
    zip_code: str
    country: str
    operating_hours: dict
    available_tests: list[LaboratoryTestResponse]
    partnership_status: PartnershipStatus
    total_orders: int
    completed_orders: int
    last_month_orders: int
    average_processing_time: float | None = None
    is_open_now: bool = False
