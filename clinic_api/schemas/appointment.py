# clinic_api/schemas/appointment.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from clinic_api.models.appointment import AppointmentStatus
from clinic_api.schemas.common import TimeSlot


class AppointmentCreate(BaseModel):
    patient_id: UUID
    doctor_id: UUID
    start_time: datetime
    end_time: datetime
    reason: str | None = Field(default=None, max_length=500)


class AppointmentUpdate(BaseModel):
    """Partial update. Unset fields keep their stored value."""

    start_time: datetime | None = None
    end_time: datetime | None = None
    status: AppointmentStatus | None = None
    reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class AppointmentCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    start_time: datetime
    end_time: datetime
    reason: str | None = None
    notes: str | None = None
    status: AppointmentStatus
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    reminder_sent: bool = False
    duration_minutes: int
    created_at: datetime
    updated_at: datetime


class WorkingHours(BaseModel):
    start: str
    end: str


class AvailabilityResponse(BaseModel):
    doctor_id: UUID
    doctor_name: str
    date: str  # YYYY-MM-DD
    working_hours: WorkingHours
    available_slots: list[TimeSlot]
    total_slots_available: int

    @model_validator(mode="after")
    def _count_matches_slots(self):
        if self.total_slots_available != len(self.available_slots):
            raise ValueError("total_slots_available must equal the number of slots")
        return self
