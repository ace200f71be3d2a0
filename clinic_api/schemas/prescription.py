# clinic_api/schemas/prescription.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from clinic_api.models.prescription import MedicationRoute, PrescriptionStatus


class MedicationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    dosage: str = Field(min_length=1, max_length=100)
    route: MedicationRoute = MedicationRoute.ORAL
    frequency: str = Field(min_length=1, max_length=100)
    duration: str = Field(min_length=1, max_length=100)
    renewals: int = Field(default=0, ge=0, le=12)
    instructions: str | None = Field(default=None, max_length=500)
    start_date: datetime | None = None
    end_date: datetime | None = None


class PrescriptionCreate(BaseModel):
    consultation_id: UUID
    medications: list[MedicationCreate] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=1000)


class PrescriptionUpdate(BaseModel):
    medications: list[MedicationCreate] | None = Field(default=None, min_length=1)
    notes: str | None = Field(default=None, max_length=1000)


class MedicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    dosage: str
    route: MedicationRoute
    frequency: str
    duration: str
    renewals: int
    instructions: str | None = None
    start_date: datetime
    end_date: datetime | None = None


class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    consultation_id: UUID
    patient_id: UUID
    doctor_id: UUID
    prescription_number: str
    status: PrescriptionStatus
    notes: str | None = None
    medications: list[MedicationResponse]

    signed_at: datetime | None = None
    valid_until: datetime | None = None
    pharmacy_id: UUID | None = None
    assigned_at: datetime | None = None
    preparing_started_at: datetime | None = None
    ready_at: datetime | None = None
    delivered_at: datetime | None = None
    rejected_at: datetime | None = None
    pharmacy_notes: str | None = None

    # Derived
    total_medications: int = 0
    is_expired: bool = False

    created_at: datetime
    updated_at: datetime


class PrescriptionListResponse(BaseModel):
    items: list[PrescriptionResponse]
    total: int
    page: int
    page_size: int
