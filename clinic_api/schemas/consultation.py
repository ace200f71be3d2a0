# clinic_api/schemas/consultation.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class VitalSigns(BaseModel):
    blood_pressure: str | None = Field(default=None, max_length=20)  # e.g. "120/80"
    temperature: float | None = Field(default=None, ge=30, le=50)  # °C
    heart_rate: float | None = Field(default=None, ge=30, le=250)  # bpm
    weight: float | None = Field(default=None, ge=0.5, le=500)  # kg
    height: float | None = Field(default=None, ge=30, le=300)  # cm


class ConsultationCreate(BaseModel):
    appointment_id: UUID
    diagnosis: str | None = Field(default=None, max_length=2000)
    symptoms: str | None = Field(default=None, max_length=2000)
    treatment: str | None = Field(default=None, max_length=2000)
    medical_notes: str | None = Field(default=None, max_length=5000)
    vital_signs: VitalSigns | None = None
    lab_tests: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    follow_up_date: datetime | None = None


class ConsultationUpdate(BaseModel):
    """Partial update. vital_signs is merged field by field."""

    diagnosis: str | None = Field(default=None, max_length=2000)
    symptoms: str | None = Field(default=None, max_length=2000)
    treatment: str | None = Field(default=None, max_length=2000)
    medical_notes: str | None = Field(default=None, max_length=5000)
    vital_signs: VitalSigns | None = None
    lab_tests: list[str] | None = None
    attachments: list[str] | None = None
    follow_up_date: datetime | None = None


class ConsultationSummary(BaseModel):
    date: datetime
    diagnosis: str | None = None
    treatment: str | None = None
    follow_up_needed: bool
    bmi: float | None = None


class ConsultationResponse(BaseModel):
    id: UUID
    appointment_id: UUID
    patient_id: UUID
    doctor_id: UUID
    date: datetime
    diagnosis: str | None = None
    symptoms: str | None = None
    treatment: str | None = None
    medical_notes: str | None = None
    vital_signs: VitalSigns
    lab_tests: list[str]
    attachments: list[str]
    follow_up_date: datetime | None = None
    prescription_ids: list[UUID]

    # Derived, read-only
    bmi: float | None = None
    needs_follow_up: bool
    summary: ConsultationSummary

    created_at: datetime
    updated_at: datetime
