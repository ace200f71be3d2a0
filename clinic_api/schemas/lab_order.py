# clinic_api/schemas/lab_order.py
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from clinic_api.models.lab_order import (
    LabOrderPriority,
    LabOrderStatus,
    LabTestCategory,
    LabTestStatus,
    LabTestUrgency,
    SpecimenContainer,
    SpecimenType,
)


class ClinicalInfo(BaseModel):
    symptoms: list[str] = Field(default_factory=list)
    diagnosis: str | None = None
    medications: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    relevant_history: str | None = None


class LabOrderTestCreate(BaseModel):
    test_code: str = Field(min_length=1, max_length=50)
    test_name: str = Field(min_length=1, max_length=255)
    category: LabTestCategory
    specimen_type: SpecimenType
    specimen_container: SpecimenContainer | None = None
    urgency: LabTestUrgency = LabTestUrgency.NORMAL
    fasting_required: bool = False
    special_instructions: str | None = Field(default=None, max_length=500)
    price: float | None = Field(default=None, ge=0)


class LabOrderCreate(BaseModel):
    patient_id: UUID
    doctor_id: UUID | None = None  # defaults to the calling doctor
    consultation_id: UUID | None = None
    laboratory_id: UUID | None = None
    tests: list[LabOrderTestCreate] = Field(min_length=1)
    priority: LabOrderPriority = LabOrderPriority.NORMAL
    clinical_info: ClinicalInfo | None = None
    appointment_date: datetime | None = None
    sample_collection_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=1000)


class LabTestResultUpdate(BaseModel):
    value: Any = None
    unit: str | None = None
    reference_range: str | None = None
    interpretation: str | None = None  # e.g. "Normal", "Anormal", "Critique"
    comments: str | None = None


class LabOrderStatusUpdate(BaseModel):
    status: LabOrderStatus
    lab_notes: str | None = Field(default=None, max_length=1000)


class LabOrderAssignRequest(BaseModel):
    laboratory_id: UUID


class LabOrderCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class LabOrderTestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    test_code: str
    test_name: str
    category: LabTestCategory
    specimen_type: SpecimenType
    specimen_container: SpecimenContainer | None = None
    urgency: LabTestUrgency
    fasting_required: bool
    special_instructions: str | None = None
    price: float | None = None
    status: LabTestStatus
    result: dict | None = None
    collected_at: datetime | None = None
    completed_at: datetime | None = None


class LabOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    patient_id: UUID
    doctor_id: UUID
    consultation_id: UUID | None = None
    laboratory_id: UUID | None = None
    status: LabOrderStatus
    priority: LabOrderPriority
    clinical_info: dict | None = None
    tests: list[LabOrderTestResponse]
    appointment_date: datetime | None = None
    sample_collection_date: datetime | None = None
    expected_report_date: datetime | None = None
    actual_report_date: datetime | None = None
    total_amount: float
    notes: str | None = None
    lab_notes: str | None = None
    created_at: datetime
    updated_at: datetime


class LabTestResultResponse(BaseModel):
    test: LabOrderTestResponse
    overall_status: LabOrderStatus
