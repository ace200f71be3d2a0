# clinic_api/schemas/common.py
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Success envelope returned by every endpoint."""

    success: bool = True
    message: str
    data: DataT | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    error: Any | None = None
    errors: list[dict[str, Any]] | None = None


class TimeSlot(BaseModel):
    start: str  # HH:MM
    end: str  # HH:MM


def ok(message: str, data: Any = None) -> dict[str, Any]:
    return {"success": True, "message": message, "data": data}
