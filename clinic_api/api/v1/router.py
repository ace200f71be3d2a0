# clinic_api/api/v1/router.py
from fastapi import APIRouter

from clinic_api.api.v1.endpoints import (
    appointments,
    consultations,
    prescriptions,
    pharmacies,
    laboratories,
    lab_orders,
)

api_router = APIRouter()

api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(consultations.router, prefix="/consultations", tags=["consultations"])
api_router.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])
api_router.include_router(pharmacies.router, prefix="/pharmacies", tags=["pharmacies"])
api_router.include_router(laboratories.router, prefix="/laboratories", tags=["laboratories"])
api_router.include_router(lab_orders.router, prefix="/lab-orders", tags=["lab-orders"])
