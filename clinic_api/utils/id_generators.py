import secrets
from datetime import datetime

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import InstrumentedAttribute

from clinic_api.core.config import get_settings
from clinic_api.core.errors import ConflictError
from clinic_api.utils.datetime_utils import utc_now


def _random_digits(width: int) -> str:
    return f"{secrets.randbelow(10 ** width):0{width}d}"


def _generate_unique(db: Session, column: InstrumentedAttribute, build) -> str:
    """
    Draw candidates from build() until one is not already stored in column.

    Random suffixes can collide under load; a bounded number of redraws
    keeps the unique index from surfacing as a storage error.
    """
    attempts = get_settings().code_generation_attempts
    for _ in range(attempts):
        candidate = build()
        exists = db.query(column).filter(column == candidate).first()
        if not exists:
            return candidate
    raise ConflictError(
        "Could not generate a unique number, please retry",
        detail={"field": column.key, "attempts": attempts},
    )


def generate_prescription_number(db: Session, now: datetime | None = None) -> str:
    """
    Generate a unique prescription number in format: RX{YYYYMMDD}{NNNN}

    Example: RX202610190042
    """
    from clinic_api.models.prescription import Prescription

    day = (now or utc_now()).strftime("%Y%m%d")
    return _generate_unique(
        db,
        Prescription.prescription_number,
        lambda: f"RX{day}{_random_digits(4)}",
    )


def generate_lab_order_number(db: Session, now: datetime | None = None) -> str:
    """
    Generate a unique lab order number in format: LAB{YYYYMMDD}{NNNN}

    Example: LAB202610190042
    """
    from clinic_api.models.lab_order import LabOrder

    day = (now or utc_now()).strftime("%Y%m%d")
    return _generate_unique(
        db,
        LabOrder.order_number,
        lambda: f"LAB{day}{_random_digits(4)}",
    )


def generate_lab_code(db: Session, name: str, city: str) -> str:
    """
    Generate a unique laboratory code: first 3 letters of the name,
    first 2 of the city, 3 random digits.

    Example: BIOCA042
    """
    from clinic_api.models.laboratory import Laboratory

    prefix = f"{name[:3].upper()}{city[:2].upper()}"
    return _generate_unique(db, Laboratory.lab_code, lambda: f"{prefix}{_random_digits(3)}")


def generate_pharmacy_code(db: Session, city: str) -> str:
    """
    Generate a unique pharmacy code: PH, first 3 letters of the city, 4 random digits.

    Example: PHCAS0042
    """
    from clinic_api.models.pharmacy import Pharmacy

    prefix = f"PH{city[:3].upper()}"
    return _generate_unique(db, Pharmacy.pharmacy_code, lambda: f"{prefix}{_random_digits(4)}")
