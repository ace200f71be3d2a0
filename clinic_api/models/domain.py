# clinic_api/models/domain.py
from sqlalchemy.engine import Connection, Engine

from clinic_api.models.appointment import Appointment
from clinic_api.models.base import Base
from clinic_api.models.consultation import Consultation
from clinic_api.models.lab_order import LabOrder, LabOrderTest
from clinic_api.models.laboratory import Laboratory, LaboratoryTest
from clinic_api.models.pharmacy import Pharmacy
from clinic_api.models.prescription import Prescription, PrescriptionMedication
from clinic_api.models.user import User

# Order matters: tables with no dependencies first, then tables that depend on them
# Foreign key dependencies:
# - Appointment depends on User
# - Consultation depends on Appointment and User
# - Prescription depends on Consultation, User and Pharmacy
# - LabOrder depends on Consultation, User and Laboratory
# - Child rows (medications, catalog tests, order tests) depend on their parent
CLINIC_TABLES = [
    # Tables with no dependencies (create first)
    User.__table__,
    Pharmacy.__table__,
    Laboratory.__table__,
    # Catalog
    LaboratoryTest.__table__,
    # Care chain
    Appointment.__table__,
    Consultation.__table__,
    Prescription.__table__,
    PrescriptionMedication.__table__,
    LabOrder.__table__,
    LabOrderTest.__table__,
]


def create_clinic_tables(bind: Engine | Connection) -> None:
    """
    Create every clinic table that does not exist yet.
    Schema changes after the first deploy go through Alembic.
    """
    Base.metadata.create_all(bind=bind, tables=CLINIC_TABLES, checkfirst=True)
