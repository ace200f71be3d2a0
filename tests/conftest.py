from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic_api.core.database import configure_sqlite, get_db
from clinic_api.main import app
from clinic_api.models.appointment import Appointment, AppointmentStatus
from clinic_api.models.base import Base
from clinic_api.models.consultation import Consultation
from clinic_api.models.domain import create_clinic_tables
from clinic_api.models.laboratory import Laboratory, LaboratoryTest, PartnershipStatus
from clinic_api.models.pharmacy import Pharmacy
from clinic_api.models.user import RoleName, User
from clinic_api.utils.operating_hours import default_operating_hours
from helpers import at


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    create_clinic_tables(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# -------------------------
# Users
# -------------------------
@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role: RoleName, first_name: str = "Test", last_name: str | None = None, **extra) -> User:
        counter["n"] += 1
        user = User(
            email=f"{role.value}{counter['n']}@clinic.test",
            first_name=first_name,
            last_name=last_name or role.value.title(),
            role=role,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def doctor(make_user):
    return make_user(RoleName.DOCTOR, first_name="Amina", last_name="Benali", specialization="Cardiology")


@pytest.fixture()
def other_doctor(make_user):
    return make_user(RoleName.DOCTOR, first_name="Youssef", last_name="Alaoui")


@pytest.fixture()
def patient(make_user):
    return make_user(RoleName.PATIENT, first_name="Karim", last_name="Haddad")


@pytest.fixture()
def other_patient(make_user):
    return make_user(RoleName.PATIENT, first_name="Sara", last_name="Idrissi")


@pytest.fixture()
def admin(make_user):
    return make_user(RoleName.ADMIN)


@pytest.fixture()
def nurse(make_user):
    return make_user(RoleName.NURSE)


@pytest.fixture()
def secretary(make_user):
    return make_user(RoleName.SECRETARY)


@pytest.fixture()
def pharmacist(make_user):
    return make_user(RoleName.PHARMACIST)


@pytest.fixture()
def lab_technician(make_user):
    return make_user(RoleName.LAB_TECHNICIAN)


# -------------------------
# Records
# -------------------------
@pytest.fixture()
def make_appointment(db):
    def _make(
        patient: User,
        doctor: User,
        start: datetime,
        end: datetime | None = None,
        status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            start_time=start,
            end_time=end or start + timedelta(minutes=30),
            status=status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture()
def completed_appointment(make_appointment, patient, doctor):
    return make_appointment(patient, doctor, at(9), status=AppointmentStatus.COMPLETED)


@pytest.fixture()
def consultation(db, completed_appointment):
    record = Consultation(
        appointment_id=completed_appointment.id,
        patient_id=completed_appointment.patient_id,
        doctor_id=completed_appointment.doctor_id,
        diagnosis="Hypertension",
        lab_tests=[],
        attachments=[],
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture()
def make_laboratory(db):
    counter = {"n": 0}

    def _make(
        test_codes: tuple[str, ...] = ("NFS", "GLY"),
        partnership_status: PartnershipStatus = PartnershipStatus.ACTIVE,
        inactive_codes: tuple[str, ...] = (),
    ) -> Laboratory:
        counter["n"] += 1
        laboratory = Laboratory(
            name=f"BioLab {counter['n']}",
            license_number=f"LAB-LIC-{counter['n']}",
            lab_code=f"BIOCA{counter['n']:03d}",
            email=f"lab{counter['n']}@labs.test",
            phone="+212500000000",
            street="12 Rue des Orangers",
            city="Casablanca",
            zip_code="20000",
            operating_hours=default_operating_hours(),
            partnership_status=partnership_status,
            available_tests=[
                LaboratoryTest(test_code=code, test_name=f"Test {code}", price=100.0)
                for code in test_codes
            ]
            + [
                LaboratoryTest(test_code=code, test_name=f"Test {code}", is_active=False)
                for code in inactive_codes
            ],
        )
        db.add(laboratory)
        db.commit()
        db.refresh(laboratory)
        return laboratory

    return _make


@pytest.fixture()
def make_pharmacy(db):
    counter = {"n": 0}

    def _make(partnership_status: PartnershipStatus = PartnershipStatus.ACTIVE) -> Pharmacy:
        counter["n"] += 1
        pharmacy = Pharmacy(
            name=f"Pharmacie {counter['n']}",
            license_number=f"PH-LIC-{counter['n']}",
            pharmacy_code=f"PHCAS{counter['n']:04d}",
            email=f"pharmacy{counter['n']}@pharma.test",
            phone="+212500000001",
            street="4 Boulevard Zerktouni",
            city="Casablanca",
            zip_code="20000",
            operating_hours=default_operating_hours(),
            services=["delivery"],
            partnership_status=partnership_status,
        )
        db.add(pharmacy)
        db.commit()
        db.refresh(pharmacy)
        return pharmacy

    return _make
