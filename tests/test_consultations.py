"""
Consultation recording, derived clinical values and access rules.
"""
import uuid
from datetime import timedelta

import pytest

from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.models.appointment import AppointmentStatus
from clinic_api.schemas.consultation import ConsultationCreate, ConsultationUpdate, VitalSigns
from clinic_api.services import consultation_service
from clinic_api.services.consultation_service import calculate_bmi, needs_follow_up
from clinic_api.utils.datetime_utils import utc_now
from helpers import actor_for, at


class TestDerivedValues:
    def test_bmi_rounds_to_one_decimal(self):
        assert calculate_bmi(70, 175) == 22.9

    @pytest.mark.parametrize("weight, height", [(None, 175), (70, None), (None, None)])
    def test_bmi_needs_both_measurements(self, weight, height):
        assert calculate_bmi(weight, height) is None

    def test_follow_up_only_for_future_dates(self):
        now = utc_now()

        assert needs_follow_up(now + timedelta(days=7), now)
        assert not needs_follow_up(now - timedelta(days=1), now)
        assert not needs_follow_up(None, now)

    def test_vital_signs_reject_out_of_range_values(self):
        with pytest.raises(ValueError):
            VitalSigns(temperature=60)
        with pytest.raises(ValueError):
            VitalSigns(heart_rate=10)


class TestCreateConsultation:
    def test_records_consultation_for_completed_appointment(self, db, doctor, patient, completed_appointment):
        consultation = consultation_service.create_consultation(
            db,
            doctor_id=doctor.id,
            payload=ConsultationCreate(
                appointment_id=completed_appointment.id,
                diagnosis="Seasonal flu",
                vital_signs=VitalSigns(weight=70, height=175, temperature=38.2),
            ),
        )

        assert consultation.patient_id == patient.id
        assert consultation.doctor_id == doctor.id
        assert consultation.temperature == 38.2

        view = consultation_service.consultation_to_dict(db, consultation)
        assert view["bmi"] == 22.9
        assert view["summary"]["bmi"] == 22.9
        assert view["vital_signs"]["weight"] == 70
        assert view["prescription_ids"] == []
        assert view["needs_follow_up"] is False

    def test_unknown_appointment(self, db, doctor):
        with pytest.raises(NotFoundError):
            consultation_service.create_consultation(
                db, doctor_id=doctor.id, payload=ConsultationCreate(appointment_id=uuid.uuid4())
            )

    def test_appointment_must_be_completed(self, db, doctor, patient, make_appointment):
        appointment = make_appointment(patient, doctor, at(10), status=AppointmentStatus.SCHEDULED)

        with pytest.raises(ValidationError) as exc_info:
            consultation_service.create_consultation(
                db, doctor_id=doctor.id, payload=ConsultationCreate(appointment_id=appointment.id)
            )

        assert exc_info.value.status_code == 400

    def test_only_the_appointments_doctor(self, db, other_doctor, completed_appointment):
        with pytest.raises(ForbiddenError):
            consultation_service.create_consultation(
                db,
                doctor_id=other_doctor.id,
                payload=ConsultationCreate(appointment_id=completed_appointment.id),
            )

    def test_one_consultation_per_appointment(self, db, doctor, consultation, completed_appointment):
        with pytest.raises(ConflictError) as exc_info:
            consultation_service.create_consultation(
                db,
                doctor_id=doctor.id,
                payload=ConsultationCreate(appointment_id=completed_appointment.id),
            )

        assert exc_info.value.detail == {"consultation_id": str(consultation.id)}


class TestUpdateConsultation:
    def test_vital_signs_are_merged(self, db, doctor, completed_appointment):
        consultation = consultation_service.create_consultation(
            db,
            doctor_id=doctor.id,
            payload=ConsultationCreate(
                appointment_id=completed_appointment.id,
                vital_signs=VitalSigns(weight=70, height=175, blood_pressure="120/80"),
            ),
        )

        updated = consultation_service.update_consultation(
            db,
            consultation.id,
            actor_id=doctor.id,
            payload=ConsultationUpdate(vital_signs=VitalSigns(weight=72)),
        )

        assert updated.weight == 72
        assert updated.height == 175
        assert updated.blood_pressure == "120/80"

    def test_text_fields_left_out_are_kept(self, db, doctor, consultation):
        updated = consultation_service.update_consultation(
            db,
            consultation.id,
            actor_id=doctor.id,
            payload=ConsultationUpdate(treatment="Rest and fluids"),
        )

        assert updated.treatment == "Rest and fluids"
        assert updated.diagnosis == "Hypertension"

    def test_explicit_null_clears_field(self, db, doctor, consultation):
        updated = consultation_service.update_consultation(
            db,
            consultation.id,
            actor_id=doctor.id,
            payload=ConsultationUpdate(diagnosis=None, lab_tests=None),
        )

        assert updated.diagnosis is None
        assert updated.lab_tests == []

    def test_only_owner_can_update(self, db, other_doctor, consultation):
        with pytest.raises(ForbiddenError):
            consultation_service.update_consultation(
                db,
                consultation.id,
                actor_id=other_doctor.id,
                payload=ConsultationUpdate(diagnosis="Other"),
            )


class TestReadConsultation:
    def test_patient_sees_own(self, db, patient, consultation):
        found = consultation_service.get_consultation(db, consultation.id, actor_for(patient))

        assert found.id == consultation.id

    def test_other_patient_is_forbidden(self, db, other_patient, consultation):
        with pytest.raises(ForbiddenError):
            consultation_service.get_consultation(db, consultation.id, actor_for(other_patient))

    def test_other_doctor_is_forbidden(self, db, other_doctor, consultation):
        with pytest.raises(ForbiddenError):
            consultation_service.get_consultation(db, consultation.id, actor_for(other_doctor))

    def test_admin_sees_all(self, db, admin, consultation):
        assert consultation_service.get_consultation(db, consultation.id, actor_for(admin)).id == consultation.id

    def test_patient_history_is_scoped_to_author_for_doctors(self, db, patient, other_doctor, consultation):
        assert consultation_service.list_patient_consultations(db, patient.id, actor_for(other_doctor)) == []

        history = consultation_service.list_patient_consultations(db, patient.id, actor_for(patient))
        assert [c.id for c in history] == [consultation.id]
