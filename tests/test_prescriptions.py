"""
Prescription drafting, signing, soft delete and numbering.
"""
import re
from datetime import timedelta

import pytest

from clinic_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clinic_api.models.base import RecordState
from clinic_api.models.prescription import Prescription, PrescriptionStatus
from clinic_api.schemas.prescription import MedicationCreate
from clinic_api.services import prescription_service
from clinic_api.utils.datetime_utils import utc_now
from helpers import actor_for, medication_payload


def _medications(*names: str) -> list[MedicationCreate]:
    return [MedicationCreate(**medication_payload(name)) for name in names or ("Amoxicilline",)]


@pytest.fixture()
def draft(db, doctor, consultation):
    return prescription_service.create_prescription(
        db,
        consultation_id=consultation.id,
        doctor_id=doctor.id,
        medications=_medications("Amoxicilline", "Paracetamol"),
    )


class TestCreatePrescription:
    def test_creates_numbered_draft(self, db, draft, consultation):
        assert draft.status == PrescriptionStatus.DRAFT
        assert draft.patient_id == consultation.patient_id
        assert re.fullmatch(r"RX\d{8}\d{4}", draft.prescription_number)
        assert draft.prescription_number[2:10] == utc_now().strftime("%Y%m%d")
        assert [m.name for m in draft.medications] == ["Amoxicilline", "Paracetamol"]

    def test_one_prescription_per_consultation(self, db, doctor, consultation, draft):
        with pytest.raises(ConflictError):
            prescription_service.create_prescription(
                db, consultation_id=consultation.id, doctor_id=doctor.id, medications=_medications()
            )

    def test_only_the_consultations_doctor(self, db, other_doctor, consultation):
        with pytest.raises(ForbiddenError):
            prescription_service.create_prescription(
                db, consultation_id=consultation.id, doctor_id=other_doctor.id, medications=_medications()
            )

    def test_needs_a_medication(self, db, doctor, consultation):
        with pytest.raises(ValidationError):
            prescription_service.create_prescription(
                db, consultation_id=consultation.id, doctor_id=doctor.id, medications=[]
            )

    def test_view_carries_derived_fields(self, draft):
        view = prescription_service.prescription_to_dict(draft)

        assert view["total_medications"] == 2
        assert view["is_expired"] is False
        assert view["status"] == PrescriptionStatus.DRAFT


class TestSignPrescription:
    def test_sign_sets_validity_of_one_year(self, db, doctor, draft):
        signed = prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        assert signed.status == PrescriptionStatus.SIGNED
        assert signed.valid_until - signed.signed_at == timedelta(days=365)

    def test_cannot_sign_twice(self, db, doctor, draft):
        prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        with pytest.raises(ValidationError):
            prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

    def test_cannot_sign_without_medications(self, db, doctor, draft):
        draft.medications = []
        db.commit()

        with pytest.raises(ValidationError) as exc_info:
            prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        assert exc_info.value.detail["medications"] == 0

    def test_only_prescriber_can_sign(self, db, other_doctor, draft):
        with pytest.raises(ForbiddenError):
            prescription_service.sign_prescription(db, draft.id, doctor_id=other_doctor.id)

    def test_expired_after_validity(self, db, doctor, draft):
        signed = prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        assert not signed.is_expired()
        assert signed.is_expired(signed.valid_until + timedelta(seconds=1))


class TestUpdatePrescription:
    def test_replaces_medications_while_draft(self, db, doctor, draft):
        updated = prescription_service.update_prescription(
            db, draft.id, doctor_id=doctor.id, medications=_medications("Ibuprofene"), notes="After meals"
        )

        assert [m.name for m in updated.medications] == ["Ibuprofene"]
        assert updated.notes == "After meals"

    def test_signed_prescription_is_immutable(self, db, doctor, draft):
        prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        with pytest.raises(ValidationError):
            prescription_service.update_prescription(db, draft.id, doctor_id=doctor.id, notes="Too late")


class TestDeletePrescription:
    def test_soft_deletes_draft(self, db, doctor, draft):
        prescription_service.delete_prescription(db, draft.id, actor=actor_for(doctor))

        assert db.get(Prescription, draft.id).state == RecordState.DEACTIVATED
        with pytest.raises(NotFoundError):
            prescription_service.require_prescription(db, draft.id)

    def test_admin_can_delete(self, db, admin, draft):
        prescription_service.delete_prescription(db, draft.id, actor=actor_for(admin))

        with pytest.raises(NotFoundError):
            prescription_service.get_prescription(db, draft.id, actor_for(admin))

    def test_signed_cannot_be_deleted(self, db, doctor, draft):
        prescription_service.sign_prescription(db, draft.id, doctor_id=doctor.id)

        with pytest.raises(ValidationError):
            prescription_service.delete_prescription(db, draft.id, actor=actor_for(doctor))

    def test_deleted_prescription_is_not_listed(self, db, doctor, patient, draft):
        prescription_service.delete_prescription(db, draft.id, actor=actor_for(doctor))

        items, total = prescription_service.list_patient_prescriptions(db, patient.id, actor=actor_for(patient))

        assert (items, total) == ([], 0)


class TestReadPrescription:
    def test_patient_sees_own(self, db, patient, draft):
        assert prescription_service.get_prescription(db, draft.id, actor_for(patient)).id == draft.id

    def test_other_patient_is_forbidden(self, db, other_patient, draft):
        with pytest.raises(ForbiddenError):
            prescription_service.get_prescription(db, draft.id, actor_for(other_patient))

    def test_listing_is_scoped_per_role(self, db, doctor, other_doctor, patient, draft):
        _, own_total = prescription_service.list_prescriptions(db, actor=actor_for(doctor))
        _, other_total = prescription_service.list_prescriptions(db, actor=actor_for(other_doctor))
        _, patient_total = prescription_service.list_prescriptions(db, actor=actor_for(patient))

        assert (own_total, other_total, patient_total) == (1, 0, 1)
