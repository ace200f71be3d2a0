"""
Lab order lifecycle: panel creation, laboratory routing, per-test results,
status roll-up and cancellation.
"""
import re
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from clinic_api.core.errors import ForbiddenError, NotFoundError, ValidationError
from clinic_api.models.lab_order import LabOrderPriority, LabOrderStatus, LabTestStatus
from clinic_api.models.laboratory import Laboratory, PartnershipStatus
from clinic_api.schemas.lab_order import LabOrderCreate, LabTestResultUpdate
from clinic_api.services import lab_order_service, laboratory_service
from clinic_api.services.lab_order_service import expected_report_date, roll_up_status, total_amount
from helpers import actor_for, at, lab_test_payload

S = LabTestStatus
O = LabOrderStatus


def _order_payload(patient, *codes, laboratory=None, **extra) -> LabOrderCreate:
    return LabOrderCreate(
        patient_id=patient.id,
        laboratory_id=laboratory.id if laboratory else None,
        tests=[lab_test_payload(code) for code in codes or ("NFS",)],
        **extra,
    )


@pytest.fixture()
def laboratory(make_laboratory):
    return make_laboratory(test_codes=("NFS", "GLY", "TSH"))


@pytest.fixture()
def order(db, doctor, patient, laboratory):
    return lab_order_service.create_lab_order(
        db,
        doctor_id=doctor.id,
        payload=_order_payload(patient, "NFS", "GLY", laboratory=laboratory),
    )


def _result(value="4.5") -> LabTestResultUpdate:
    return LabTestResultUpdate(value=value, unit="g/L", interpretation="Normal")


class TestRollUp:
    @pytest.mark.parametrize(
        "tests, expected",
        [
            ([S.COMPLETED, S.COMPLETED], O.COMPLETED),
            ([S.COMPLETED, S.REPORTED], O.COMPLETED),
            ([S.COMPLETED, S.ORDERED], O.PARTIALLY_COMPLETED),
            ([S.IN_PROGRESS, S.ORDERED], O.IN_PROGRESS),
            ([S.SAMPLE_COLLECTED, S.SAMPLE_COLLECTED], O.SAMPLE_COLLECTED),
            ([S.SAMPLE_COLLECTED, S.ORDERED], O.ORDERED),
            ([S.CANCELLED, S.COMPLETED], O.COMPLETED),
            ([S.CANCELLED, S.CANCELLED], O.CANCELLED),
        ],
    )
    def test_roll_up(self, tests, expected):
        assert roll_up_status(O.ORDERED, tests) == expected

    def test_empty_panel_keeps_current(self):
        assert roll_up_status(O.PENDING, []) == O.PENDING


class TestDerivedValues:
    def test_total_amount_ignores_missing_prices(self):
        assert total_amount([100.0, None, 50.5]) == 150.5
        assert total_amount([]) == 0.0

    @pytest.mark.parametrize(
        "priority, hours",
        [
            (LabOrderPriority.STAT, 2),
            (LabOrderPriority.URGENT, 6),
            (LabOrderPriority.HIGH, 48),
            (LabOrderPriority.NORMAL, 48),
            (LabOrderPriority.LOW, 48),
        ],
    )
    def test_expected_report_date_follows_priority(self, priority, hours):
        assert expected_report_date(priority, at(9), None) == at(9) + timedelta(hours=hours)

    def test_expected_report_date_falls_back_to_appointment(self):
        assert expected_report_date(LabOrderPriority.NORMAL, None, at(9)) == at(9) + timedelta(hours=48)
        assert expected_report_date(LabOrderPriority.NORMAL, None, None) is None


class TestCreateLabOrder:
    def test_creates_pending_order(self, db, order, laboratory):
        assert order.status == O.PENDING
        assert re.fullmatch(r"LAB\d{8}\d{4}", order.order_number)
        assert order.total_amount == 200.0
        assert [t.test_code for t in order.tests] == ["NFS", "GLY"]
        assert all(t.status == S.ORDERED for t in order.tests)

        db.refresh(laboratory)
        assert laboratory.total_orders == 1
        assert laboratory.last_month_orders == 1

    def test_stat_priority_sets_two_hour_sla(self, db, doctor, patient):
        created = lab_order_service.create_lab_order(
            db,
            doctor_id=doctor.id,
            payload=_order_payload(patient, priority=LabOrderPriority.STAT, sample_collection_date=at(9)),
        )

        assert created.expected_report_date == at(11)

    def test_panel_with_unavailable_test_is_rejected_whole(self, db, doctor, patient, make_laboratory):
        laboratory = make_laboratory(test_codes=("NFS",), inactive_codes=("GLY",))

        with pytest.raises(ValidationError) as exc_info:
            lab_order_service.create_lab_order(
                db,
                doctor_id=doctor.id,
                payload=_order_payload(patient, "NFS", "GLY", "CRP", laboratory=laboratory),
            )

        assert exc_info.value.detail == {"unavailable_tests": ["GLY", "CRP"]}

    def test_suspended_laboratory_is_not_found(self, db, doctor, patient, make_laboratory):
        laboratory = make_laboratory(partnership_status=PartnershipStatus.SUSPENDED)

        with pytest.raises(NotFoundError):
            lab_order_service.create_lab_order(
                db, doctor_id=doctor.id, payload=_order_payload(patient, laboratory=laboratory)
            )

    def test_needs_a_doctor(self, db, nurse, patient):
        with pytest.raises(NotFoundError):
            lab_order_service.create_lab_order(db, doctor_id=nurse.id, payload=_order_payload(patient))

    def test_payload_needs_a_test(self, patient):
        with pytest.raises(ValueError):
            LabOrderCreate(patient_id=patient.id, tests=[])


class TestTestResults:
    def test_first_result_partially_completes(self, db, order, lab_technician):
        updated = lab_order_service.update_test_result(
            db, order.id, 0, _result(), reported_by=lab_technician.id
        )

        assert updated.status == O.PARTIALLY_COMPLETED
        test = updated.tests[0]
        assert test.status == S.COMPLETED
        assert test.completed_at is not None
        assert test.result["value"] == "4.5"
        assert test.result["reported_by"] == str(lab_technician.id)

    def test_last_result_completes_and_records_turnaround(self, db, order, laboratory, lab_technician):
        lab_order_service.update_test_result(db, order.id, 0, _result(), reported_by=lab_technician.id)
        updated = lab_order_service.update_test_result(db, order.id, 1, _result("5.1"), reported_by=lab_technician.id)

        assert updated.status == O.COMPLETED
        db.refresh(laboratory)
        assert laboratory.completed_orders == 1
        assert laboratory.average_processing_time is not None

    @pytest.mark.parametrize("index", [-1, 2, 10])
    def test_index_out_of_range(self, db, order, lab_technician, index):
        with pytest.raises(ValidationError):
            lab_order_service.update_test_result(db, order.id, index, _result(), reported_by=lab_technician.id)

    def test_cancelled_order_takes_no_results(self, db, order, doctor, lab_technician):
        lab_order_service.cancel_lab_order(db, order.id, actor=actor_for(doctor))

        with pytest.raises(ValidationError):
            lab_order_service.update_test_result(db, order.id, 0, _result(), reported_by=lab_technician.id)

    def test_reported_order_takes_no_results(self, db, order, laboratory, lab_technician):
        for index in (0, 1):
            lab_order_service.update_test_result(db, order.id, index, _result(), reported_by=lab_technician.id)
        lab_order_service.update_lab_order_status(db, order.id, O.REPORTED)

        with pytest.raises(ValidationError) as exc_info:
            lab_order_service.update_test_result(db, order.id, 0, _result("4.8"), reported_by=lab_technician.id)

        assert exc_info.value.detail == {"current_status": "reported"}
        db.refresh(order)
        db.refresh(laboratory)
        assert order.status == O.REPORTED
        assert order.tests[0].result["value"] == "4.5"
        assert laboratory.completed_orders == 1

    def test_statistics_failure_keeps_result(self, db, order, laboratory, lab_technician, monkeypatch):
        def _boom(*args, **kwargs):
            raise SQLAlchemyError("statistics unavailable")

        monkeypatch.setattr(laboratory_service, "record_processing_time", _boom)

        lab_order_service.update_test_result(db, order.id, 0, _result(), reported_by=lab_technician.id)
        updated = lab_order_service.update_test_result(db, order.id, 1, _result(), reported_by=lab_technician.id)

        assert updated.status == O.COMPLETED
        assert db.get(Laboratory, laboratory.id).completed_orders == 0


class TestAssignToLaboratory:
    def test_assign_moves_to_ordered(self, db, doctor, patient, laboratory):
        unrouted = lab_order_service.create_lab_order(
            db, doctor_id=doctor.id, payload=_order_payload(patient, "TSH")
        )

        assigned = lab_order_service.assign_to_laboratory(db, unrouted.id, laboratory.id)

        assert assigned.status == O.ORDERED
        assert assigned.laboratory_id == laboratory.id

    def test_lab_must_cover_every_test(self, db, doctor, patient, make_laboratory):
        narrow = make_laboratory(test_codes=("NFS",))
        unrouted = lab_order_service.create_lab_order(
            db, doctor_id=doctor.id, payload=_order_payload(patient, "NFS", "TSH")
        )

        with pytest.raises(ValidationError) as exc_info:
            lab_order_service.assign_to_laboratory(db, unrouted.id, narrow.id)

        assert exc_info.value.detail == {"unavailable_tests": ["TSH"]}

    def test_started_order_cannot_be_reassigned(self, db, order, laboratory, lab_technician):
        lab_order_service.update_test_result(db, order.id, 0, _result(), reported_by=lab_technician.id)

        with pytest.raises(ValidationError):
            lab_order_service.assign_to_laboratory(db, order.id, laboratory.id)


class TestStatusAndCancel:
    def test_sample_collected_stamps_date_and_recomputes_sla(self, db, order):
        updated = lab_order_service.update_lab_order_status(db, order.id, O.SAMPLE_COLLECTED)

        assert updated.sample_collection_date is not None
        assert updated.expected_report_date == updated.sample_collection_date + timedelta(hours=48)

    def test_reported_stamps_report_date_and_freezes(self, db, order):
        reported = lab_order_service.update_lab_order_status(db, order.id, O.REPORTED, lab_notes="Sent to doctor")

        assert reported.actual_report_date is not None
        assert reported.lab_notes == "Sent to doctor"
        with pytest.raises(ValidationError):
            lab_order_service.update_lab_order_status(db, order.id, O.IN_PROGRESS)

    def test_cancel_appends_reason(self, db, doctor, patient):
        created = lab_order_service.create_lab_order(
            db, doctor_id=doctor.id, payload=_order_payload(patient, notes="Fasting sample")
        )

        cancelled = lab_order_service.cancel_lab_order(
            db, created.id, actor=actor_for(doctor), reason="Duplicate order"
        )

        assert cancelled.status == O.CANCELLED
        assert cancelled.notes == "Fasting sample\nCancelled: Duplicate order"

    def test_cancelled_order_is_frozen(self, db, order, doctor):
        lab_order_service.cancel_lab_order(db, order.id, actor=actor_for(doctor))

        with pytest.raises(ValidationError):
            lab_order_service.update_lab_order_status(db, order.id, O.IN_PROGRESS)
        with pytest.raises(ValidationError):
            lab_order_service.cancel_lab_order(db, order.id, actor=actor_for(doctor))

    def test_completed_order_cannot_be_cancelled(self, db, order, doctor, lab_technician):
        for index in (0, 1):
            lab_order_service.update_test_result(db, order.id, index, _result(), reported_by=lab_technician.id)

        with pytest.raises(ValidationError):
            lab_order_service.cancel_lab_order(db, order.id, actor=actor_for(doctor))


class TestReadLabOrders:
    def test_patient_sees_own_orders(self, db, order, patient):
        orders = lab_order_service.list_patient_lab_orders(db, patient.id, actor=actor_for(patient))

        assert [o.id for o in orders] == [order.id]

    def test_other_patient_is_forbidden(self, db, order, patient, other_patient):
        with pytest.raises(ForbiddenError):
            lab_order_service.list_patient_lab_orders(db, patient.id, actor=actor_for(other_patient))
        with pytest.raises(ForbiddenError):
            lab_order_service.get_lab_order(db, order.id, actor_for(other_patient))
