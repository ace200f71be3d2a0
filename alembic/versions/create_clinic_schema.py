"""create_clinic_schema

Revision ID: create_clinic_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "create_clinic_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RECORD_STATE = sa.Enum("ACTIVE", "DEACTIVATED", name="record_state_enum")
PARTNERSHIP_STATUS = sa.Enum("active", "inactive", "suspended", "pending", name="partnership_status_enum")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def _state() -> sa.Column:
    return sa.Column("state", RECORD_STATE, nullable=False, server_default=sa.text("'ACTIVE'"))


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("specialization", sa.String(length=100), nullable=True),
        sa.Column(
            "role",
            sa.Enum(
                "admin", "doctor", "nurse", "secretary", "patient", "pharmacist", "lab_technician",
                name="role_name_enum",
            ),
            nullable=False,
        ),
        _state(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_users_role"), "users", ["role"])

    op.create_table(
        "pharmacies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("license_number", sa.String(length=100), nullable=False),
        sa.Column("pharmacy_code", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=False),
        sa.Column("street", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("operating_hours", sa.JSON(), nullable=False),
        sa.Column("services", sa.JSON(), nullable=False),
        sa.Column("partnership_status", PARTNERSHIP_STATUS, nullable=False, server_default=sa.text("'active'")),
        sa.Column("total_prescriptions", sa.Integer(), nullable=False),
        sa.Column("average_processing_time", sa.Float(), nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        _state(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_number"),
        sa.UniqueConstraint("pharmacy_code"),
    )

    op.create_table(
        "laboratories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("license_number", sa.String(length=100), nullable=False),
        sa.Column("lab_code", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=False),
        sa.Column("street", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("operating_hours", sa.JSON(), nullable=False),
        sa.Column("partnership_status", PARTNERSHIP_STATUS, nullable=False, server_default=sa.text("'active'")),
        sa.Column("total_orders", sa.Integer(), nullable=False),
        sa.Column("completed_orders", sa.Integer(), nullable=False),
        sa.Column("last_month_orders", sa.Integer(), nullable=False),
        sa.Column("average_processing_time", sa.Float(), nullable=True),
        _state(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_number"),
        sa.UniqueConstraint("lab_code"),
    )
    op.create_index(op.f("ix_laboratories_partnership_status"), "laboratories", ["partnership_status"])

    op.create_table(
        "laboratory_tests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("laboratory_id", sa.Uuid(), nullable=False),
        sa.Column("test_code", sa.String(length=50), nullable=False),
        sa.Column("test_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("duration", sa.String(length=50), nullable=True),
        sa.Column("specimen", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["laboratory_id"], ["laboratories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_laboratory_tests_laboratory_id"), "laboratory_tests", ["laboratory_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column(
            "status",
            sa.Enum("scheduled", "confirmed", "completed", "cancelled", "no-show", name="appointment_status_enum"),
            nullable=False,
            server_default=sa.text("'scheduled'"),
        ),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.String(length=500), nullable=True),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_appointments_status"), "appointments", ["status"])
    op.create_index("ix_appointments_patient_start", "appointments", ["patient_id", "start_time"])
    op.create_index("ix_appointments_doctor_start", "appointments", ["doctor_id", "start_time"])

    op.create_table(
        "consultations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("appointment_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("symptoms", sa.Text(), nullable=True),
        sa.Column("treatment", sa.Text(), nullable=True),
        sa.Column("medical_notes", sa.Text(), nullable=True),
        sa.Column("blood_pressure", sa.String(length=20), nullable=True),
        sa.Column("temperature", sa.Float(), nullable=True),
        sa.Column("heart_rate", sa.Float(), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("lab_tests", sa.JSON(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("follow_up_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id"),
    )
    op.create_index(op.f("ix_consultations_patient_id"), "consultations", ["patient_id"])
    op.create_index(op.f("ix_consultations_doctor_id"), "consultations", ["doctor_id"])

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("consultation_id", sa.Uuid(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=False),
        sa.Column("prescription_number", sa.String(length=20), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "draft", "signed", "assigned", "preparing", "ready", "delivered", "rejected",
                name="prescription_status_enum",
            ),
            nullable=False,
            server_default=sa.text("'draft'"),
        ),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("preparing_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pharmacy_id", sa.Uuid(), nullable=True),
        sa.Column("pharmacy_notes", sa.String(length=500), nullable=True),
        _state(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["consultation_id"], ["consultations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["pharmacy_id"], ["pharmacies.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("consultation_id"),
        sa.UniqueConstraint("prescription_number"),
    )
    op.create_index(op.f("ix_prescriptions_patient_id"), "prescriptions", ["patient_id"])
    op.create_index(op.f("ix_prescriptions_doctor_id"), "prescriptions", ["doctor_id"])
    op.create_index(op.f("ix_prescriptions_status"), "prescriptions", ["status"])
    op.create_index(op.f("ix_prescriptions_pharmacy_id"), "prescriptions", ["pharmacy_id"])

    op.create_table(
        "prescription_medications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("prescription_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("dosage", sa.String(length=100), nullable=False),
        sa.Column(
            "route",
            sa.Enum(
                "Orale", "Intraveineuse", "Intramusculaire", "Sous-cutanée", "Topique", "Nasale",
                "Oculaire", "Auriculaire", "Rectale", "Vaginale", "Inhalation", "Sublinguale",
                name="medication_route_enum",
            ),
            nullable=False,
        ),
        sa.Column("frequency", sa.String(length=100), nullable=False),
        sa.Column("duration", sa.String(length=100), nullable=False),
        sa.Column("renewals", sa.Integer(), nullable=False),
        sa.Column("instructions", sa.String(length=500), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["prescription_id"], ["prescriptions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_prescription_medications_prescription_id"), "prescription_medications", ["prescription_id"])

    op.create_table(
        "lab_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=20), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.Uuid(), nullable=False),
        sa.Column("consultation_id", sa.Uuid(), nullable=True),
        sa.Column("laboratory_id", sa.Uuid(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "ordered", "sample_collected", "in_progress", "partially_completed",
                "completed", "reported", "cancelled",
                name="lab_order_status_enum",
            ),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column(
            "priority",
            sa.Enum("Low", "Normal", "High", "Urgent", "STAT", name="lab_order_priority_enum"),
            nullable=False,
            server_default=sa.text("'Normal'"),
        ),
        sa.Column("clinical_info", sa.JSON(), nullable=True),
        sa.Column("appointment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sample_collection_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_report_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_report_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("lab_notes", sa.String(length=1000), nullable=True),
        _state(),
        *_timestamps(),
        sa.ForeignKeyConstraint(["patient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["consultation_id"], ["consultations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["laboratory_id"], ["laboratories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
    )
    op.create_index(op.f("ix_lab_orders_patient_id"), "lab_orders", ["patient_id"])
    op.create_index(op.f("ix_lab_orders_doctor_id"), "lab_orders", ["doctor_id"])
    op.create_index(op.f("ix_lab_orders_laboratory_id"), "lab_orders", ["laboratory_id"])
    op.create_index(op.f("ix_lab_orders_status"), "lab_orders", ["status"])

    op.create_table(
        "lab_order_tests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("test_code", sa.String(length=50), nullable=False),
        sa.Column("test_name", sa.String(length=255), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "Hématologie", "Biochimie", "Immunologie", "Microbiologie", "Parasitologie",
                "Hormonologie", "Toxicologie", "Génétique", "Anatomie pathologique", "Cytologie",
                "Sérologie", "Allergie", "Coagulation", "Urinaire", "Cardiaque", "Hépatique",
                "Rénal", "Lipidique", "Diabète", "Thyroïde", "Autre",
                name="lab_test_category_enum",
            ),
            nullable=False,
        ),
        sa.Column(
            "specimen_type",
            sa.Enum(
                "Sang", "Urine", "Selles", "Salive", "Expectoration", "LCR", "Liquide pleural",
                "Liquide ascite", "Biopsie", "Frottis", "Autre",
                name="specimen_type_enum",
            ),
            nullable=False,
        ),
        sa.Column(
            "specimen_container",
            sa.Enum(
                "Tube EDTA", "Tube héparine", "Tube sec", "Tube citrate", "Flacon stérile",
                "Pot stérile", "Lame", "Container spécial",
                name="specimen_container_enum",
            ),
            nullable=True,
        ),
        sa.Column(
            "urgency",
            sa.Enum("Normal", "Urgent", "STAT", "Programmé", name="lab_test_urgency_enum"),
            nullable=False,
        ),
        sa.Column("fasting_required", sa.Boolean(), nullable=False),
        sa.Column("special_instructions", sa.String(length=500), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "ordered", "sample_collected", "in_progress", "completed", "reported", "cancelled",
                name="lab_test_status_enum",
            ),
            nullable=False,
        ),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("collected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["order_id"], ["lab_orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_lab_order_tests_order_id"), "lab_order_tests", ["order_id"])


def downgrade() -> None:
    for table in (
        "lab_order_tests",
        "lab_orders",
        "prescription_medications",
        "prescriptions",
        "consultations",
        "appointments",
        "laboratory_tests",
        "laboratories",
        "pharmacies",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        "lab_test_status_enum",
        "lab_test_urgency_enum",
        "specimen_container_enum",
        "specimen_type_enum",
        "lab_test_category_enum",
        "lab_order_priority_enum",
        "lab_order_status_enum",
        "medication_route_enum",
        "prescription_status_enum",
        "appointment_status_enum",
        "role_name_enum",
        "partnership_status_enum",
        "record_state_enum",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
