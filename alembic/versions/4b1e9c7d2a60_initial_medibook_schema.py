"""Initial schema for the MediBook booking backend.

Revision ID: 4b1e9c7d2a60
Revises:
Create Date: 2026-10-18 09:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4b1e9c7d2a60"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("patient", "doctor", "admin", name="userrole")
appointment_status = sa.Enum("pending", "confirmed", "completed", "cancelled", "no-show", name="appointmentstatus")
appointment_type = sa.Enum("consultation", "follow-up", "emergency", "routine-checkup", name="appointmenttype")
payment_status = sa.Enum("pending", "paid", "refunded", name="paymentstatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(length=26), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("role", user_role, nullable=False, server_default="patient"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "departments",
        sa.Column("department_id", sa.String(length=26), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "doctors",
        sa.Column("doctor_id", sa.String(length=26), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=26),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "department_id",
            sa.String(length=26),
            sa.ForeignKey("departments.department_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("specialization", sa.String(length=100), nullable=False),
        sa.Column("qualification", sa.String(length=200), nullable=False, server_default="MBBS"),
        sa.Column("experience_years", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("consultation_fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("bio", sa.Text()),
        sa.Column("available_days", sa.JSON(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default="4.5"),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("consultation_fee >= 0", name="ck_doctors_fee_non_negative"),
        sa.CheckConstraint("experience_years >= 0", name="ck_doctors_experience_non_negative"),
    )
    op.create_index("ix_doctors_department_id", "doctors", ["department_id"])

    op.create_table(
        "doctor_slots",
        sa.Column("slot_id", sa.String(length=26), primary_key=True),
        sa.Column(
            "doctor_id",
            sa.String(length=26),
            sa.ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.UniqueConstraint("doctor_id", "start_time", name="uq_doctor_slot_start"),
        sa.CheckConstraint("end_time > start_time", name="ck_doctor_slots_time_order"),
    )

    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.String(length=26), primary_key=True),
        sa.Column(
            "patient_id",
            sa.String(length=26),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            sa.String(length=26),
            sa.ForeignKey("doctors.doctor_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("status", appointment_status, nullable=False, server_default="pending"),
        sa.Column("occupies_slot", sa.Boolean(), nullable=True),
        sa.Column("type", appointment_type, nullable=False, server_default="consultation"),
        sa.Column("symptoms", sa.String(length=500)),
        sa.Column("notes", sa.String(length=1000)),
        sa.Column("diagnosis", sa.String(length=1000)),
        sa.Column("prescription", sa.Text()),
        sa.Column("fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", payment_status, nullable=False, server_default="pending"),
        sa.Column("cancellation_reason", sa.String(length=500)),
        *_timestamps(),
        sa.UniqueConstraint(
            "doctor_id",
            "appointment_date",
            "start_time",
            "occupies_slot",
            name="uq_appointments_doctor_slot_hold",
        ),
        sa.CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        sa.CheckConstraint("fee >= 0", name="ck_appointments_fee_non_negative"),
    )
    op.create_index("ix_appointments_patient_date", "appointments", ["patient_id", "appointment_date"])
    op.create_index("ix_appointments_doctor_date", "appointments", ["doctor_id", "appointment_date"])
    op.create_index("ix_appointments_status", "appointments", ["status"])

    op.create_table(
        "reviews",
        sa.Column("review_id", sa.String(length=26), primary_key=True),
        sa.Column(
            "patient_id",
            sa.String(length=26),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "doctor_id",
            sa.String(length=26),
            sa.ForeignKey("doctors.doctor_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "appointment_id",
            sa.String(length=26),
            sa.ForeignKey("appointments.appointment_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(length=500)),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("patient_id", "appointment_id", name="uq_reviews_patient_appointment"),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_doctor_created", "reviews", ["doctor_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_reviews_doctor_created", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("ix_appointments_status", table_name="appointments")
    op.drop_index("ix_appointments_doctor_date", table_name="appointments")
    op.drop_index("ix_appointments_patient_date", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("doctor_slots")
    op.drop_index("ix_doctors_department_id", table_name="doctors")
    op.drop_table("doctors")
    op.drop_table("departments")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (payment_status, appointment_type, appointment_status, user_role):
        enum_type.drop(bind, checkfirst=True)
