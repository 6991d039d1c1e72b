"""Appointment ORM model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, Enum, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from src.core.database import Base
from src.shared.enums import (
    SLOT_RELEASING_STATUSES,
    AppointmentStatus,
    AppointmentType,
    PaymentStatus,
    enum_values,
)
from src.shared.models import TimestampMixin, ulid_primary_key


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"
    __table_args__ = (
        # occupies_slot is NULL once the slot is released; NULLs never collide,
        # so only holding appointments compete for (doctor, date, start).
        UniqueConstraint(
            "doctor_id",
            "appointment_date",
            "start_time",
            "occupies_slot",
            name="uq_appointments_doctor_slot_hold",
        ),
        Index("ix_appointments_patient_date", "patient_id", "appointment_date"),
        Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
        Index("ix_appointments_status", "status"),
        CheckConstraint("end_time > start_time", name="ck_appointments_time_order"),
        CheckConstraint("fee >= 0", name="ck_appointments_fee_non_negative"),
    )

    appointment_id: Mapped[str] = ulid_primary_key()
    patient_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="RESTRICT"),
        nullable=False,
    )
    doctor_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("doctors.doctor_id", ondelete="RESTRICT"),
        nullable=False,
    )
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(
            AppointmentStatus,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmentstatus",
        ),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    occupies_slot: Mapped[bool | None] = mapped_column(Boolean, nullable=True, default=True)
    type: Mapped[AppointmentType] = mapped_column(
        Enum(
            AppointmentType,
            values_callable=enum_values,
            validate_strings=True,
            name="appointmenttype",
        ),
        nullable=False,
        default=AppointmentType.CONSULTATION,
    )
    symptoms: Mapped[str | None] = mapped_column(String(500))
    notes: Mapped[str | None] = mapped_column(String(1000))
    diagnosis: Mapped[str | None] = mapped_column(String(1000))
    prescription: Mapped[str | None] = mapped_column(Text)
    fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            values_callable=enum_values,
            validate_strings=True,
            name="paymentstatus",
        ),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(String(500))

    @validates("status")
    def _track_slot_hold(self, _key: str, value: AppointmentStatus) -> AppointmentStatus:
        self.occupies_slot = None if value in SLOT_RELEASING_STATUSES else True
        return value

    @property
    def time_slot(self) -> dict[str, str]:
        return {"start_time": self.start_time, "end_time": self.end_time}
