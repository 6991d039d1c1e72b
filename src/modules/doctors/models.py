"""Doctor directory ORM models (departments, doctors, slot templates)."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import JSON, Boolean, CheckConstraint, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database import Base
from src.shared.models import TimestampMixin, ulid_primary_key

BASELINE_RATING = 4.5


class Department(Base, TimestampMixin):
    __tablename__ = "departments"

    department_id: Mapped[str] = ulid_primary_key()
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Doctor(Base, TimestampMixin):
    __tablename__ = "doctors"
    __table_args__ = (
        CheckConstraint("consultation_fee >= 0", name="ck_doctors_fee_non_negative"),
        CheckConstraint("experience_years >= 0", name="ck_doctors_experience_non_negative"),
    )

    doctor_id: Mapped[str] = ulid_primary_key()
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    department_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("departments.department_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    specialization: Mapped[str] = mapped_column(String(100), nullable=False)
    qualification: Mapped[str] = mapped_column(String(200), nullable=False, default="MBBS")
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consultation_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text)
    # Ordered Weekday values.
    available_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=BASELINE_RATING)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    slots: Mapped[list[DoctorSlot]] = relationship(
        back_populates="doctor",
        cascade="all, delete-orphan",
        order_by="DoctorSlot.position",
        lazy="selectin",
    )


class DoctorSlot(Base):
    """A recurring (start, end) wall-clock interval the doctor accepts bookings for."""

    __tablename__ = "doctor_slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "start_time", name="uq_doctor_slot_start"),
        CheckConstraint("end_time > start_time", name="ck_doctor_slots_time_order"),
    )

    slot_id: Mapped[str] = ulid_primary_key()
    doctor_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    doctor: Mapped[Doctor] = relationship(back_populates="slots")
