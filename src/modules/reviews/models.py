"""Review ORM model."""

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.shared.models import TimestampMixin, ulid_primary_key


class Review(Base, TimestampMixin):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("patient_id", "appointment_id", name="uq_reviews_patient_appointment"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_doctor_created", "doctor_id", "created_at"),
    )

    review_id: Mapped[str] = ulid_primary_key()
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
    appointment_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("appointments.appointment_id", ondelete="RESTRICT"),
        nullable=False,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(String(500))
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
