"""Review ledger: eligibility checks and doctor rating aggregation."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from src.modules.appointments.models import Appointment
from src.modules.doctors.models import BASELINE_RATING, Doctor
from src.modules.reviews.models import Review
from src.modules.reviews.schemas import ReviewCreate, ReviewUpdate
from src.modules.users.models import User
from src.shared.enums import AppointmentStatus, UserRole
from src.shared.pagination import PageParams

logger = logging.getLogger(__name__)

DUPLICATE_REVIEW_MESSAGE = "You have already reviewed this appointment"


def round_rating(value: float | Decimal) -> float:
    """Round half up to one decimal (4.25 -> 4.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _ensure_rating(rating: int | None) -> None:
    if rating is not None and not 1 <= rating <= 5:
        raise InvalidInputError("Rating must be between 1 and 5")


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_review(self, payload: ReviewCreate, patient: User) -> Review:
        _ensure_rating(payload.rating)
        appointment = await self._get_appointment(payload.appointment_id)
        if appointment.patient_id != patient.user_id:
            raise ForbiddenError("Not authorized to review this appointment")
        if appointment.status != AppointmentStatus.COMPLETED:
            raise InvalidStateError("Can only review completed appointments")

        existing = await self.db.execute(
            select(Review.review_id).where(
                Review.patient_id == patient.user_id,
                Review.appointment_id == appointment.appointment_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(DUPLICATE_REVIEW_MESSAGE)

        doctor_id = appointment.doctor_id
        doctor = await self._lock_doctor(doctor_id)
        review = Review(
            patient_id=patient.user_id,
            doctor_id=doctor_id,
            appointment_id=appointment.appointment_id,
            rating=payload.rating,
            comment=payload.comment,
            is_anonymous=payload.is_anonymous,
        )
        self.db.add(review)
        try:
            await self.recompute_rating(doctor)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_REVIEW_MESSAGE) from exc
        await self.db.refresh(review)
        logger.info("Review %s recorded for doctor %s", review.review_id, doctor_id)
        return review

    async def update_review(self, review_id: str, payload: ReviewUpdate, patient: User) -> Review:
        review = await self._get_review(review_id)
        if review.patient_id != patient.user_id:
            raise ForbiddenError("Not authorized to update this review")
        doctor = await self._lock_doctor(review.doctor_id)
        update_data = payload.model_dump(exclude_unset=True, exclude_none=True)
        _ensure_rating(update_data.get("rating"))
        for key, value in update_data.items():
            setattr(review, key, value)
        await self.recompute_rating(doctor)
        await self.db.commit()
        await self.db.refresh(review)
        return review

    async def delete_review(self, review_id: str, actor: User) -> None:
        review = await self._get_review(review_id)
        if review.patient_id != actor.user_id and actor.role != UserRole.ADMIN:
            raise ForbiddenError("Not authorized to delete this review")
        doctor = await self._lock_doctor(review.doctor_id)
        await self.db.delete(review)
        await self.recompute_rating(doctor)
        await self.db.commit()
        logger.info("Review %s deleted by %s", review_id, actor.user_id)

    async def list_doctor_reviews(self, doctor_id: str, params: PageParams) -> tuple[list[Review], int]:
        base = select(Review).where(Review.doctor_id == doctor_id)
        total = (await self.db.execute(select(func.count()).select_from(base.subquery()))).scalar_one()
        result = await self.db.execute(
            base.order_by(Review.created_at.desc(), Review.review_id.desc()).offset(params.offset).limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def _lock_doctor(self, doctor_id: str) -> Doctor:
        """Lock the doctor row with ``SELECT ... FOR UPDATE`` where the backend supports it.

        Must run before the review INSERT/UPDATE/DELETE is flushed: the foreign-key
        check of that write already takes a share lock on the same row.
        """
        result = await self.db.execute(select(Doctor).where(Doctor.doctor_id == doctor_id).with_for_update())
        doctor = result.scalar_one_or_none()
        if doctor is None:
            raise NotFoundError("Doctor not found")
        return doctor

    async def recompute_rating(self, doctor: Doctor) -> Doctor:
        """Rescan the locked doctor's reviews and store mean/count; the caller commits."""
        await self.db.flush()
        doctor_id = doctor.doctor_id

        average, count = (
            await self.db.execute(
                select(func.avg(Review.rating), func.count(Review.review_id)).where(Review.doctor_id == doctor_id)
            )
        ).one()
        if count:
            doctor.rating = round_rating(average)
            doctor.total_reviews = count
        else:
            doctor.rating = BASELINE_RATING
            doctor.total_reviews = 0
        logger.info("Doctor %s rating recomputed: %s over %s reviews", doctor_id, doctor.rating, doctor.total_reviews)
        return doctor

    async def _get_appointment(self, appointment_id: str) -> Appointment:
        result = await self.db.execute(select(Appointment).where(Appointment.appointment_id == appointment_id))
        appointment = result.scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment

    async def _get_review(self, review_id: str) -> Review:
        result = await self.db.execute(select(Review).where(Review.review_id == review_id))
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError("Review not found")
        return review
