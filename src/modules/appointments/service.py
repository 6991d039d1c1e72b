"""Appointment service layer: booking, lifecycle and reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, InvalidStateError, NotFoundError
from src.modules.appointments.lifecycle import (
    CLINICAL_FIELDS,
    DEFAULT_CANCELLATION_REASON,
    AppointmentOperation,
    ensure_cancellable,
    ensure_fields_allowed,
    ensure_transition,
    is_terminal,
)
from src.modules.appointments.models import Appointment
from src.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentStats,
    AppointmentUpdate,
    StatusUpdate,
)
from src.modules.doctors.service import DoctorService
from src.modules.reviews.models import Review
from src.modules.schedule.service import booked_start_times, find_template, works_on
from src.modules.users.models import User
from src.shared.enums import AppointmentStatus, AppointmentType, PaymentStatus, UserRole, Weekday
from src.shared.pagination import PageParams

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot is already booked"
# Columns that may be changed but never cleared.
NON_NULLABLE_UPDATE_FIELDS = frozenset({"type", "payment_status"})


@dataclass
class AppointmentListing:
    items: list[Appointment]
    total: int
    # Only populated for patients; drives the "leave a review" affordance.
    reviewed_ids: set[str] | None = field(default=None)

    def has_reviewed(self, appointment: Appointment) -> bool | None:
        if self.reviewed_ids is None:
            return None
        return appointment.appointment_id in self.reviewed_ids


class AppointmentService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.tz = ZoneInfo(settings.default_timezone)
        self.doctors = DoctorService(db)

    def _today(self) -> date:
        return datetime.now(tz=self.tz).date()

    async def create_appointment(self, payload: AppointmentCreate, patient: User) -> Appointment:
        if patient.role != UserRole.PATIENT:
            raise ForbiddenError("Only patients can book appointments")

        doctor = await self.doctors.get_doctor(payload.doctor_id)
        if not doctor.is_available:
            raise InvalidStateError("Doctor is not available")
        if not works_on(doctor, payload.appointment_date):
            weekday = Weekday.from_date(payload.appointment_date).value
            raise InvalidStateError(f"Doctor does not accept bookings on {weekday}")

        start, end = payload.time_slot.start_time, payload.time_slot.end_time
        template = find_template(doctor, start)
        if template is None or template.end_time != end:
            raise InvalidInputError("Requested time slot is not offered by this doctor")

        if start in await booked_start_times(doctor.doctor_id, payload.appointment_date, self.db):
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment = Appointment(
            patient_id=patient.user_id,
            doctor_id=doctor.doctor_id,
            appointment_date=payload.appointment_date,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.PENDING,
            type=payload.type or AppointmentType.CONSULTATION,
            symptoms=payload.symptoms,
            fee=doctor.consultation_fee,
        )
        self.db.add(appointment)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Lost the race to a concurrent booking of the same slot.
            await self.db.rollback()
            logger.warning(
                "Concurrent booking rejected for doctor %s on %s at %s",
                payload.doctor_id,
                payload.appointment_date,
                start,
            )
            raise ConflictError(SLOT_TAKEN_MESSAGE) from exc
        await self.db.refresh(appointment)
        logger.info(
            "Appointment %s booked by %s with doctor %s on %s at %s",
            appointment.appointment_id,
            patient.user_id,
            appointment.doctor_id,
            appointment.appointment_date,
            start,
        )
        return appointment

    async def list_appointments(
        self,
        actor: User,
        filters: AppointmentFilters,
        params: PageParams,
    ) -> AppointmentListing:
        stmt = select(Appointment)
        if actor.role == UserRole.PATIENT:
            stmt = stmt.where(Appointment.patient_id == actor.user_id)
        elif actor.role == UserRole.DOCTOR:
            doctor = await self.doctors.get_for_user(actor.user_id)
            if doctor is None:
                return AppointmentListing(items=[], total=0)
            stmt = stmt.where(Appointment.doctor_id == doctor.doctor_id)

        if filters.status:
            stmt = stmt.where(Appointment.status == filters.status)
        if filters.type:
            stmt = stmt.where(Appointment.type == filters.type)
        if filters.start_date and filters.end_date:
            stmt = stmt.where(
                Appointment.appointment_date >= filters.start_date,
                Appointment.appointment_date <= filters.end_date,
            )
        elif filters.on_date:
            stmt = stmt.where(Appointment.appointment_date == filters.on_date)

        total = (await self.db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
        stmt = (
            stmt.order_by(Appointment.appointment_date.desc(), Appointment.start_time.asc())
            .offset(params.offset)
            .limit(params.limit)
        )
        items = list((await self.db.execute(stmt)).scalars().all())

        listing = AppointmentListing(items=items, total=total)
        if actor.role == UserRole.PATIENT:
            listing.reviewed_ids = await self._reviewed_ids(actor.user_id, [item.appointment_id for item in items])
        return listing

    async def get_appointment(self, appointment_id: str, actor: User) -> Appointment:
        appointment = await self._get_by_id(appointment_id)
        await self._ensure_can_access(appointment, actor)
        return appointment

    async def update_appointment(self, appointment_id: str, payload: AppointmentUpdate, actor: User) -> Appointment:
        appointment = await self.get_appointment(appointment_id, actor)
        update_data = payload.model_dump(exclude_unset=True)
        if not update_data:
            return appointment

        ensure_fields_allowed(actor.role, AppointmentOperation.UPDATE, update_data)
        if actor.role == UserRole.PATIENT and is_terminal(appointment.status):
            raise InvalidStateError("Appointment can no longer be modified")
        cleared = sorted(
            key for key in NON_NULLABLE_UPDATE_FIELDS if key in update_data and update_data[key] is None
        )
        if cleared:
            raise InvalidInputError(f"Cannot clear required fields: {', '.join(cleared)}")

        for key, value in update_data.items():
            setattr(appointment, key, value)
        await self.db.commit()
        await self.db.refresh(appointment)
        return appointment

    async def update_status(self, appointment_id: str, payload: StatusUpdate, actor: User) -> Appointment:
        appointment = await self.get_appointment(appointment_id, actor)
        target = payload.status
        extras = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"status"})

        if actor.role == UserRole.PATIENT and target != AppointmentStatus.CANCELLED:
            raise ForbiddenError("Patients can only cancel their appointments")
        ensure_fields_allowed(actor.role, AppointmentOperation.UPDATE_STATUS, extras)
        if CLINICAL_FIELDS & extras.keys() and target != AppointmentStatus.COMPLETED:
            raise InvalidInputError("Diagnosis, prescription and notes are recorded when completing an appointment")
        if "cancellation_reason" in extras and target != AppointmentStatus.CANCELLED:
            raise InvalidInputError("A cancellation reason only applies when cancelling")

        previous = appointment.status
        if target == AppointmentStatus.CANCELLED:
            ensure_cancellable(previous)
            reason = extras.pop("cancellation_reason", None)
            if not reason:
                if actor.role != UserRole.PATIENT:
                    raise InvalidInputError("A cancellation reason is required")
                reason = DEFAULT_CANCELLATION_REASON
            appointment.cancellation_reason = reason
        else:
            ensure_transition(previous, target)

        for key, value in extras.items():
            setattr(appointment, key, value)
        appointment.status = target
        await self.db.commit()
        await self.db.refresh(appointment)
        logger.info(
            "Appointment %s moved from %s to %s by %s",
            appointment.appointment_id,
            AppointmentStatus(previous).value,
            AppointmentStatus(target).value,
            actor.user_id,
        )
        return appointment

    async def cancel_appointment(self, appointment_id: str, actor: User, reason: str | None = None) -> Appointment:
        appointment = await self.get_appointment(appointment_id, actor)
        ensure_cancellable(appointment.status)
        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON
        await self.db.commit()
        await self.db.refresh(appointment)
        logger.info("Appointment %s cancelled by %s", appointment.appointment_id, actor.user_id)
        return appointment

    async def get_stats(self) -> AppointmentStats:
        by_status = {status: 0 for status in AppointmentStatus}
        rows = await self.db.execute(
            select(Appointment.status, func.count(Appointment.appointment_id)).group_by(Appointment.status)
        )
        for status_value, count in rows.all():
            by_status[AppointmentStatus(status_value)] = count

        revenue = (
            await self.db.execute(
                select(func.coalesce(func.sum(Appointment.fee), 0)).where(
                    Appointment.payment_status == PaymentStatus.PAID
                )
            )
        ).scalar_one()

        today_count = (
            await self.db.execute(
                select(func.count(Appointment.appointment_id)).where(Appointment.appointment_date == self._today())
            )
        ).scalar_one()

        return AppointmentStats(
            by_status=by_status,
            total_revenue=Decimal(str(revenue)),
            today_appointments=today_count,
        )

    async def _reviewed_ids(self, patient_id: str, appointment_ids: list[str]) -> set[str]:
        if not appointment_ids:
            return set()
        result = await self.db.execute(
            select(Review.appointment_id).where(
                Review.patient_id == patient_id,
                Review.appointment_id.in_(appointment_ids),
            )
        )
        return set(result.scalars().all())

    async def _ensure_can_access(self, appointment: Appointment, actor: User) -> None:
        if actor.role == UserRole.ADMIN:
            return
        if actor.role == UserRole.PATIENT:
            if appointment.patient_id != actor.user_id:
                raise ForbiddenError("Not authorized to access this appointment")
            return
        doctor = await self.doctors.get_for_user(actor.user_id)
        if doctor is None or doctor.doctor_id != appointment.doctor_id:
            raise ForbiddenError("Not authorized to access this appointment")

    async def _get_by_id(self, appointment_id: str) -> Appointment:
        result = await self.db.execute(select(Appointment).where(Appointment.appointment_id == appointment_id))
        appointment = result.scalar_one_or_none()
        if appointment is None:
            raise NotFoundError("Appointment not found")
        return appointment
