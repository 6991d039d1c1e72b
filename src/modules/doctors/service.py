"""Doctor directory service layer."""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from src.modules.appointments.models import Appointment
from src.modules.doctors.models import Department, Doctor, DoctorSlot
from src.modules.doctors.schemas import AvailabilityUpdate, DoctorCreate, DoctorFilters, DoctorUpdate
from src.modules.schedule.schemas import TimeSlot
from src.modules.users.models import User
from src.shared.enums import UserRole, Weekday
from src.shared.pagination import PageParams

logger = logging.getLogger(__name__)


def build_slots(slots: list[TimeSlot]) -> list[DoctorSlot]:
    """Turn validated templates into ORM rows, keeping the caller's order."""
    return [
        DoctorSlot(position=index, start_time=slot.start_time, end_time=slot.end_time)
        for index, slot in enumerate(slots)
    ]


def _day_values(days: list[Weekday]) -> list[str]:
    return [Weekday(day).value for day in days]


def _ensure_owner_or_admin(doctor: Doctor, actor: User) -> None:
    if actor.role != UserRole.ADMIN and doctor.user_id != actor.user_id:
        raise ForbiddenError("Not authorized to modify this doctor")


class DoctorService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_doctor(self, doctor_id: str) -> Doctor:
        result = await self.db.execute(select(Doctor).where(Doctor.doctor_id == doctor_id))
        doctor = result.scalar_one_or_none()
        if doctor is None:
            raise NotFoundError("Doctor not found")
        return doctor

    async def get_for_user(self, user_id: str) -> Doctor | None:
        result = await self.db.execute(select(Doctor).where(Doctor.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_own_profile(self, actor: User) -> Doctor:
        doctor = await self.get_for_user(actor.user_id)
        if doctor is None:
            raise NotFoundError("Doctor profile not found")
        return doctor

    async def list_doctors(self, filters: DoctorFilters, params: PageParams) -> tuple[list[Doctor], int]:
        stmt = select(Doctor)
        if filters.department_id:
            stmt = stmt.where(Doctor.department_id == filters.department_id)
        if filters.specialization:
            stmt = stmt.where(Doctor.specialization.ilike(f"%{filters.specialization}%"))
        if filters.available:
            stmt = stmt.where(Doctor.is_available.is_(True))
        if filters.min_rating is not None:
            stmt = stmt.where(Doctor.rating >= filters.min_rating)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.join(User, User.user_id == Doctor.user_id).where(
                or_(User.name.ilike(pattern), Doctor.specialization.ilike(pattern))
            )

        total = (await self.db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
        stmt = stmt.order_by(Doctor.rating.desc(), Doctor.created_at.desc()).offset(params.offset).limit(params.limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def find_doctors_by_department(self, department_id: str) -> list[Doctor]:
        stmt = (
            select(Doctor)
            .where(Doctor.department_id == department_id, Doctor.is_available.is_(True))
            .order_by(Doctor.rating.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_departments(self) -> list[Department]:
        result = await self.db.execute(
            select(Department).where(Department.is_active.is_(True)).order_by(Department.name)
        )
        return list(result.scalars().all())

    async def update_availability(self, doctor_id: str, payload: AvailabilityUpdate, actor: User) -> Doctor:
        doctor = await self.get_doctor(doctor_id)
        _ensure_owner_or_admin(doctor, actor)

        update_data = payload.model_dump(exclude_unset=True)
        if update_data.get("available_days") is not None:
            doctor.available_days = _day_values(payload.available_days or [])
        if update_data.get("slots") is not None:
            # Flush the removals first so reused start times do not trip uq_doctor_slot_start.
            doctor.slots.clear()
            await self.db.flush()
            doctor.slots.extend(build_slots(payload.slots or []))
        if update_data.get("is_available") is not None:
            doctor.is_available = bool(payload.is_available)

        await self.db.commit()
        await self.db.refresh(doctor)
        logger.info("Availability updated for doctor %s by %s", doctor.doctor_id, actor.user_id)
        return doctor

    async def create_doctor(self, payload: DoctorCreate) -> Doctor:
        user = await self._get_user(payload.user_id)
        await self._get_department(payload.department_id)
        if await self.get_for_user(user.user_id) is not None:
            raise ConflictError("Doctor profile already exists for this user")

        doctor = Doctor(
            user_id=user.user_id,
            department_id=payload.department_id,
            specialization=payload.specialization,
            qualification=payload.qualification,
            experience_years=payload.experience_years,
            consultation_fee=payload.consultation_fee,
            bio=payload.bio,
            available_days=_day_values(payload.available_days),
            is_available=payload.is_available,
        )
        doctor.slots = build_slots(payload.slots)
        user.role = UserRole.DOCTOR
        self.db.add(doctor)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Doctor profile already exists for this user") from exc
        await self.db.refresh(doctor)
        logger.info("Doctor profile %s created for user %s", doctor.doctor_id, user.user_id)
        return doctor

    async def update_doctor(self, doctor_id: str, payload: DoctorUpdate, actor: User | None = None) -> Doctor:
        """Apply profile changes. With an ``actor``, only the owning doctor or an admin may edit."""
        doctor = await self.get_doctor(doctor_id)
        if actor is not None:
            _ensure_owner_or_admin(doctor, actor)
        update_data = payload.model_dump(exclude_unset=True)
        if update_data.get("department_id"):
            await self._get_department(update_data["department_id"])
        for field, value in update_data.items():
            if value is not None:
                setattr(doctor, field, value)
        await self.db.commit()
        await self.db.refresh(doctor)
        return doctor

    async def delete_doctor(self, doctor_id: str) -> None:
        doctor = await self.get_doctor(doctor_id)
        booked = await self.db.execute(
            select(func.count(Appointment.appointment_id)).where(Appointment.doctor_id == doctor_id)
        )
        if booked.scalar_one():
            raise InvalidStateError("Doctor has appointment history; mark the doctor unavailable instead")
        user = await self.db.get(User, doctor.user_id)
        if user is not None and user.role == UserRole.DOCTOR:
            user.role = UserRole.PATIENT
        await self.db.delete(doctor)
        await self.db.commit()
        logger.info("Doctor profile %s deleted", doctor_id)

    async def _get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _get_department(self, department_id: str) -> Department:
        department = await self.db.get(Department, department_id)
        if department is None:
            raise NotFoundError("Department not found")
        return department
