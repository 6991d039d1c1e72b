"""Business logic for computing a doctor's open slots on a date."""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.modules.appointments.models import Appointment
from src.modules.doctors.models import Doctor, DoctorSlot
from src.modules.schedule.schemas import AvailabilityResult, TimeSlot
from src.shared.enums import SLOT_RELEASING_STATUSES, Weekday

NOT_WORKING_DAY_MESSAGE = "Doctor is not available on this day"


def works_on(doctor: Doctor, target_date: date) -> bool:
    return Weekday.from_date(target_date).value in {Weekday(day).value for day in doctor.available_days}


def find_template(doctor: Doctor, start_time: str) -> DoctorSlot | None:
    for slot in doctor.slots:
        if slot.start_time == start_time:
            return slot
    return None


async def booked_start_times(doctor_id: str, target_date: date, db: AsyncSession) -> set[str]:
    """Start times held on that date by appointments that are not cancelled or no-show."""
    stmt = select(Appointment.start_time).where(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == target_date,
        Appointment.status.not_in(list(SLOT_RELEASING_STATUSES)),
    )
    result = await db.execute(stmt)
    return set(result.scalars().all())


def _filter_open(templates: list[DoctorSlot], booked: set[str]) -> list[TimeSlot]:
    return [
        TimeSlot(start_time=slot.start_time, end_time=slot.end_time)
        for slot in templates
        if slot.start_time not in booked
    ]


async def get_available_slots(doctor_id: str, target_date: date, db: AsyncSession) -> AvailabilityResult:
    result = await db.execute(select(Doctor).where(Doctor.doctor_id == doctor_id))
    doctor = result.scalar_one_or_none()
    if doctor is None:
        raise NotFoundError("Doctor not found")

    weekday = Weekday.from_date(target_date)
    if not works_on(doctor, target_date):
        return AvailabilityResult(
            doctor_id=doctor_id,
            date=target_date,
            weekday=weekday,
            is_working_day=False,
            slots=[],
            message=NOT_WORKING_DAY_MESSAGE,
        )

    booked = await booked_start_times(doctor_id, target_date, db)
    return AvailabilityResult(
        doctor_id=doctor_id,
        date=target_date,
        weekday=weekday,
        is_working_day=True,
        slots=_filter_open(doctor.slots, booked),
    )
