from datetime import date

import pytest

from src.core.exceptions import NotFoundError
from src.modules.doctors.models import Doctor
from src.modules.doctors.schemas import AvailabilityUpdate
from src.modules.doctors.service import DoctorService
from src.modules.schedule.schemas import TimeSlot
from src.modules.schedule.service import NOT_WORKING_DAY_MESSAGE, get_available_slots, works_on
from src.shared.enums import AppointmentStatus, Weekday

MONDAY = date(2024, 5, 20)
TUESDAY = date(2024, 5, 21)


def test_weekday_from_date_and_capitalised_names():
    assert Weekday.from_date(date(2024, 5, 20)) is Weekday.MONDAY
    assert Weekday.from_date(date(2024, 5, 26)) is Weekday.SUNDAY
    assert Weekday("Monday") is Weekday.MONDAY


def test_works_on_accepts_capitalised_stored_days():
    doctor = Doctor(available_days=["Monday", "Friday"])
    assert works_on(doctor, MONDAY)
    assert not works_on(doctor, TUESDAY)


@pytest.mark.asyncio
async def test_all_templates_open_when_nothing_booked(db_session, clinic):
    result = await get_available_slots(clinic.doctor.doctor_id, MONDAY, db_session)

    assert result.is_working_day
    assert result.weekday is Weekday.MONDAY
    assert [slot.start_time for slot in result.slots] == ["09:00", "09:30", "10:00"]


@pytest.mark.asyncio
async def test_held_slots_are_removed_and_released_slots_return(db_session, clinic, make_appointment):
    await make_appointment(status=AppointmentStatus.CONFIRMED, start="09:30", end="10:00")
    await make_appointment(status=AppointmentStatus.CANCELLED, start="09:00", end="09:30")
    await make_appointment(status=AppointmentStatus.NO_SHOW, start="10:00", end="10:30")

    result = await get_available_slots(clinic.doctor.doctor_id, MONDAY, db_session)

    assert [(slot.start_time, slot.end_time) for slot in result.slots] == [
        ("09:00", "09:30"),
        ("10:00", "10:30"),
    ]


@pytest.mark.asyncio
async def test_completed_appointment_keeps_slot_taken(db_session, clinic, make_appointment):
    await make_appointment(status=AppointmentStatus.COMPLETED, start="10:00", end="10:30")

    result = await get_available_slots(clinic.doctor.doctor_id, MONDAY, db_session)

    assert "10:00" not in {slot.start_time for slot in result.slots}


@pytest.mark.asyncio
async def test_bookings_on_other_dates_do_not_interfere(db_session, clinic, make_appointment):
    await make_appointment(status=AppointmentStatus.PENDING, on=date(2024, 5, 27))

    result = await get_available_slots(clinic.doctor.doctor_id, MONDAY, db_session)

    assert len(result.slots) == 3


@pytest.mark.asyncio
async def test_non_working_day_returns_empty_result(db_session, clinic):
    result = await get_available_slots(clinic.doctor.doctor_id, TUESDAY, db_session)

    assert not result.is_working_day
    assert result.slots == []
    assert result.message == NOT_WORKING_DAY_MESSAGE


@pytest.mark.asyncio
async def test_unknown_doctor_raises_not_found(db_session):
    with pytest.raises(NotFoundError):
        await get_available_slots("01UNKNOWNDOCTOR00000000000", MONDAY, db_session)


@pytest.mark.asyncio
async def test_slots_follow_stored_template_order(db_session, clinic, make_appointment):
    doctor_id = clinic.doctor.doctor_id
    await DoctorService(db_session).update_availability(
        doctor_id,
        AvailabilityUpdate(
            slots=[
                TimeSlot(start_time="14:00", end_time="14:30"),
                TimeSlot(start_time="09:00", end_time="09:30"),
                TimeSlot(start_time="11:00", end_time="11:30"),
            ]
        ),
        clinic.doctor_user,
    )
    # Reload from the database rather than the in-memory collection.
    db_session.expunge_all()

    result = await get_available_slots(doctor_id, MONDAY, db_session)
    assert [slot.start_time for slot in result.slots] == ["14:00", "09:00", "11:00"]

    await make_appointment(status=AppointmentStatus.CONFIRMED, start="09:00", end="09:30")
    db_session.expunge_all()

    result = await get_available_slots(doctor_id, MONDAY, db_session)
    assert [slot.start_time for slot in result.slots] == ["14:00", "11:00"]
