import asyncio
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from src.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, InvalidStateError
from src.modules.appointments.models import Appointment
from src.modules.appointments.schemas import AppointmentCreate, AppointmentFilters, AppointmentUpdate, StatusUpdate
from src.modules.appointments.service import SLOT_TAKEN_MESSAGE, AppointmentService
from src.modules.doctors.schemas import DoctorUpdate
from src.modules.doctors.service import DoctorService
from src.modules.reviews.models import Review
from src.modules.schedule.service import booked_start_times
from src.modules.schedule.schemas import TimeSlot
from src.modules.users.models import User
from src.shared.enums import AppointmentStatus, AppointmentType, PaymentStatus
from src.shared.pagination import PageParams

MONDAY = date(2024, 5, 20)
TUESDAY = date(2024, 5, 21)
WEDNESDAY = date(2024, 5, 22)


def _booking(clinic, start="09:00", end="09:30", on=MONDAY, **extra) -> AppointmentCreate:
    return AppointmentCreate(
        doctor_id=clinic.doctor.doctor_id,
        appointment_date=on,
        time_slot=TimeSlot(start_time=start, end_time=end),
        **extra,
    )


@pytest.mark.asyncio
async def test_booking_snapshots_fee_and_defaults(db_session, clinic):
    service = AppointmentService(db_session)

    appointment = await service.create_appointment(_booking(clinic, symptoms="Chest pain"), clinic.patient)

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.type == AppointmentType.CONSULTATION
    assert appointment.payment_status == PaymentStatus.PENDING
    assert appointment.fee == Decimal("500.00")
    assert appointment.occupies_slot is True
    assert appointment.time_slot == {"start_time": "09:00", "end_time": "09:30"}

    await DoctorService(db_session).update_doctor(
        clinic.doctor.doctor_id, DoctorUpdate(consultation_fee=Decimal("750.00"))
    )
    stored = await db_session.get(Appointment, appointment.appointment_id)
    assert stored.fee == Decimal("500.00")


@pytest.mark.asyncio
async def test_booking_keeps_requested_type(db_session, clinic):
    service = AppointmentService(db_session)

    appointment = await service.create_appointment(
        _booking(clinic, type=AppointmentType.FOLLOW_UP), clinic.patient
    )

    assert appointment.type == AppointmentType.FOLLOW_UP


@pytest.mark.asyncio
async def test_only_patients_can_book(db_session, clinic):
    service = AppointmentService(db_session)

    with pytest.raises(ForbiddenError):
        await service.create_appointment(_booking(clinic), clinic.admin)


@pytest.mark.asyncio
async def test_unavailable_doctor_rejects_booking(db_session, clinic):
    clinic.doctor.is_available = False
    await db_session.commit()
    service = AppointmentService(db_session)

    with pytest.raises(InvalidStateError, match="Doctor is not available"):
        await service.create_appointment(_booking(clinic), clinic.patient)


@pytest.mark.asyncio
async def test_booking_outside_working_days_is_rejected(db_session, clinic):
    service = AppointmentService(db_session)

    with pytest.raises(InvalidStateError):
        await service.create_appointment(_booking(clinic, on=TUESDAY), clinic.patient)


@pytest.mark.asyncio
@pytest.mark.parametrize(("start", "end"), [("11:00", "11:30"), ("09:00", "10:00")])
async def test_booking_requires_an_offered_slot(db_session, clinic, start, end):
    service = AppointmentService(db_session)

    with pytest.raises(InvalidInputError):
        await service.create_appointment(_booking(clinic, start=start, end=end), clinic.patient)


@pytest.mark.asyncio
async def test_second_booking_of_same_slot_conflicts(db_session, clinic):
    service = AppointmentService(db_session)
    await service.create_appointment(_booking(clinic), clinic.patient)

    with pytest.raises(ConflictError, match=SLOT_TAKEN_MESSAGE):
        await service.create_appointment(_booking(clinic), clinic.other_patient)


@pytest.mark.asyncio
async def test_cancelled_slot_can_be_booked_again(db_session, clinic):
    service = AppointmentService(db_session)
    first = await service.create_appointment(_booking(clinic), clinic.patient)
    await service.cancel_appointment(first.appointment_id, clinic.patient)

    second = await service.create_appointment(_booking(clinic), clinic.other_patient)

    assert second.status == AppointmentStatus.PENDING
    rows = await db_session.execute(
        select(func.count()).select_from(Appointment).where(Appointment.start_time == "09:00")
    )
    assert rows.scalar_one() == 2


@pytest.mark.asyncio
async def test_booking_that_slips_past_precheck_hits_unique_constraint(db_session, clinic, monkeypatch):
    service = AppointmentService(db_session)
    doctor_id = clinic.doctor.doctor_id
    await service.create_appointment(_booking(clinic), clinic.patient)
    payload = _booking(clinic)

    async def nothing_booked(*_args, **_kwargs):
        return set()

    # Simulate a competing request that passed the pre-check before our insert landed.
    monkeypatch.setattr("src.modules.appointments.service.booked_start_times", nothing_booked)

    with pytest.raises(ConflictError, match=SLOT_TAKEN_MESSAGE):
        await service.create_appointment(payload, clinic.other_patient)

    rows = await db_session.execute(
        select(func.count()).select_from(Appointment).where(Appointment.doctor_id == doctor_id)
    )
    assert rows.scalar_one() == 1


@pytest.mark.asyncio
async def test_two_sessions_booking_same_slot_yield_one_appointment(file_sessions, monkeypatch):
    SessionLocal, seeded = file_sessions
    both_checked = asyncio.Barrier(2)
    first_finished = asyncio.Event()

    async def checked_together(*args, **kwargs):
        taken = await booked_start_times(*args, **kwargs)
        # Both requests see a free slot; the later one waits for the earlier commit.
        if await both_checked.wait() != 0:
            await first_finished.wait()
        return taken

    monkeypatch.setattr("src.modules.appointments.service.booked_start_times", checked_together)

    async def book(patient_id: str):
        async with SessionLocal() as session:
            try:
                patient = await session.get(User, patient_id)
                return await AppointmentService(session).create_appointment(_booking(seeded), patient)
            finally:
                first_finished.set()

    outcomes = await asyncio.gather(
        book(seeded.patient.user_id),
        book(seeded.other_patient.user_id),
        return_exceptions=True,
    )

    booked = [outcome for outcome in outcomes if isinstance(outcome, Appointment)]
    rejected = [outcome for outcome in outcomes if isinstance(outcome, ConflictError)]
    assert len(booked) == 1
    assert len(rejected) == 1
    assert str(rejected[0]) == SLOT_TAKEN_MESSAGE

    async with SessionLocal() as session:
        rows = await session.execute(
            select(func.count()).select_from(Appointment).where(Appointment.doctor_id == seeded.doctor.doctor_id)
        )
        assert rows.scalar_one() == 1


@pytest.mark.asyncio
async def test_doctor_confirms_then_completes_with_clinical_notes(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    await service.update_status(
        appointment.appointment_id, StatusUpdate(status=AppointmentStatus.CONFIRMED), clinic.doctor_user
    )
    completed = await service.update_status(
        appointment.appointment_id,
        StatusUpdate(
            status=AppointmentStatus.COMPLETED,
            diagnosis="Mild hypertension",
            prescription="Amlodipine 5mg",
        ),
        clinic.doctor_user,
    )

    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.diagnosis == "Mild hypertension"
    assert completed.occupies_slot is True

    with pytest.raises(InvalidStateError):
        await service.update_status(
            appointment.appointment_id,
            StatusUpdate(status=AppointmentStatus.CANCELLED, cancellation_reason="Too late"),
            clinic.doctor_user,
        )


@pytest.mark.asyncio
async def test_pending_cannot_skip_to_completed(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(InvalidStateError):
        await service.update_status(
            appointment.appointment_id, StatusUpdate(status=AppointmentStatus.COMPLETED), clinic.admin
        )


@pytest.mark.asyncio
async def test_clinical_fields_only_accompany_completion(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(InvalidInputError):
        await service.update_status(
            appointment.appointment_id,
            StatusUpdate(status=AppointmentStatus.CONFIRMED, diagnosis="Flu"),
            clinic.doctor_user,
        )


@pytest.mark.asyncio
async def test_no_show_releases_slot(db_session, clinic, make_appointment):
    appointment = await make_appointment(status=AppointmentStatus.CONFIRMED)
    service = AppointmentService(db_session)

    updated = await service.update_status(
        appointment.appointment_id, StatusUpdate(status=AppointmentStatus.NO_SHOW), clinic.doctor_user
    )

    assert updated.status == AppointmentStatus.NO_SHOW
    assert updated.occupies_slot is None


@pytest.mark.asyncio
async def test_staff_cancellation_needs_a_reason(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(InvalidInputError):
        await service.update_status(
            appointment.appointment_id, StatusUpdate(status=AppointmentStatus.CANCELLED), clinic.admin
        )

    cancelled = await service.update_status(
        appointment.appointment_id,
        StatusUpdate(status=AppointmentStatus.CANCELLED, cancellation_reason="Doctor on leave"),
        clinic.admin,
    )
    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancellation_reason == "Doctor on leave"
    assert cancelled.occupies_slot is None


@pytest.mark.asyncio
async def test_patient_may_only_cancel_through_status_update(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(ForbiddenError):
        await service.update_status(
            appointment.appointment_id, StatusUpdate(status=AppointmentStatus.CONFIRMED), clinic.patient
        )

    cancelled = await service.update_status(
        appointment.appointment_id, StatusUpdate(status=AppointmentStatus.CANCELLED), clinic.patient
    )
    assert cancelled.cancellation_reason == "Cancelled by user"


@pytest.mark.asyncio
async def test_cancel_defaults_reason_and_rejects_finished(db_session, clinic, make_appointment):
    pending = await make_appointment()
    completed = await make_appointment(status=AppointmentStatus.COMPLETED, start="09:30", end="10:00")
    service = AppointmentService(db_session)

    cancelled = await service.cancel_appointment(pending.appointment_id, clinic.patient)
    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancellation_reason == "Cancelled by user"

    with pytest.raises(InvalidStateError, match="Cannot cancel this appointment"):
        await service.cancel_appointment(completed.appointment_id, clinic.patient)


@pytest.mark.asyncio
async def test_other_patients_cannot_see_appointment(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(ForbiddenError):
        await service.get_appointment(appointment.appointment_id, clinic.other_patient)
    with pytest.raises(ForbiddenError):
        await service.cancel_appointment(appointment.appointment_id, clinic.other_patient)


@pytest.mark.asyncio
async def test_update_applies_role_projection(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    updated = await service.update_appointment(
        appointment.appointment_id, AppointmentUpdate(symptoms="Dizziness"), clinic.patient
    )
    assert updated.symptoms == "Dizziness"

    with pytest.raises(ForbiddenError, match="diagnosis"):
        await service.update_appointment(
            appointment.appointment_id, AppointmentUpdate(diagnosis="Self diagnosed"), clinic.patient
        )

    paid = await service.update_appointment(
        appointment.appointment_id, AppointmentUpdate(payment_status=PaymentStatus.PAID), clinic.doctor_user
    )
    assert paid.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_patient_cannot_edit_finished_appointment(db_session, clinic, make_appointment):
    appointment = await make_appointment(status=AppointmentStatus.CANCELLED)
    service = AppointmentService(db_session)

    with pytest.raises(InvalidStateError):
        await service.update_appointment(
            appointment.appointment_id, AppointmentUpdate(symptoms="Better now"), clinic.patient
        )


@pytest.mark.asyncio
async def test_update_rejects_clearing_required_fields(db_session, clinic, make_appointment):
    appointment = await make_appointment()
    service = AppointmentService(db_session)

    with pytest.raises(InvalidInputError, match="type"):
        await service.update_appointment(appointment.appointment_id, AppointmentUpdate(type=None), clinic.patient)
    with pytest.raises(InvalidInputError, match="payment_status"):
        await service.update_appointment(
            appointment.appointment_id, AppointmentUpdate(payment_status=None), clinic.admin
        )

    current = await service.get_appointment(appointment.appointment_id, clinic.admin)
    assert current.type == AppointmentType.CONSULTATION
    assert current.payment_status == PaymentStatus.PENDING


async def _seed_listing(db_session, clinic, make_appointment):
    reviewed = await make_appointment(status=AppointmentStatus.COMPLETED)
    upcoming = await make_appointment(on=WEDNESDAY, start="09:30", end="10:00")
    await make_appointment(patient=clinic.other_patient, start="10:00", end="10:30")
    db_session.add(
        Review(
            patient_id=clinic.patient.user_id,
            doctor_id=clinic.doctor.doctor_id,
            appointment_id=reviewed.appointment_id,
            rating=5,
        )
    )
    await db_session.commit()
    return reviewed, upcoming


@pytest.mark.asyncio
async def test_patient_listing_is_scoped_and_flags_reviews(db_session, clinic, make_appointment):
    reviewed, upcoming = await _seed_listing(db_session, clinic, make_appointment)
    service = AppointmentService(db_session)

    listing = await service.list_appointments(clinic.patient, AppointmentFilters(), PageParams())

    assert listing.total == 2
    assert [item.appointment_id for item in listing.items] == [upcoming.appointment_id, reviewed.appointment_id]
    assert listing.has_reviewed(reviewed) is True
    assert listing.has_reviewed(upcoming) is False


@pytest.mark.asyncio
async def test_doctor_and_admin_listings(db_session, clinic, make_appointment):
    await _seed_listing(db_session, clinic, make_appointment)
    service = AppointmentService(db_session)

    doctor_view = await service.list_appointments(clinic.doctor_user, AppointmentFilters(), PageParams())
    assert doctor_view.total == 3
    assert doctor_view.has_reviewed(doctor_view.items[0]) is None

    pending = await service.list_appointments(
        clinic.admin, AppointmentFilters(status=AppointmentStatus.PENDING), PageParams()
    )
    assert pending.total == 2

    on_monday = await service.list_appointments(clinic.admin, AppointmentFilters(on_date=MONDAY), PageParams())
    assert on_monday.total == 2

    in_range = await service.list_appointments(
        clinic.admin,
        AppointmentFilters(start_date=WEDNESDAY, end_date=WEDNESDAY),
        PageParams(),
    )
    assert in_range.total == 1

    second_page = await service.list_appointments(clinic.admin, AppointmentFilters(), PageParams(page=2, limit=2))
    assert second_page.total == 3
    assert len(second_page.items) == 1


@pytest.mark.asyncio
async def test_stats_count_statuses_revenue_and_today(db_session, clinic, make_appointment, monkeypatch):
    await make_appointment()
    await make_appointment(
        status=AppointmentStatus.COMPLETED, start="09:30", end="10:00", payment_status=PaymentStatus.PAID
    )
    await make_appointment(
        status=AppointmentStatus.CONFIRMED, on=WEDNESDAY, payment_status=PaymentStatus.PAID
    )
    service = AppointmentService(db_session)
    monkeypatch.setattr(service, "_today", lambda: MONDAY)

    stats = await service.get_stats()

    assert stats.by_status[AppointmentStatus.PENDING] == 1
    assert stats.by_status[AppointmentStatus.COMPLETED] == 1
    assert stats.by_status[AppointmentStatus.CONFIRMED] == 1
    assert stats.by_status[AppointmentStatus.NO_SHOW] == 0
    assert stats.total_revenue == Decimal("1000")
    assert stats.today_appointments == 2
