import os
import sys
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from src.core.database import Base  # noqa: E402
from src.modules.appointments.models import Appointment  # noqa: E402
from src.modules.doctors.models import Department, Doctor, DoctorSlot  # noqa: E402
from src.modules.users.models import User  # noqa: E402
from src.shared.enums import AppointmentStatus, UserRole, Weekday  # noqa: E402

MONDAY = date(2024, 5, 20)
TUESDAY = date(2024, 5, 21)
WEDNESDAY = date(2024, 5, 22)
MORNING_SLOTS = [("09:00", "09:30"), ("09:30", "10:00"), ("10:00", "10:30")]


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        yield session
    await engine.dispose()


@dataclass
class Clinic:
    department: Department
    doctor: Doctor
    doctor_user: User
    patient: User
    other_patient: User
    admin: User


async def seed_clinic(session) -> Clinic:
    department = Department(name="Cardiology", description="Heart care", is_active=True)
    doctor_user = User(email="dr.rao@example.com", name="Dr. Rao", role=UserRole.DOCTOR, is_active=True)
    patient = User(email="asha@example.com", name="Asha", role=UserRole.PATIENT, is_active=True)
    other_patient = User(email="vikram@example.com", name="Vikram", role=UserRole.PATIENT, is_active=True)
    admin = User(email="admin@example.com", name="Admin", role=UserRole.ADMIN, is_active=True)
    session.add_all([department, doctor_user, patient, other_patient, admin])
    await session.flush()

    doctor = Doctor(
        user_id=doctor_user.user_id,
        department_id=department.department_id,
        specialization="Cardiologist",
        qualification="MD",
        experience_years=12,
        consultation_fee=Decimal("500.00"),
        available_days=[Weekday.MONDAY.value, Weekday.WEDNESDAY.value],
        rating=4.5,
        total_reviews=0,
        is_available=True,
    )
    doctor.slots = [
        DoctorSlot(position=index, start_time=start, end_time=end)
        for index, (start, end) in enumerate(MORNING_SLOTS)
    ]
    session.add(doctor)
    await session.commit()
    return Clinic(
        department=department,
        doctor=doctor,
        doctor_user=doctor_user,
        patient=patient,
        other_patient=other_patient,
        admin=admin,
    )


@pytest_asyncio.fixture
async def clinic(db_session) -> Clinic:
    return await seed_clinic(db_session)


@pytest_asyncio.fixture
async def file_sessions(tmp_path):
    """A sessionmaker over a seeded file-backed SQLite database, for tests needing separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'medibook.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        seeded = await seed_clinic(session)
    yield SessionLocal, seeded
    await engine.dispose()


@pytest.fixture
def make_appointment(db_session, clinic):
    """Insert an appointment row directly, bypassing booking checks."""

    async def factory(
        status: AppointmentStatus = AppointmentStatus.PENDING,
        patient: User | None = None,
        on: date = MONDAY,
        start: str = "09:00",
        end: str = "09:30",
        **extra,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=(patient or clinic.patient).user_id,
            doctor_id=clinic.doctor.doctor_id,
            appointment_date=on,
            start_time=start,
            end_time=end,
            status=status,
            fee=clinic.doctor.consultation_fee,
            **extra,
        )
        db_session.add(appointment)
        await db_session.commit()
        return appointment

    return factory
