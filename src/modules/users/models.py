"""ORM models for the users domain."""

from __future__ import annotations

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.shared.enums import UserRole, enum_values
from src.shared.models import TimestampMixin, ulid_primary_key


class User(Base, TimestampMixin):
    __tablename__ = "users"

    user_id: Mapped[str] = ulid_primary_key()
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            values_callable=enum_values,
            validate_strings=True,
            name="userrole",
        ),
        nullable=False,
        default=UserRole.PATIENT,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


# Late imports so every mapped table is registered with Base.metadata.
from src.modules.appointments.models import Appointment  # noqa: E402,F401
from src.modules.doctors.models import Department, Doctor, DoctorSlot  # noqa: E402,F401
from src.modules.reviews.models import Review  # noqa: E402,F401
