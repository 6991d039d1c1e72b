"""Doctor directory schemas."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.modules.schedule.schemas import TimeSlot
from src.shared.enums import Weekday


def _ensure_unique_starts(slots: list[TimeSlot] | None) -> list[TimeSlot] | None:
    if slots is None:
        return slots
    starts = [slot.start_time for slot in slots]
    if len(starts) != len(set(starts)):
        raise ValueError("Slot start times must be unique")
    return slots


def _dedupe_days(days: list[Weekday] | None) -> list[Weekday] | None:
    if days is None:
        return days
    return list(dict.fromkeys(days))


class DepartmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    department_id: str = Field(serialization_alias="id")
    name: str
    description: str
    is_active: bool


class DoctorPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doctor_id: str = Field(serialization_alias="id")
    user_id: str
    department_id: str
    specialization: str
    qualification: str
    experience_years: int
    consultation_fee: Decimal
    bio: str | None = None
    available_days: list[Weekday]
    slots: list[TimeSlot]
    rating: float
    total_reviews: int
    is_available: bool


class DoctorCreate(BaseModel):
    user_id: str
    department_id: str
    specialization: str = Field(..., min_length=1, max_length=100)
    qualification: str = Field("MBBS", min_length=1, max_length=200)
    experience_years: int = Field(0, ge=0)
    consultation_fee: Decimal = Field(..., ge=0)
    bio: str | None = Field(None, max_length=1000)
    available_days: list[Weekday] = Field(default_factory=list)
    slots: list[TimeSlot] = Field(default_factory=list)
    is_available: bool = True

    @field_validator("slots")
    @classmethod
    def unique_slot_starts(cls, value: list[TimeSlot] | None) -> list[TimeSlot] | None:
        return _ensure_unique_starts(value)

    @field_validator("available_days")
    @classmethod
    def dedupe_days(cls, value: list[Weekday] | None) -> list[Weekday] | None:
        return _dedupe_days(value)


class DoctorUpdate(BaseModel):
    department_id: str | None = None
    specialization: str | None = Field(None, min_length=1, max_length=100)
    qualification: str | None = Field(None, min_length=1, max_length=200)
    experience_years: int | None = Field(None, ge=0)
    consultation_fee: Decimal | None = Field(None, ge=0)
    bio: str | None = Field(None, max_length=1000)


class AvailabilityUpdate(BaseModel):
    available_days: list[Weekday] | None = None
    slots: list[TimeSlot] | None = None
    is_available: bool | None = None

    @field_validator("slots")
    @classmethod
    def unique_slot_starts(cls, value: list[TimeSlot] | None) -> list[TimeSlot] | None:
        return _ensure_unique_starts(value)

    @field_validator("available_days")
    @classmethod
    def dedupe_days(cls, value: list[Weekday] | None) -> list[Weekday] | None:
        return _dedupe_days(value)


class DoctorFilters(BaseModel):
    department_id: str | None = None
    specialization: str | None = None
    available: bool | None = None
    min_rating: float | None = Field(None, ge=0, le=5)
    search: str | None = None
