"""Appointments schemas."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.modules.schedule.schemas import TimeSlot
from src.shared.enums import AppointmentStatus, AppointmentType, PaymentStatus


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appointment_id: str = Field(serialization_alias="id")
    patient_id: str
    doctor_id: str
    appointment_date: date
    time_slot: TimeSlot
    status: AppointmentStatus
    type: AppointmentType
    symptoms: str | None = None
    notes: str | None = None
    diagnosis: str | None = None
    prescription: str | None = None
    fee: Decimal
    payment_status: PaymentStatus
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime
    has_reviewed: bool | None = None


class AppointmentCreate(BaseModel):
    doctor_id: str
    appointment_date: date
    time_slot: TimeSlot
    type: AppointmentType | None = None
    symptoms: str | None = Field(None, max_length=500)


class AppointmentUpdate(BaseModel):
    symptoms: str | None = Field(None, max_length=500)
    type: AppointmentType | None = None
    notes: str | None = Field(None, max_length=1000)
    diagnosis: str | None = Field(None, max_length=1000)
    prescription: str | None = Field(None, max_length=2000)
    payment_status: PaymentStatus | None = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus
    diagnosis: str | None = Field(None, max_length=1000)
    prescription: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=1000)
    cancellation_reason: str | None = Field(None, max_length=500)


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class AppointmentFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: AppointmentStatus | None = None
    type: AppointmentType | None = None
    on_date: date | None = Field(None, alias="date")
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentFilters":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AppointmentStats(BaseModel):
    by_status: dict[AppointmentStatus, int]
    total_revenue: Decimal
    today_appointments: int
