"""Schedule schemas."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.shared.enums import Weekday

WALL_CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeSlot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start_time: str = Field(..., pattern=WALL_CLOCK_PATTERN, examples=["09:00"])
    end_time: str = Field(..., pattern=WALL_CLOCK_PATTERN, examples=["09:30"])

    @model_validator(mode="after")
    def validate_order(self) -> "TimeSlot":
        # Zero-padded HH:MM strings compare in clock order.
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityResult(BaseModel):
    doctor_id: str
    date: date
    weekday: Weekday
    is_working_day: bool
    slots: list[TimeSlot]
    message: str | None = None
