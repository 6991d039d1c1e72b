"""Review schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: str = Field(serialization_alias="id")
    doctor_id: str
    appointment_id: str
    patient_id: str | None = None
    rating: int
    comment: str | None = None
    is_anonymous: bool
    created_at: datetime

    def anonymized(self) -> "ReviewPublic":
        if not self.is_anonymous:
            return self
        return self.model_copy(update={"patient_id": None})


class ReviewCreate(BaseModel):
    appointment_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=500)
    is_anonymous: bool = False


class ReviewUpdate(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=500)
    is_anonymous: bool | None = None
