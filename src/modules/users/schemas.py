"""Pydantic schemas for users."""

from pydantic import BaseModel, ConfigDict, Field

from src.shared.enums import UserRole


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(serialization_alias="id")
    email: str
    name: str
    phone: str | None = None
    role: UserRole
