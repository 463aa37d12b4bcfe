from datetime import datetime
from typing import Optional
from zoneinfo import available_timezones

from pydantic import BaseModel, EmailStr, field_validator


class UserUpdate(BaseModel):
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in available_timezones():
            raise ValueError(f"Unknown timezone: {value}")
        return value


class UserRead(BaseModel):
    id: int
    email: EmailStr
    timezone: Optional[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
