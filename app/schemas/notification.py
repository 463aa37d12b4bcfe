from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

NotificationType = Literal[
    "task_due", "task_overdue", "task_completed", "task_created", "plant_needs_attention"
]
NotificationChannel = Literal["in_app", "sms", "email"]


class NotificationRead(BaseModel):
    id: int
    task_id: Optional[int]
    plant_id: Optional[int]
    type: NotificationType
    channel: NotificationChannel
    title: str
    message: str
    metadata: dict = Field(validation_alias="extra")
    read: bool
    read_at: Optional[datetime]
    sent_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class UnreadCount(BaseModel):
    count: int


class NotificationPreferencesRead(BaseModel):
    phone_number: Optional[str]
    phone_verified: bool
    sms_enabled: bool
    sms_opt_in_at: Optional[datetime]
    sms_opt_out_at: Optional[datetime]
    email_enabled: bool
    email_digest_frequency: str
    quiet_hours_start: Optional[int]
    quiet_hours_end: Optional[int]
    notify_task_due: bool
    notify_task_overdue: bool
    notify_task_completed: bool
    advance_notice_hours: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class NotificationPreferencesUpdate(BaseModel):
    email_enabled: Optional[bool] = None
    email_digest_frequency: Optional[Literal["daily", "weekly", "never"]] = None
    quiet_hours_start: Optional[int] = Field(None, ge=0, le=23)
    quiet_hours_end: Optional[int] = Field(None, ge=0, le=23)
    notify_task_due: Optional[bool] = None
    notify_task_overdue: Optional[bool] = None
    notify_task_completed: Optional[bool] = None
    advance_notice_hours: Optional[int] = Field(None, ge=1, le=24 * 14)

    @model_validator(mode="after")
    def check_not_null(self) -> "NotificationPreferencesUpdate":
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PhoneVerificationRequest(BaseModel):
    phone_number: str = Field(pattern=r"^\+[1-9]\d{1,14}$")


class PhoneVerificationConfirm(BaseModel):
    code: str = Field(min_length=6, max_length=6)
