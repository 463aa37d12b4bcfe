from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.services.recurrence import RecurrencePattern, RecurrenceUnit

CareTaskType = Literal[
    "water", "fertilize", "water_fertilize", "mist", "repot_check", "prune", "rotate", "custom"
]
ScheduleMode = Literal["recurring", "one-time", "unscheduled"]


def _check_schedule(
    mode: Optional[str],
    pattern: Optional[RecurrencePattern],
    specific_due_date: Optional[datetime],
) -> None:
    if mode == "recurring" and pattern is None:
        raise ValueError("recurrence_pattern is required for recurring tasks")
    if mode == "one-time" and specific_due_date is None:
        raise ValueError("specific_due_date is required for one-time tasks")


class CareTaskCreate(BaseModel):
    plant_id: int
    type: CareTaskType
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    schedule_mode: ScheduleMode = "recurring"
    recurrence_pattern: Optional[RecurrencePattern] = None
    specific_due_date: Optional[datetime] = None
    start_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_schedule(self) -> "CareTaskCreate":
        _check_schedule(self.schedule_mode, self.recurrence_pattern, self.specific_due_date)
        return self


class CareTaskUpdate(BaseModel):
    """Partial update. ``schedule_mode`` switches how the task is scheduled;
    a bare ``recurrence_pattern`` keeps the task recurring under the new cadence."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    schedule_mode: Optional[ScheduleMode] = None
    recurrence_pattern: Optional[RecurrencePattern] = None
    specific_due_date: Optional[datetime] = None
    next_due_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_fields(self) -> "CareTaskUpdate":
        # description is the only column that may be cleared
        for name in self.model_fields_set - {"description"}:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        _check_schedule(self.schedule_mode, self.recurrence_pattern, self.specific_due_date)
        return self


class CareTaskComplete(BaseModel):
    notes: Optional[str] = None


class CareTaskAssign(BaseModel):
    # null clears the assignment
    assigned_user_id: Optional[int]


class CareTaskRead(BaseModel):
    id: int
    plant_id: int
    type: str
    assigned_user_id: Optional[int]
    title: str
    description: Optional[str]
    is_recurring: bool
    recurrence_frequency: Optional[int]
    recurrence_unit: Optional[RecurrenceUnit]
    next_due_date: Optional[datetime]
    last_completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskDefaults(BaseModel):
    frequency: int
    unit: RecurrenceUnit
    title: str
