"""
Recurrence math for care tasks.

Month steps follow calendar overflow rather than clamping: Jan 31 + 1 month
lands on Mar 3 (Mar 2 in a leap year), the same way a calendar rolls a day
number past the end of a short month.
"""
from datetime import datetime, timedelta, timezone
from typing import Literal

from pydantic import BaseModel, Field

RecurrenceUnit = Literal["days", "weeks", "months"]


class RecurrencePattern(BaseModel):
    frequency: int = Field(gt=0)
    unit: RecurrenceUnit


TASK_DEFAULTS: dict[str, dict] = {
    "water": {"frequency": 6, "unit": "days", "title": "Water"},
    "fertilize": {"frequency": 12, "unit": "days", "title": "Fertilize"},
    "mist": {"frequency": 3, "unit": "days", "title": "Mist"},
    "repot_check": {"frequency": 6, "unit": "months", "title": "Check for Repotting"},
    "water_fertilize": {"frequency": 12, "unit": "days", "title": "Water & Fertilize"},
    "prune": {"frequency": 30, "unit": "days", "title": "Prune"},
    "rotate": {"frequency": 7, "unit": "days", "title": "Rotate"},
    "custom": {"frequency": 7, "unit": "days", "title": "Custom Task"},
}


def get_task_defaults(task_type: str) -> dict:
    return TASK_DEFAULTS.get(task_type, TASK_DEFAULTS["custom"])


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    first_of_month = value.replace(year=year, month=month, day=1)
    return first_of_month + timedelta(days=value.day - 1)


def next_due_date(from_date: datetime, pattern: RecurrencePattern) -> datetime:
    """Return ``from_date`` advanced by one step of ``pattern``."""
    if pattern.unit == "days":
        return from_date + timedelta(days=pattern.frequency)
    if pattern.unit == "weeks":
        return from_date + timedelta(days=pattern.frequency * 7)
    return _add_months(from_date, pattern.frequency)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps read back from backends that drop tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
