"""
Per-channel delivery eligibility.

Pure decisions over a preferences snapshot. A user without a preferences row
receives everything: missing preferences fail open.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.models.notification import UserNotificationPreferences

DEFAULT_QUIET_HOURS_START = 21
DEFAULT_QUIET_HOURS_END = 9

_TYPE_TOGGLES = {
    "task_due": ("notify_task_due", "Task due notifications disabled"),
    "task_overdue": ("notify_task_overdue", "Overdue task notifications disabled"),
    "task_completed": ("notify_task_completed", "Task completion notifications disabled"),
}


@dataclass(frozen=True)
class Eligibility:
    allow: bool
    reason: Optional[str] = None


def is_within_quiet_hours(quiet_start: int, quiet_end: int, hour: int) -> bool:
    # Range wraps past midnight, e.g. 21 -> 9
    if quiet_start > quiet_end:
        return hour >= quiet_start or hour < quiet_end
    return quiet_start <= hour < quiet_end


def should_send(
    prefs: Optional[UserNotificationPreferences],
    notification_type: str,
    channel: str,
    now: datetime,
) -> Eligibility:
    """Decide whether ``notification_type`` may go out on ``channel`` at ``now``.

    ``now`` should already be expressed in the recipient's local time; only its
    hour is consulted for quiet hours.
    """
    if prefs is None:
        return Eligibility(allow=True)

    if channel == "sms" and not prefs.sms_enabled:
        return Eligibility(allow=False, reason="SMS notifications disabled")

    if channel == "email" and not prefs.email_enabled:
        return Eligibility(allow=False, reason="Email notifications disabled")

    toggle = _TYPE_TOGGLES.get(notification_type)
    if toggle is not None:
        field, reason = toggle
        if not getattr(prefs, field):
            return Eligibility(allow=False, reason=reason)

    if channel != "in_app":
        start = prefs.quiet_hours_start if prefs.quiet_hours_start is not None else DEFAULT_QUIET_HOURS_START
        end = prefs.quiet_hours_end if prefs.quiet_hours_end is not None else DEFAULT_QUIET_HOURS_END
        if is_within_quiet_hours(start, end, now.hour):
            return Eligibility(allow=False, reason="Within quiet hours")

    return Eligibility(allow=True)
