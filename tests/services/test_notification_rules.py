from datetime import datetime, timezone

import pytest

from app.models.notification import UserNotificationPreferences
from app.services.notification_rules import is_within_quiet_hours, should_send

NOON = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
LATE = datetime(2026, 6, 1, 23, 0, tzinfo=timezone.utc)


def _prefs(**overrides) -> UserNotificationPreferences:
    fields = dict(
        sms_enabled=True,
        email_enabled=True,
        notify_task_due=True,
        notify_task_overdue=True,
        notify_task_completed=True,
        quiet_hours_start=21,
        quiet_hours_end=9,
    )
    fields.update(overrides)
    return UserNotificationPreferences(user_id=1, **fields)


@pytest.mark.parametrize("hour", range(24))
def test_wrapping_quiet_hours(hour: int):
    assert is_within_quiet_hours(21, 9, hour) == (hour >= 21 or hour < 9)


@pytest.mark.parametrize("hour", range(24))
def test_non_wrapping_quiet_hours(hour: int):
    assert is_within_quiet_hours(9, 21, hour) == (9 <= hour < 21)


@pytest.mark.parametrize("channel", ["in_app", "sms", "email"])
@pytest.mark.parametrize("notification_type", ["task_due", "task_overdue", "task_completed", "task_created"])
def test_missing_preferences_fail_open(channel: str, notification_type: str):
    assert should_send(None, notification_type, channel, LATE).allow


def test_sms_disabled_denies_even_outside_quiet_hours():
    result = should_send(_prefs(sms_enabled=False), "task_due", "sms", NOON)
    assert not result.allow
    assert result.reason == "SMS notifications disabled"


def test_email_disabled_denies_email_only():
    prefs = _prefs(email_enabled=False)
    assert not should_send(prefs, "task_due", "email", NOON).allow
    assert should_send(prefs, "task_due", "in_app", NOON).allow


@pytest.mark.parametrize(
    "toggle, notification_type",
    [
        ("notify_task_due", "task_due"),
        ("notify_task_overdue", "task_overdue"),
        ("notify_task_completed", "task_completed"),
    ],
)
def test_type_toggle_denies_every_channel(toggle: str, notification_type: str):
    prefs = _prefs(**{toggle: False})
    for channel in ("in_app", "sms", "email"):
        assert not should_send(prefs, notification_type, channel, NOON).allow


def test_untoggled_types_are_allowed():
    prefs = _prefs(notify_task_due=False, notify_task_overdue=False, notify_task_completed=False)
    assert should_send(prefs, "plant_needs_attention", "in_app", NOON).allow


def test_quiet_hours_suppress_external_channels_only():
    prefs = _prefs()
    assert should_send(prefs, "task_due", "in_app", LATE).allow
    sms = should_send(prefs, "task_due", "sms", LATE)
    assert not sms.allow
    assert sms.reason == "Within quiet hours"
    assert not should_send(prefs, "task_due", "email", LATE).allow
    assert should_send(prefs, "task_due", "sms", NOON).allow


def test_midnight_quiet_start_is_respected():
    prefs = _prefs(quiet_hours_start=0, quiet_hours_end=6)
    early = datetime(2026, 6, 1, 3, 0, tzinfo=timezone.utc)
    assert not should_send(prefs, "task_due", "email", early).allow
    assert should_send(prefs, "task_due", "email", LATE).allow


def test_unset_quiet_hours_use_defaults():
    prefs = _prefs(quiet_hours_start=None, quiet_hours_end=None)
    assert not should_send(prefs, "task_due", "sms", LATE).allow
    assert should_send(prefs, "task_due", "sms", NOON).allow
