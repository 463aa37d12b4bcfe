from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.logs import PipelineRun
from app.models.notification import Notification
from app.services.notifications import DispatchResult
from app.tasks.notifications import (
    find_tasks_needing_notification,
    process_task_notifications,
    send_task_notifications,
)


async def _quiet_email(to, subject, body):
    return True


async def _candidate_ids(db: AsyncSession, now: datetime) -> set[int]:
    return {c.task_id for c in await find_tasks_needing_notification(db, now)}


# ── Scanner ────────────────────────────────────────────────────────────────────


async def test_task_due_inside_window_is_found(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, advance_notice_hours=24)
    plant = await make_plant(user, "Fiddle Leaf")
    task = await make_task(plant, noon + timedelta(hours=10))

    candidates = await find_tasks_needing_notification(db, noon)

    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.task_id == task.id
    assert candidate.user_id == user.id
    assert candidate.plant_id == plant.id
    assert candidate.plant_name == "Fiddle Leaf"
    assert candidate.title == "Water"
    assert candidate.due_date == noon + timedelta(hours=10)
    assert candidate.advance_notice_hours == 24


async def test_unscheduled_task_is_never_found(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, advance_notice_hours=24 * 14)
    plant = await make_plant(user)
    await make_task(plant, None, frequency=None, unit=None)

    assert await _candidate_ids(db, noon) == set()


async def test_window_is_half_open_and_excludes_past(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, advance_notice_hours=24)
    plant = await make_plant(user)
    at_now = await make_task(plant, noon)
    await make_task(plant, noon - timedelta(hours=1))
    await make_task(plant, noon + timedelta(hours=24))
    await make_task(plant, noon + timedelta(hours=30))

    assert await _candidate_ids(db, noon) == {at_now.id}


async def test_advance_notice_widens_window(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, advance_notice_hours=48)
    plant = await make_plant(user)
    task = await make_task(plant, noon + timedelta(hours=30))

    candidates = await find_tasks_needing_notification(db, noon)
    assert [c.task_id for c in candidates] == [task.id]
    assert candidates[0].advance_notice_hours == 48


async def test_missing_preferences_default_to_24_hours(db, user, make_plant, make_task, noon):
    plant = await make_plant(user)
    soon = await make_task(plant, noon + timedelta(hours=20))
    await make_task(plant, noon + timedelta(hours=25))

    candidates = await find_tasks_needing_notification(db, noon)
    assert [c.task_id for c in candidates] == [soon.id]
    assert candidates[0].advance_notice_hours == 24


async def test_recent_reminder_suppresses_task(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, advance_notice_hours=24)
    plant = await make_plant(user)
    reminded = await make_task(plant, noon + timedelta(hours=10), title="Water")
    stale = await make_task(plant, noon + timedelta(hours=12), title="Mist", task_type="mist")
    other_type = await make_task(plant, noon + timedelta(hours=14), title="Rotate", task_type="rotate")

    for task, age, kind in (
        (reminded, timedelta(hours=2), "task_due"),
        (stale, timedelta(hours=30), "task_due"),
        (other_type, timedelta(hours=1), "task_created"),
    ):
        db.add(Notification(
            user_id=user.id, task_id=task.id, plant_id=plant.id, type=kind, channel="in_app",
            title="Plant Care Reminder", message="...", extra={}, read=False, created_at=noon - age,
        ))
    await db.commit()

    assert await _candidate_ids(db, noon) == {stale.id, other_type.id}


async def test_each_user_uses_own_window(db, make_user, make_prefs, make_plant, make_task, noon):
    short = await make_user()
    long = await make_user()
    await make_prefs(short, advance_notice_hours=6)
    await make_prefs(long, advance_notice_hours=72)
    short_task = await make_task(await make_plant(short), noon + timedelta(hours=10))
    long_task = await make_task(await make_plant(long), noon + timedelta(hours=10))

    assert await _candidate_ids(db, noon) == {long_task.id}
    assert short_task.id not in await _candidate_ids(db, noon)


async def test_inactive_users_are_skipped(db, user, make_plant, make_task, noon):
    await make_task(await make_plant(user), noon + timedelta(hours=3))
    user.is_active = False
    await db.commit()

    assert await _candidate_ids(db, noon) == set()


# ── Orchestrator ───────────────────────────────────────────────────────────────


async def test_process_sends_in_app_reminder(db, user, make_prefs, make_plant, make_task, noon, monkeypatch):
    monkeypatch.setattr("app.services.notifications.send_email", _quiet_email)
    await make_prefs(user, advance_notice_hours=24, email_enabled=False)
    plant = await make_plant(user, "Pothos")
    task = await make_task(plant, noon + timedelta(hours=10))

    result = await process_task_notifications(db, noon)

    assert result.success
    assert result.notifications_sent == 1
    assert result.errors == []
    row = await db.scalar(select(Notification).where(Notification.task_id == task.id))
    assert row.type == "task_due"
    assert row.channel == "in_app"
    assert row.read is False
    assert row.title == "Plant Care Reminder"
    assert row.message == 'Your plant "Pothos" needs: Water (due in 10 hours)'
    assert row.extra["task_name"] == "Water"
    assert row.extra["plant_name"] == "Pothos"


async def test_process_counts_every_channel(db, user, make_prefs, make_plant, make_task, noon, monkeypatch):
    monkeypatch.setattr("app.services.notifications.send_email", _quiet_email)
    await make_prefs(user)
    await make_task(await make_plant(user), noon + timedelta(hours=2))

    result = await process_task_notifications(db, noon)
    assert result.notifications_sent == 2


async def test_second_pass_does_not_repeat(db, user, make_plant, make_task, noon):
    await make_task(await make_plant(user), noon + timedelta(hours=5))

    first = await process_task_notifications(db, noon)
    second = await process_task_notifications(db, noon + timedelta(minutes=15))

    assert first.notifications_sent == 1
    assert second.notifications_sent == 0
    assert second.errors == []


async def test_disabled_due_reminders_send_nothing(db, user, make_prefs, make_plant, make_task, noon):
    await make_prefs(user, notify_task_due=False)
    await make_task(await make_plant(user), noon + timedelta(hours=5))

    result = await process_task_notifications(db, noon)
    assert result.success
    assert result.notifications_sent == 0
    assert result.errors == []


async def test_failures_are_collected_and_batch_continues(
    db, user, make_plant, make_task, noon, monkeypatch
):
    plant = await make_plant(user)
    await make_task(plant, noon + timedelta(hours=1), title="Water")
    await make_task(plant, noon + timedelta(hours=2), title="Mist", task_type="mist")
    await make_task(plant, noon + timedelta(hours=3), title="Prune", task_type="prune")

    async def flaky(db, user_id, notification_type, title, message, metadata=None, now=None):
        if "Water" in message:
            return DispatchResult(success=False, error="User not found")
        if "Mist" in message:
            raise RuntimeError("boom")
        return DispatchResult(success=True, sent_channels=["in_app"])

    monkeypatch.setattr("app.tasks.notifications.send_notification", flaky)

    result = await process_task_notifications(db, noon)

    assert result.success
    assert result.notifications_sent == 1
    assert sorted(result.errors) == [
        'Failed to send notification for task "Mist": boom',
        'Failed to send notification for task "Water": User not found',
    ]


async def test_scan_failure_is_reported(db, noon, monkeypatch):
    async def broken(db, now=None):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("app.tasks.notifications.find_tasks_needing_notification", broken)

    result = await process_task_notifications(db, noon)
    assert result.success is False
    assert result.errors == ["database unavailable"]


async def test_worker_job_records_pipeline_run(engine, db, user, make_plant, make_task, monkeypatch):
    monkeypatch.setattr(
        "app.tasks.notifications.AsyncSessionLocal",
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
    )
    await make_task(await make_plant(user), datetime.now(timezone.utc) + timedelta(hours=3))

    await send_task_notifications({})

    run = await db.scalar(select(PipelineRun).where(PipelineRun.pipeline_name == "task_notifications"))
    assert run.status == "success"
    assert run.records_processed == 1
    assert run.finished_at is not None
