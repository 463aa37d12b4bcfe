"""
Care-task reminder job.

send_task_notifications — arq cron, every NOTIFICATION_CRON_MINUTES
    Scans every active user's care tasks for ones falling due within the
    user's advance-notice window and sends a task_due reminder for each.
    De-duplicated: a task already reminded within the trailing advance-notice
    window is skipped. The check is read-then-insert, so two overlapping runs
    can still both remind the same task. Deactivated users are not scanned, so
    their tasks get no reminders until the account is re-enabled.

The same pass is exposed over HTTP at /api/v1/cron/send-notifications.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import AsyncSessionLocal
from app.models.care_task import CareTask
from app.models.logs import PipelineRun
from app.models.notification import Notification, UserNotificationPreferences
from app.models.plant import Plant
from app.models.user import User
from app.services.notifications import send_notification
from app.services.recurrence import as_utc

logger = logging.getLogger(__name__)

DEFAULT_ADVANCE_NOTICE_HOURS = 24


@dataclass(frozen=True)
class TaskDueCandidate:
    task_id: int
    user_id: int
    plant_id: int
    title: str
    plant_name: str
    due_date: datetime
    advance_notice_hours: int


@dataclass
class ProcessResult:
    success: bool
    notifications_sent: int = 0
    errors: list[str] = field(default_factory=list)


async def find_tasks_needing_notification(
    db: AsyncSession, now: Optional[datetime] = None
) -> list[TaskDueCandidate]:
    """Return tasks due inside each user's advance-notice window that were not reminded recently.

    Result order is unspecified.
    """
    now = now or datetime.now(timezone.utc)
    candidates: list[TaskDueCandidate] = []

    users_result = await db.execute(
        select(User.id, UserNotificationPreferences.advance_notice_hours)
        .outerjoin(UserNotificationPreferences, UserNotificationPreferences.user_id == User.id)
        .where(User.is_active == True)
    )

    for user_id, advance_notice_hours in users_result.all():
        hours_ahead = advance_notice_hours or DEFAULT_ADVANCE_NOTICE_HOURS
        window = timedelta(hours=hours_ahead)
        notify_by = now + window

        tasks_result = await db.execute(
            select(CareTask.id, CareTask.plant_id, CareTask.title, CareTask.next_due_date, Plant.name)
            .join(Plant, CareTask.plant_id == Plant.id)
            .where(
                CareTask.user_id == user_id,
                CareTask.next_due_date.isnot(None),
                CareTask.next_due_date >= now,
                CareTask.next_due_date < notify_by,
            )
        )

        for task_id, plant_id, title, due_date, plant_name in tasks_result.all():
            # Lookback equals the advance-notice window
            already_sent = await db.scalar(
                select(Notification.id)
                .where(
                    Notification.user_id == user_id,
                    Notification.task_id == task_id,
                    Notification.type == "task_due",
                    Notification.created_at >= now - window,
                )
                .limit(1)
            )
            if already_sent is not None:
                logger.debug("find_tasks_needing_notification: task %d already reminded, skipping", task_id)
                continue

            candidates.append(
                TaskDueCandidate(
                    task_id=task_id,
                    user_id=user_id,
                    plant_id=plant_id,
                    title=title,
                    plant_name=plant_name,
                    due_date=as_utc(due_date),
                    advance_notice_hours=hours_ahead,
                )
            )

    return candidates


def build_reminder(candidate: TaskDueCandidate, now: datetime) -> tuple[str, str]:
    hours_until_due = math.ceil((candidate.due_date - now).total_seconds() / 3600)
    title = "Plant Care Reminder"
    message = (
        f'Your plant "{candidate.plant_name}" needs: {candidate.title} '
        f"(due in {hours_until_due} hours)"
    )
    return title, message


async def process_task_notifications(
    db: AsyncSession, now: Optional[datetime] = None
) -> ProcessResult:
    """Scan for due tasks and dispatch a task_due reminder for each.

    A failing task is recorded in ``errors`` and the batch carries on.
    """
    now = now or datetime.now(timezone.utc)
    result = ProcessResult(success=True)

    try:
        candidates = await find_tasks_needing_notification(db, now)
    except Exception as exc:
        logger.exception("process_task_notifications: scan failed")
        result.success = False
        result.errors.append(str(exc))
        return result

    logger.info("process_task_notifications: %d tasks need a reminder", len(candidates))

    for candidate in candidates:
        title, message = build_reminder(candidate, now)
        metadata = {
            "task_id": candidate.task_id,
            "plant_id": candidate.plant_id,
            "task_name": candidate.title,
            "plant_name": candidate.plant_name,
            "due_date": candidate.due_date.isoformat(),
        }
        try:
            dispatch = await send_notification(
                db, candidate.user_id, "task_due", title, message, metadata, now=now
            )
        except Exception as exc:
            logger.exception("process_task_notifications: task %d raised", candidate.task_id)
            await db.rollback()
            result.errors.append(f'Failed to send notification for task "{candidate.title}": {exc}')
            continue

        if dispatch.success:
            result.notifications_sent += len(dispatch.sent_channels)
            logger.info(
                "process_task_notifications: task %d reminded via %s",
                candidate.task_id,
                ", ".join(dispatch.sent_channels) or "no channels",
            )
        else:
            error = f'Failed to send notification for task "{candidate.title}": {dispatch.error}'
            result.errors.append(error)
            logger.error("process_task_notifications: %s", error)

    return result


async def send_task_notifications(ctx: dict) -> None:
    """arq entry point: one reminder pass, recorded as a PipelineRun."""
    logger.info("send_task_notifications: starting")
    started_at = datetime.now(timezone.utc)

    async with AsyncSessionLocal() as db:
        pipeline = PipelineRun(
            pipeline_name="task_notifications",
            status="running",
            started_at=started_at,
        )
        db.add(pipeline)
        await db.commit()
        await db.refresh(pipeline)

        result = await process_task_notifications(db, started_at)

        finished_at = datetime.now(timezone.utc)
        pipeline.status = "success" if result.success else "failed"
        pipeline.finished_at = finished_at
        pipeline.duration_ms = int((finished_at - started_at).total_seconds() * 1000)
        pipeline.records_processed = result.notifications_sent
        pipeline.error_message = "\n".join(result.errors) or None
        await db.commit()

    logger.info(
        "send_task_notifications: complete — %d sent, %d errors",
        result.notifications_sent,
        len(result.errors),
    )
