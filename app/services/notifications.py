"""
Notification dispatch service.

Writes an in-app notification and fans out to SMS and email when the
recipient has those channels turned on. Each channel is gated independently
by the eligibility rules; a failing sender only drops its own channel.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, UserNotificationPreferences
from app.models.user import User
from app.services.email import send_email
from app.services.notification_rules import should_send
from app.services.sms import send_sms

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    success: bool
    sent_channels: list[str] = field(default_factory=list)
    error: Optional[str] = None


async def get_preferences(db: AsyncSession, user_id: int) -> Optional[UserNotificationPreferences]:
    return await db.scalar(
        select(UserNotificationPreferences).where(UserNotificationPreferences.user_id == user_id)
    )


def local_time(now: datetime, tz_name: Optional[str]) -> datetime:
    """Express ``now`` in the user's timezone, falling back to UTC."""
    if not tz_name:
        return now.astimezone(timezone.utc)
    try:
        return now.astimezone(ZoneInfo(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("local_time: unknown timezone %r, using UTC", tz_name)
        return now.astimezone(timezone.utc)


async def _record(
    db: AsyncSession,
    user_id: int,
    notification_type: str,
    channel: str,
    title: str,
    message: str,
    metadata: dict[str, Any],
    sent_at: datetime,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        task_id=metadata.get("task_id"),
        plant_id=metadata.get("plant_id"),
        type=notification_type,
        channel=channel,
        title=title,
        message=message,
        extra=metadata,
        # Externally delivered channels never show as unread in the app
        read=channel != "in_app",
        sent_at=sent_at,
        created_at=sent_at,
    )
    db.add(notification)
    await db.commit()
    return notification


async def send_notification(
    db: AsyncSession,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    metadata: Optional[dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> DispatchResult:
    """Deliver one notification on every channel the user is eligible for.

    Returns ``success=True`` whenever no database error occurred, even if every
    channel was suppressed and ``sent_channels`` is empty.
    """
    metadata = metadata or {}
    now = now or datetime.now(timezone.utc)
    result = DispatchResult(success=True)

    try:
        user = await db.scalar(select(User).where(User.id == user_id))
        if user is None:
            return DispatchResult(success=False, error="User not found")

        prefs = await get_preferences(db, user_id)
        user_now = local_time(now, user.timezone)

        # In-app is always attempted; quiet hours never apply to it
        check = should_send(prefs, notification_type, "in_app", user_now)
        if check.allow:
            await _record(db, user_id, notification_type, "in_app", title, message, metadata, now)
            result.sent_channels.append("in_app")
        else:
            logger.info("send_notification: in_app suppressed for user %d: %s", user_id, check.reason)

        if prefs is not None and prefs.sms_enabled and prefs.phone_verified and prefs.phone_number:
            check = should_send(prefs, notification_type, "sms", user_now)
            if not check.allow:
                logger.info("send_notification: sms suppressed for user %d: %s", user_id, check.reason)
            elif await _deliver("sms", user_id, send_sms(prefs.phone_number, f"{title}: {message}")):
                await _record(db, user_id, notification_type, "sms", title, message, metadata, now)
                result.sent_channels.append("sms")

        if prefs is not None and prefs.email_enabled:
            check = should_send(prefs, notification_type, "email", user_now)
            if not check.allow:
                logger.info("send_notification: email suppressed for user %d: %s", user_id, check.reason)
            elif await _deliver("email", user_id, send_email(user.email, title, message)):
                await _record(db, user_id, notification_type, "email", title, message, metadata, now)
                result.sent_channels.append("email")

    except SQLAlchemyError as exc:
        logger.exception("send_notification: database error for user %d", user_id)
        await db.rollback()
        return DispatchResult(success=False, sent_channels=result.sent_channels, error=str(exc))

    return result


async def _deliver(channel: str, user_id: int, send) -> bool:
    """Await a sender coroutine, treating an exception as a failed delivery."""
    try:
        delivered = await send
    except Exception as exc:
        logger.warning("send_notification: %s delivery failed for user %d: %s", channel, user_id, exc)
        return False
    if not delivered:
        logger.warning("send_notification: %s delivery reported failure for user %d", channel, user_id)
    return delivered
