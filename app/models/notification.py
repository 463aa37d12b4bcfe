from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

NOTIFICATION_TYPES = (
    "task_due", "task_overdue", "task_completed", "task_created", "plant_needs_attention",
)
NOTIFICATION_CHANNELS = ("in_app", "sms", "email")


class Notification(Base):
    """A delivery record. Content is immutable; only read/read_at change."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    task_id: Mapped[Optional[int]] = mapped_column(ForeignKey("care_tasks.id", ondelete="CASCADE"), index=True)
    plant_id: Mapped[Optional[int]] = mapped_column(ForeignKey("plants.id", ondelete="CASCADE"), index=True)

    type: Mapped[str] = mapped_column(Enum(*NOTIFICATION_TYPES, name="notification_type_enum"))
    channel: Mapped[str] = mapped_column(Enum(*NOTIFICATION_CHANNELS, name="notification_channel_enum"))
    title: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict] = mapped_column("metadata", JSON, default=dict)

    read: Mapped[bool] = mapped_column(Boolean, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    user: Mapped["User"] = relationship(back_populates="notifications")
    task: Mapped[Optional["CareTask"]] = relationship(back_populates="notifications")
    plant: Mapped[Optional["Plant"]] = relationship(back_populates="notifications")


class UserNotificationPreferences(Base):
    __tablename__ = "user_notification_preferences"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True
    )

    # SMS
    phone_number: Mapped[Optional[str]] = mapped_column(String(20))  # E.164
    phone_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    phone_verification_code: Mapped[Optional[str]] = mapped_column(String(6))
    phone_verification_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    sms_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    sms_opt_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    sms_opt_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Email
    email_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    email_digest_frequency: Mapped[str] = mapped_column(
        Enum("daily", "weekly", "never", name="email_digest_frequency_enum"), default="daily"
    )

    # Quiet hours (0-23, may wrap past midnight)
    quiet_hours_start: Mapped[Optional[int]] = mapped_column(Integer, default=21)
    quiet_hours_end: Mapped[Optional[int]] = mapped_column(Integer, default=9)

    # Per-type toggles
    notify_task_due: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_task_overdue: Mapped[bool] = mapped_column(Boolean, default=True)
    notify_task_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    advance_notice_hours: Mapped[int] = mapped_column(Integer, default=24)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship(back_populates="notification_preferences")
