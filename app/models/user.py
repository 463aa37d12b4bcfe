from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Subject id from the identity provider
    external_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    timezone: Mapped[Optional[str]] = mapped_column(String(50), default="America/Los_Angeles")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    plants: Mapped[list["Plant"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    care_tasks: Mapped[list["CareTask"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", foreign_keys="CareTask.user_id"
    )
    notifications: Mapped[list["Notification"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    notification_preferences: Mapped[Optional["UserNotificationPreferences"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False
    )
