from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

CARE_TASK_TYPES = (
    "water", "fertilize", "water_fertilize", "mist", "repot_check", "prune", "rotate", "custom",
)
RECURRENCE_UNITS = ("days", "weeks", "months")


class CareTask(Base):
    __tablename__ = "care_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    plant_id: Mapped[int] = mapped_column(ForeignKey("plants.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    assigned_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    type: Mapped[str] = mapped_column(Enum(*CARE_TASK_TYPES, name="care_task_type_enum"))
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    recurrence_frequency: Mapped[Optional[int]] = mapped_column(Integer)
    recurrence_unit: Mapped[Optional[str]] = mapped_column(
        Enum(*RECURRENCE_UNITS, name="recurrence_unit_enum")
    )
    # NULL means the task is not scheduled
    next_due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    last_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    plant: Mapped["Plant"] = relationship(back_populates="care_tasks")
    user: Mapped["User"] = relationship(back_populates="care_tasks", foreign_keys=[user_id])
    completions: Mapped[list["TaskCompletion"]] = relationship(back_populates="task", cascade="all, delete-orphan")
    notifications: Mapped[list["Notification"]] = relationship(back_populates="task", cascade="all, delete-orphan")


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id: Mapped[int] = mapped_column(primary_key=True)
    task_id: Mapped[int] = mapped_column(ForeignKey("care_tasks.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    skipped: Mapped[bool] = mapped_column(Boolean, default=False)

    task: Mapped["CareTask"] = relationship(back_populates="completions")
