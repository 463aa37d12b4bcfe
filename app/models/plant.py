from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Plant(Base):
    __tablename__ = "plants"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    # NULL for personal plants
    plant_group_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("plant_groups.id", ondelete="SET NULL"), index=True
    )

    name: Mapped[str] = mapped_column(String(200))
    species_name: Mapped[Optional[str]] = mapped_column(String(200))
    location: Mapped[Optional[str]] = mapped_column(String(200))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)

    # Care history, stamped when a matching care task is completed
    last_watered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_fertilized_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_misted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_repotted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="plants")
    plant_group: Mapped[Optional["PlantGroup"]] = relationship(back_populates="plants")
    care_tasks: Mapped[list["CareTask"]] = relationship(back_populates="plant", cascade="all, delete-orphan")
    notifications: Mapped[list["Notification"]] = relationship(back_populates="plant", cascade="all, delete-orphan")
