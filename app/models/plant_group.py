from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

PLANT_GROUP_ROLES = ("admin", "member")
INVITATION_STATUSES = ("pending", "accepted", "revoked")


class PlantGroup(Base):
    """A household sharing plants. Members see and care for every plant in the group."""

    __tablename__ = "plant_groups"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members: Mapped[list["PlantGroupMember"]] = relationship(back_populates="group", cascade="all, delete-orphan")
    invitations: Mapped[list["PlantGroupInvitation"]] = relationship(back_populates="group", cascade="all, delete-orphan")
    plants: Mapped[list["Plant"]] = relationship(back_populates="plant_group")


class PlantGroupMember(Base):
    __tablename__ = "plant_group_members"

    id: Mapped[int] = mapped_column(primary_key=True)
    plant_group_id: Mapped[int] = mapped_column(ForeignKey("plant_groups.id", ondelete="CASCADE"), index=True)
    # A user belongs to at most one group
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True)
    role: Mapped[str] = mapped_column(Enum(*PLANT_GROUP_ROLES, name="plant_group_role_enum"), default="member")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    group: Mapped["PlantGroup"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship()


class PlantGroupInvitation(Base):
    __tablename__ = "plant_group_invitations"

    id: Mapped[int] = mapped_column(primary_key=True)
    plant_group_id: Mapped[int] = mapped_column(ForeignKey("plant_groups.id", ondelete="CASCADE"), index=True)
    email: Mapped[str] = mapped_column(String(255), index=True)
    invited_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(
        Enum(*INVITATION_STATUSES, name="invitation_status_enum"), default="pending"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    group: Mapped["PlantGroup"] = relationship(back_populates="invitations")
