"""
Plant-group membership and plant access rules.

A plant is personal (``plant_group_id`` NULL) or shared with one group. The
owner can always reach their plant; members of its group can view and care for
it, but only group admins may delete a shared plant.
"""
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.models.plant import Plant
from app.models.plant_group import PlantGroupInvitation, PlantGroupMember

# Members plus pending invitations
MAX_GROUP_SEATS = 5


async def get_user_membership(db: AsyncSession, user_id: int) -> Optional[PlantGroupMember]:
    return await db.scalar(select(PlantGroupMember).where(PlantGroupMember.user_id == user_id))


async def get_group_membership(
    db: AsyncSession, group_id: int, user_id: int
) -> Optional[PlantGroupMember]:
    return await db.scalar(
        select(PlantGroupMember).where(
            PlantGroupMember.plant_group_id == group_id,
            PlantGroupMember.user_id == user_id,
        )
    )


async def is_group_admin(db: AsyncSession, group_id: int, user_id: int) -> bool:
    membership = await get_group_membership(db, group_id, user_id)
    return membership is not None and membership.role == "admin"


async def count_members(db: AsyncSession, group_id: int) -> int:
    count = await db.scalar(
        select(func.count(PlantGroupMember.id)).where(PlantGroupMember.plant_group_id == group_id)
    )
    return count or 0


async def count_admins(db: AsyncSession, group_id: int) -> int:
    count = await db.scalar(
        select(func.count(PlantGroupMember.id)).where(
            PlantGroupMember.plant_group_id == group_id,
            PlantGroupMember.role == "admin",
        )
    )
    return count or 0


async def seats_used(db: AsyncSession, group_id: int) -> int:
    pending = await db.scalar(
        select(func.count(PlantGroupInvitation.id)).where(
            PlantGroupInvitation.plant_group_id == group_id,
            PlantGroupInvitation.status == "pending",
        )
    )
    return await count_members(db, group_id) + (pending or 0)


async def accessible_plants_clause(db: AsyncSession, user_id: int) -> ColumnElement[bool]:
    """WHERE clause matching the user's own plants and their group's plants."""
    membership = await get_user_membership(db, user_id)
    if membership is None:
        return Plant.user_id == user_id
    return or_(Plant.user_id == user_id, Plant.plant_group_id == membership.plant_group_id)


async def can_access_plant(db: AsyncSession, plant: Plant, user_id: int) -> bool:
    if plant.user_id == user_id:
        return True
    if plant.plant_group_id is None:
        return False
    return await get_group_membership(db, plant.plant_group_id, user_id) is not None


async def can_delete_plant(db: AsyncSession, plant: Plant, user_id: int) -> bool:
    if plant.plant_group_id is None:
        return plant.user_id == user_id
    return await is_group_admin(db, plant.plant_group_id, user_id)
