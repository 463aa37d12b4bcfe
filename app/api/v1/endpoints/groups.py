import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import CurrentUser, get_db
from app.models.care_task import CareTask
from app.models.plant import Plant
from app.models.plant_group import PlantGroup, PlantGroupInvitation, PlantGroupMember
from app.models.user import User
from app.schemas.plant_group import (
    GroupMemberRead,
    InvitationCreate,
    InvitationRead,
    PlantGroupCreate,
    PlantGroupRead,
    PlantGroupUpdate,
)
from app.services.email import send_email
from app.services.plant_groups import (
    MAX_GROUP_SEATS,
    count_admins,
    count_members,
    get_group_membership,
    get_user_membership,
    seats_used,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])


async def _require_member(
    db: AsyncSession, group_id: int, user_id: int
) -> tuple[PlantGroup, PlantGroupMember]:
    membership = await get_group_membership(db, group_id, user_id)
    if membership is None:
        raise HTTPException(status_code=404, detail="Group not found")
    group = await db.scalar(select(PlantGroup).where(PlantGroup.id == group_id))
    return group, membership


async def _require_admin(db: AsyncSession, group_id: int, user_id: int, action: str) -> PlantGroup:
    group, membership = await _require_member(db, group_id, user_id)
    if membership.role != "admin":
        raise HTTPException(status_code=403, detail=f"Only admins can {action}")
    return group


async def _group_read(db: AsyncSession, group: PlantGroup, role: str) -> PlantGroupRead:
    return PlantGroupRead(
        id=group.id,
        name=group.name,
        description=group.description,
        role=role,
        member_count=await count_members(db, group.id),
        created_at=group.created_at,
    )


async def _detach_member(db: AsyncSession, group_id: int, membership: PlantGroupMember) -> None:
    """Drop a membership. The member takes their own plants back out of the group."""
    user_id = membership.user_id
    own_plant_ids = select(Plant.id).where(Plant.user_id == user_id, Plant.plant_group_id == group_id)
    group_plant_ids = select(Plant.id).where(Plant.plant_group_id == group_id)

    # Other members lose access to the departing member's plants
    await db.execute(
        update(CareTask)
        .where(CareTask.plant_id.in_(own_plant_ids), CareTask.assigned_user_id != user_id)
        .values(assigned_user_id=None)
        .execution_options(synchronize_session="fetch")
    )
    # The departing member loses access to everyone else's
    await db.execute(
        update(CareTask)
        .where(
            CareTask.assigned_user_id == user_id,
            CareTask.plant_id.in_(group_plant_ids),
            CareTask.plant_id.not_in(own_plant_ids),
        )
        .values(assigned_user_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        update(Plant)
        .where(Plant.user_id == user_id, Plant.plant_group_id == group_id)
        .values(plant_group_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(membership)
    await db.commit()


@router.post("", response_model=PlantGroupRead, status_code=status.HTTP_201_CREATED)
async def create_group(data: PlantGroupCreate, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    """Create a group with the caller as admin. All of the caller's plants join it."""
    if await get_user_membership(db, current_user.id):
        raise HTTPException(
            status_code=400, detail="You can only be a member of one plant group at a time"
        )

    group = PlantGroup(name=data.name, description=data.description, created_by_user_id=current_user.id)
    db.add(group)
    await db.flush()
    db.add(PlantGroupMember(plant_group_id=group.id, user_id=current_user.id, role="admin"))
    await db.execute(
        update(Plant)
        .where(Plant.user_id == current_user.id)
        .values(plant_group_id=group.id)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()
    await db.refresh(group)

    logger.info("create_group: user %d created group %d", current_user.id, group.id)
    return await _group_read(db, group, "admin")


@router.get("", response_model=list[PlantGroupRead])
async def list_my_groups(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    membership = await get_user_membership(db, current_user.id)
    if membership is None:
        return []
    group = await db.scalar(select(PlantGroup).where(PlantGroup.id == membership.plant_group_id))
    return [await _group_read(db, group, membership.role)]


@router.get("/{group_id}", response_model=PlantGroupRead)
async def get_group(group_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    group, membership = await _require_member(db, group_id, current_user.id)
    return await _group_read(db, group, membership.role)


@router.patch("/{group_id}", response_model=PlantGroupRead)
async def update_group(
    group_id: int,
    data: PlantGroupUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    group = await _require_admin(db, group_id, current_user.id, "update the group")
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(group, field, value)
    await db.commit()
    await db.refresh(group)
    return await _group_read(db, group, "admin")


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    """Delete the group. Shared plants become personal plants of their owners again."""
    group = await _require_admin(db, group_id, current_user.id, "delete the group")
    await db.execute(
        update(CareTask)
        .where(
            CareTask.plant_id.in_(select(Plant.id).where(Plant.plant_group_id == group.id)),
            CareTask.assigned_user_id.isnot(None),
        )
        .values(assigned_user_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.execute(
        update(Plant)
        .where(Plant.plant_group_id == group.id)
        .values(plant_group_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(group)
    await db.commit()
    logger.info("delete_group: user %d deleted group %d", current_user.id, group_id)


@router.get("/{group_id}/members", response_model=list[GroupMemberRead])
async def list_members(group_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    await _require_member(db, group_id, current_user.id)
    result = await db.execute(
        select(PlantGroupMember, User.email)
        .join(User, PlantGroupMember.user_id == User.id)
        .where(PlantGroupMember.plant_group_id == group_id)
        .order_by(PlantGroupMember.joined_at, PlantGroupMember.id)
    )
    return [
        GroupMemberRead(user_id=m.user_id, email=email, role=m.role, joined_at=m.joined_at)
        for m, email in result.all()
    ]


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    group_id: int, user_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    await _require_admin(db, group_id, current_user.id, "remove members")
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot remove yourself; leave the group instead")
    membership = await get_group_membership(db, group_id, user_id)
    if membership is None:
        raise HTTPException(status_code=404, detail="Member not found")
    await _detach_member(db, group_id, membership)


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(group_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    _, membership = await _require_member(db, group_id, current_user.id)
    if membership.role == "admin" and await count_admins(db, group_id) == 1:
        raise HTTPException(
            status_code=400,
            detail="You are the last admin. Delete the group or promote another member first",
        )
    await _detach_member(db, group_id, membership)


@router.post(
    "/{group_id}/invitations", response_model=InvitationRead, status_code=status.HTTP_201_CREATED
)
async def invite_member(
    group_id: int,
    data: InvitationCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    group = await _require_admin(db, group_id, current_user.id, "invite members")
    email = data.email.lower()

    if await seats_used(db, group_id) >= MAX_GROUP_SEATS:
        raise HTTPException(
            status_code=400,
            detail=f"Group is full (maximum {MAX_GROUP_SEATS} members including pending invitations)",
        )
    already_member = await db.scalar(
        select(PlantGroupMember.id)
        .join(User, PlantGroupMember.user_id == User.id)
        .where(PlantGroupMember.plant_group_id == group_id, func.lower(User.email) == email)
    )
    if already_member:
        raise HTTPException(status_code=400, detail="Already a member of this group")
    already_invited = await db.scalar(
        select(PlantGroupInvitation.id).where(
            PlantGroupInvitation.plant_group_id == group_id,
            PlantGroupInvitation.email == email,
            PlantGroupInvitation.status == "pending",
        )
    )
    if already_invited:
        raise HTTPException(status_code=400, detail="Invitation already pending")

    invitation = PlantGroupInvitation(
        plant_group_id=group_id, email=email, invited_by_user_id=current_user.id
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)
    sent = await send_email(
        email,
        f"You're invited to join {group.name}",
        f"{current_user.email} invited you to share plants in \"{group.name}\" on PlantKeeper.\n"
        f"Sign in with this address and accept invitation {invitation.id} to join.",
    )
    if not sent:
        logger.warning("invite_member: could not email invitation %d to %s", invitation.id, email)
    return invitation


@router.get("/{group_id}/invitations", response_model=list[InvitationRead])
async def list_invitations(group_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    await _require_admin(db, group_id, current_user.id, "view invitations")
    result = await db.execute(
        select(PlantGroupInvitation)
        .where(PlantGroupInvitation.plant_group_id == group_id, PlantGroupInvitation.status == "pending")
        .order_by(PlantGroupInvitation.created_at, PlantGroupInvitation.id)
    )
    return result.scalars().all()


async def _get_pending_invitation(db: AsyncSession, group_id: int, invitation_id: int) -> PlantGroupInvitation:
    invitation = await db.scalar(
        select(PlantGroupInvitation).where(
            PlantGroupInvitation.id == invitation_id,
            PlantGroupInvitation.plant_group_id == group_id,
            PlantGroupInvitation.status == "pending",
        )
    )
    if invitation is None:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


@router.delete("/{group_id}/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invitation(
    group_id: int, invitation_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    await _require_admin(db, group_id, current_user.id, "revoke invitations")
    invitation = await _get_pending_invitation(db, group_id, invitation_id)
    invitation.status = "revoked"
    invitation.responded_at = datetime.now(timezone.utc)
    await db.commit()


@router.post("/{group_id}/invitations/{invitation_id}/accept", response_model=PlantGroupRead)
async def accept_invitation(
    group_id: int, invitation_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    invitation = await _get_pending_invitation(db, group_id, invitation_id)
    if invitation.email != current_user.email.lower():
        raise HTTPException(status_code=404, detail="Invitation not found")
    if await get_user_membership(db, current_user.id):
        raise HTTPException(
            status_code=400, detail="You can only be a member of one plant group at a time"
        )

    db.add(PlantGroupMember(plant_group_id=group_id, user_id=current_user.id, role="member"))
    invitation.status = "accepted"
    invitation.responded_at = datetime.now(timezone.utc)
    await db.commit()

    group = await db.scalar(select(PlantGroup).where(PlantGroup.id == group_id))
    return await _group_read(db, group, "member")
