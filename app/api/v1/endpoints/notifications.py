from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import CurrentUser, get_db
from app.models.notification import Notification
from app.schemas.notification import NotificationRead, UnreadCount

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _get_owned_notification(db: AsyncSession, notification_id: int, user_id: int) -> Notification:
    notification = await db.scalar(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        )
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=list[NotificationRead])
async def list_notifications(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=100),
):
    q = select(Notification).where(
        Notification.user_id == current_user.id,
        Notification.channel == "in_app",
    )
    if unread_only:
        q = q.where(Notification.read.is_(False))
    result = await db.execute(q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit))
    return result.scalars().all()


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    count = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.channel == "in_app",
            Notification.read.is_(False),
        )
    )
    return UnreadCount(count=count or 0)


@router.post("/read-all", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_read(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    await db.execute(
        update(Notification)
        .where(
            Notification.user_id == current_user.id,
            Notification.channel == "in_app",
            Notification.read.is_(False),
        )
        .values(read=True, read_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    notification = await _get_owned_notification(db, notification_id, current_user.id)
    if not notification.read:
        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(notification)
    return notification


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: int, current_user: CurrentUser, db: AsyncSession = Depends(get_db)
):
    notification = await _get_owned_notification(db, notification_id, current_user.id)
    await db.delete(notification)
    await db.commit()
