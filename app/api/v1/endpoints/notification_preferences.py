import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import CurrentUser, get_db
from app.models.notification import UserNotificationPreferences
from app.schemas.notification import (
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    PhoneVerificationConfirm,
    PhoneVerificationRequest,
)
from app.services.notifications import get_preferences
from app.services.recurrence import as_utc
from app.services.sms import send_sms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notification-preferences", tags=["notification-preferences"])

VERIFICATION_CODE_TTL = timedelta(minutes=10)


async def _get_or_create_preferences(db: AsyncSession, user_id: int) -> UserNotificationPreferences:
    prefs = await get_preferences(db, user_id)
    if prefs is None:
        prefs = UserNotificationPreferences(user_id=user_id)
        db.add(prefs)
        await db.commit()
        await db.refresh(prefs)
    return prefs


@router.get("", response_model=NotificationPreferencesRead)
async def get_notification_preferences(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    return await _get_or_create_preferences(db, current_user.id)


@router.patch("", response_model=NotificationPreferencesRead)
async def update_notification_preferences(
    data: NotificationPreferencesUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    prefs = await _get_or_create_preferences(db, current_user.id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(prefs, field, value)
    await db.commit()
    await db.refresh(prefs)
    return prefs


@router.post("/phone/request-verification", status_code=status.HTTP_202_ACCEPTED)
async def request_phone_verification(
    data: PhoneVerificationRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    prefs = await _get_or_create_preferences(db, current_user.id)
    code = f"{secrets.randbelow(900000) + 100000}"

    prefs.phone_number = data.phone_number
    prefs.phone_verified = False
    prefs.phone_verification_code = code
    prefs.phone_verification_expiry = datetime.now(timezone.utc) + VERIFICATION_CODE_TTL
    await db.commit()

    if not await send_sms(data.phone_number, f"Your PlantKeeper verification code is {code}"):
        raise HTTPException(status_code=502, detail="Failed to send verification code")
    return {"detail": "Verification code sent"}


@router.post("/phone/verify", response_model=NotificationPreferencesRead)
async def verify_phone(
    data: PhoneVerificationConfirm,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    prefs = await get_preferences(db, current_user.id)
    if prefs is None or prefs.phone_verification_code is None:
        raise HTTPException(status_code=400, detail="No verification request found")
    if not secrets.compare_digest(prefs.phone_verification_code, data.code):
        raise HTTPException(status_code=400, detail="Invalid verification code")
    if (
        prefs.phone_verification_expiry is None
        or as_utc(prefs.phone_verification_expiry) < datetime.now(timezone.utc)
    ):
        raise HTTPException(status_code=400, detail="Verification code has expired")

    prefs.phone_verified = True
    prefs.phone_verification_code = None
    prefs.phone_verification_expiry = None
    await db.commit()
    await db.refresh(prefs)
    return prefs


@router.post("/sms/enable", response_model=NotificationPreferencesRead)
async def enable_sms(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    prefs = await get_preferences(db, current_user.id)
    if prefs is None:
        raise HTTPException(status_code=404, detail="Preferences not found")
    if not prefs.phone_verified:
        raise HTTPException(status_code=400, detail="Phone number must be verified first")

    prefs.sms_enabled = True
    prefs.sms_opt_in_at = datetime.now(timezone.utc)
    prefs.sms_opt_out_at = None
    await db.commit()
    await db.refresh(prefs)
    return prefs


@router.post("/sms/disable", response_model=NotificationPreferencesRead)
async def disable_sms(current_user: CurrentUser, db: AsyncSession = Depends(get_db)):
    prefs = await _get_or_create_preferences(db, current_user.id)
    prefs.sms_enabled = False
    prefs.sms_opt_out_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(prefs)
    return prefs
