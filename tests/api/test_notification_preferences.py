from datetime import datetime, timedelta, timezone

from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import UserNotificationPreferences

PREFS = "/api/v1/notification-preferences"


async def _prefs_row(db: AsyncSession, user_id: int) -> UserNotificationPreferences:
    return await db.scalar(
        select(UserNotificationPreferences).where(UserNotificationPreferences.user_id == user_id)
    )


async def test_get_creates_defaults(client: AsyncClient, db: AsyncSession, user, auth_headers):
    res = await client.get(PREFS, headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["quiet_hours_start"] == 21
    assert data["quiet_hours_end"] == 9
    assert data["email_enabled"] is True
    assert data["sms_enabled"] is False
    assert data["phone_verified"] is False
    assert data["notify_task_due"] is True
    assert data["notify_task_completed"] is False
    assert data["advance_notice_hours"] == 24

    assert await _prefs_row(db, user.id) is not None


async def test_patch_updates_only_given_fields(client: AsyncClient, auth_headers):
    res = await client.patch(
        PREFS, json={"quiet_hours_start": 0, "advance_notice_hours": 48}, headers=auth_headers
    )
    assert res.status_code == 200
    data = res.json()
    assert data["quiet_hours_start"] == 0
    assert data["quiet_hours_end"] == 9
    assert data["advance_notice_hours"] == 48
    assert data["email_enabled"] is True


async def test_patch_validation(client: AsyncClient, auth_headers):
    assert (await client.patch(PREFS, json={"quiet_hours_start": 24}, headers=auth_headers)).status_code == 422
    assert (await client.patch(PREFS, json={"advance_notice_hours": 0}, headers=auth_headers)).status_code == 422
    assert (await client.patch(PREFS, json={"email_enabled": None}, headers=auth_headers)).status_code == 422
    assert (
        await client.patch(PREFS, json={"email_digest_frequency": "hourly"}, headers=auth_headers)
    ).status_code == 422


async def test_phone_verification_flow(client: AsyncClient, db: AsyncSession, user, auth_headers, monkeypatch):
    sent = []

    async def fake_send_sms(phone_number, message):
        sent.append((phone_number, message))
        return True

    monkeypatch.setattr("app.api.v1.endpoints.notification_preferences.send_sms", fake_send_sms)

    res = await client.post(
        f"{PREFS}/phone/request-verification", json={"phone_number": "+15551234567"}, headers=auth_headers
    )
    assert res.status_code == 202

    prefs = await _prefs_row(db, user.id)
    code = prefs.phone_verification_code
    assert len(code) == 6
    assert sent == [("+15551234567", f"Your PlantKeeper verification code is {code}")]

    res = await client.post(f"{PREFS}/phone/verify", json={"code": code}, headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["phone_verified"] is True
    assert data["phone_number"] == "+15551234567"
    assert prefs.phone_verification_code is None

    res = await client.post(f"{PREFS}/sms/enable", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["sms_enabled"] is True
    assert res.json()["sms_opt_in_at"] is not None

    res = await client.post(f"{PREFS}/sms/disable", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["sms_enabled"] is False
    assert res.json()["sms_opt_out_at"] is not None


async def test_request_verification_rejects_bad_number(client: AsyncClient, auth_headers):
    res = await client.post(
        f"{PREFS}/phone/request-verification", json={"phone_number": "555-1234"}, headers=auth_headers
    )
    assert res.status_code == 422


async def test_request_verification_send_failure(client: AsyncClient, auth_headers, monkeypatch):
    async def failing_send_sms(phone_number, message):
        return False

    monkeypatch.setattr("app.api.v1.endpoints.notification_preferences.send_sms", failing_send_sms)

    res = await client.post(
        f"{PREFS}/phone/request-verification", json={"phone_number": "+15551234567"}, headers=auth_headers
    )
    assert res.status_code == 502


async def test_verify_without_request(client: AsyncClient, auth_headers):
    res = await client.post(f"{PREFS}/phone/verify", json={"code": "123456"}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "No verification request found"


async def test_verify_wrong_code(client: AsyncClient, user, make_prefs, auth_headers):
    await make_prefs(
        user,
        phone_number="+15551234567",
        phone_verification_code="111111",
        phone_verification_expiry=datetime.now(timezone.utc) + timedelta(minutes=5),
    )

    res = await client.post(f"{PREFS}/phone/verify", json={"code": "222222"}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid verification code"


async def test_verify_expired_code(client: AsyncClient, user, make_prefs, auth_headers):
    await make_prefs(
        user,
        phone_number="+15551234567",
        phone_verification_code="111111",
        phone_verification_expiry=datetime.now(timezone.utc) - timedelta(minutes=1),
    )

    res = await client.post(f"{PREFS}/phone/verify", json={"code": "111111"}, headers=auth_headers)
    assert res.status_code == 400
    assert res.json()["detail"] == "Verification code has expired"


async def test_enable_sms_requires_verified_phone(client: AsyncClient, user, make_prefs, auth_headers):
    res = await client.post(f"{PREFS}/sms/enable", headers=auth_headers)
    assert res.status_code == 404

    await make_prefs(user, phone_number="+15551234567")
    res = await client.post(f"{PREFS}/sms/enable", headers=auth_headers)
    assert res.status_code == 400
