from httpx import AsyncClient


async def test_get_me(client: AsyncClient, auth_headers):
    res = await client.get("/api/v1/users/me", headers=auth_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["email"] == "owner@example.com"
    assert data["timezone"] == "UTC"
    assert data["is_active"] is True
    assert "id" in data


async def test_patch_me_timezone(client: AsyncClient, auth_headers):
    res = await client.patch(
        "/api/v1/users/me", json={"timezone": "America/Chicago"}, headers=auth_headers
    )
    assert res.status_code == 200
    assert res.json()["timezone"] == "America/Chicago"

    res = await client.get("/api/v1/users/me", headers=auth_headers)
    assert res.json()["timezone"] == "America/Chicago"


async def test_patch_me_rejects_unknown_timezone(client: AsyncClient, auth_headers):
    res = await client.patch("/api/v1/users/me", json={"timezone": "Mars/Olympus"}, headers=auth_headers)
    assert res.status_code == 422


async def test_inactive_user_is_rejected(client: AsyncClient, db, user, auth_headers):
    user.is_active = False
    await db.commit()

    res = await client.get("/api/v1/users/me", headers=auth_headers)
    assert res.status_code == 401


async def test_get_me_unauthenticated(client: AsyncClient):
    res = await client.get("/api/v1/users/me")
    assert res.status_code == 401


async def test_get_me_garbage_token(client: AsyncClient):
    res = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401


async def test_patch_me_unauthenticated(client: AsyncClient):
    res = await client.patch("/api/v1/users/me", json={"timezone": "UTC"})
    assert res.status_code == 401


async def test_non_bearer_scheme_is_rejected(client: AsyncClient, user):
    res = await client.get("/api/v1/users/me", headers={"Authorization": f"Basic {user.external_id}"})
    assert res.status_code == 401


async def test_openapi_advertises_plain_bearer_auth(client: AsyncClient):
    res = await client.get("/api/openapi.json")
    schemes = res.json()["components"]["securitySchemes"]
    assert schemes == {"HTTPBearer": {"type": "http", "scheme": "bearer"}}
