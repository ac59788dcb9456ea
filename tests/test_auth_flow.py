"""End-to-end auth flow: register → login → call protected routes."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_login_and_me(client: AsyncClient, seeded):
    resp = await client.post("/v1/auth/register", json={
        "email": "ada@acme.com",
        "password": "supersecret123",
        "firstName": "Ada",
        "lastName": "Lovelace",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    assert data["email"] == "ada@acme.com"
    assert data["tenantId"] is None
    assert [r["name"] for r in data["roles"]] == ["user"]
    assert "passwordHash" not in data

    resp = await client.post("/v1/auth/login", json={
        "email": "ada@acme.com",
        "password": "supersecret123",
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["tokenType"] == "bearer"
    headers = {"Authorization": f"Bearer {body['accessToken']}"}

    resp = await client.get("/v1/auth/me", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["email"] == "ada@acme.com"


@pytest.mark.asyncio
async def test_wrong_password_rejected(client: AsyncClient):
    await client.post("/v1/auth/register", json={
        "email": "bob@acme.com",
        "password": "password123",
        "firstName": "Bob",
        "lastName": "Builder",
    })
    resp = await client.post("/v1/auth/login", json={
        "email": "bob@acme.com",
        "password": "not-the-password",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_duplicate_registration_conflicts(client: AsyncClient):
    payload = {
        "email": "twice@acme.com",
        "password": "password123",
        "firstName": "Twice",
        "lastName": "Over",
    }
    assert (await client.post("/v1/auth/register", json=payload)).status_code == 201
    resp = await client.post("/v1/auth/register", json=payload)
    assert resp.status_code == 409
    assert resp.json() == {"error": "A user with this email already exists"}


@pytest.mark.asyncio
async def test_invalid_token_rejected(client: AsyncClient):
    resp = await client.get("/v1/roles", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_auth_rejected(client: AsyncClient):
    """No Authorization header → 401 or 403 depending on FastAPI version."""
    resp = await client.get("/v1/roles")
    assert resp.status_code in (401, 403)


@pytest.mark.asyncio
async def test_token_of_deleted_user_rejected(client: AsyncClient, admin_headers, login):
    resp = await client.post("/v1/auth/register", json={
        "email": "gone@acme.com",
        "password": "password123",
        "firstName": "X",
        "lastName": "Y",
    })
    gone_id = resp.json()["id"]
    gone_headers = await login("gone@acme.com", "password123")

    resp = await client.delete(f"/v1/users/{gone_id}", headers=admin_headers)
    assert resp.status_code == 200

    resp = await client.get("/v1/auth/me", headers=gone_headers)
    assert resp.status_code == 401
