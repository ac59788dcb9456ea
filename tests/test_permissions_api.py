"""Permission catalogue endpoints and HTTP error mapping."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_permission_crud(client: AsyncClient, admin_headers):
    resp = await client.post("/v1/permissions", json={
        "name": "reports.export",
        "description": "Export reports",
        "category": "reports",
    }, headers=admin_headers)
    assert resp.status_code == 201
    perm = resp.json()

    resp = await client.get(f"/v1/permissions/{perm['id']}", headers=admin_headers)
    assert resp.json()["category"] == "reports"

    resp = await client.post("/v1/permissions", json={"name": "reports.export"}, headers=admin_headers)
    assert resp.status_code == 409

    resp = await client.delete(f"/v1/permissions/{perm['id']}", headers=admin_headers)
    assert resp.status_code == 204
    resp = await client.get(f"/v1/permissions/{perm['id']}", headers=admin_headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_deleting_permission_detaches_it_from_roles(client: AsyncClient, admin_headers):
    perm = (await client.post("/v1/permissions", json={"name": "a.b"}, headers=admin_headers)).json()
    role = (await client.post("/v1/roles", json={
        "name": "holder", "permissionIds": [perm["id"]],
    }, headers=admin_headers)).json()

    await client.delete(f"/v1/permissions/{perm['id']}", headers=admin_headers)

    resp = await client.get(f"/v1/roles/{role['id']}", headers=admin_headers)
    assert resp.json()["permissions"] == []


@pytest.mark.asyncio
async def test_list_permissions_after_seed(client: AsyncClient, seeded, admin_headers):
    resp = await client.get("/v1/permissions", headers=admin_headers)
    assert resp.status_code == 200
    assert len(resp.json()) == seeded.permissions_created


@pytest.mark.asyncio
async def test_catalogue_changes_need_permissions_manage(client: AsyncClient, admin_headers, login):
    await client.post("/v1/auth/register", json={
        "email": "reader@acme.com",
        "password": "testpass123",
        "firstName": "Re",
        "lastName": "Ader",
    })
    plain = await login("reader@acme.com")

    resp = await client.post("/v1/permissions", json={"name": "x.y"}, headers=plain)
    assert resp.status_code == 403
    assert resp.json() == {"detail": "Missing permission: permissions.manage"}
    resp = await client.delete("/v1/permissions/1", headers=plain)
    assert resp.status_code == 403

    resp = await client.get("/v1/permissions/1", headers=admin_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_malformed_body_maps_to_400(client: AsyncClient):
    resp = await client.post("/v1/auth/register", json={"email": "not-an-email"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Validation error"
    assert body["details"]


@pytest.mark.asyncio
async def test_unknown_permission_id_on_role_is_400(client: AsyncClient, admin_headers):
    resp = await client.post("/v1/roles", json={"name": "bad", "permissionIds": [999]}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "One or more invalid permission IDs: 999"}
