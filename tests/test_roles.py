"""Role service: uniqueness scopes, permission links, transactional create."""

import pytest
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from rbac_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from rbac_api.models.role import Role, RolePermission
from rbac_api.schemas.role import PermissionCreate, RoleCreate, RoleUpdate
from rbac_api.schemas.tenant import TenantCreate
from rbac_api.services import permissions as permissions_service
from rbac_api.services import roles as roles_service
from rbac_api.services import tenants as tenants_service


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def _permissions(session, *names: str) -> list[int]:
    ids = []
    for name in names:
        perm = await permissions_service.create_permission(
            session, PermissionCreate(name=name, category=name.split(".")[0])
        )
        ids.append(perm.id)
    return ids


@pytest.mark.asyncio
async def test_seeded_editor_scenario(session, seeded):
    """Seed, create an editor with permissions 1 and 2, read it back."""
    created = await roles_service.create_role(
        session, RoleCreate(name="editor", permission_ids=[1, 2])
    )

    role = await roles_service.get_role_by_id(session, created.id)
    assert role.name == "editor"
    assert {p.id for p in role.permissions} == {1, 2}


@pytest.mark.asyncio
async def test_get_role_returns_exactly_linked_permissions(session):
    view, edit, delete = await _permissions(session, "docs.view", "docs.edit", "docs.delete")
    created = await roles_service.create_role(
        session, RoleCreate(name="reviewer", permission_ids=[edit, view])
    )
    await roles_service.create_role(session, RoleCreate(name="janitor", permission_ids=[delete]))

    role = await roles_service.get_role_by_id(session, created.id)
    assert sorted(p.id for p in role.permissions) == sorted([view, edit])


@pytest.mark.asyncio
async def test_get_missing_role_raises_not_found(session):
    with pytest.raises(NotFoundError):
        await roles_service.get_role_by_id(session, 9999)


@pytest.mark.asyncio
async def test_duplicate_global_role_name_rejected(session):
    await roles_service.create_role(session, RoleCreate(name="auditor"))

    with pytest.raises(ConflictError):
        await roles_service.create_role(session, RoleCreate(name="auditor"))

    count = await session.scalar(
        select(func.count()).select_from(Role).where(Role.name == "auditor")
    )
    assert count == 1


@pytest.mark.asyncio
async def test_unique_index_rejects_duplicate_global_names(session):
    """The database itself enforces the rule, not just the service pre-check."""
    session.add(Role(name="dup"))
    await session.commit()

    session.add(Role(name="dup"))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


@pytest.mark.asyncio
async def test_tenant_role_may_share_name_with_global_and_other_tenant(session):
    acme = await tenants_service.create_tenant(session, TenantCreate(name="Acme", slug="acme"))
    globex = await tenants_service.create_tenant(
        session, TenantCreate(name="Globex", slug="globex")
    )

    await roles_service.create_role(session, RoleCreate(name="manager"))
    acme_role = await roles_service.create_role(
        session, RoleCreate(name="manager", tenant_id=acme.id)
    )
    globex_role = await roles_service.create_role(
        session, RoleCreate(name="manager", tenant_id=globex.id)
    )
    assert acme_role.tenant_id == acme.id
    assert globex_role.tenant_id == globex.id

    with pytest.raises(ConflictError):
        await roles_service.create_role(session, RoleCreate(name="manager", tenant_id=acme.id))


@pytest.mark.asyncio
@pytest.mark.parametrize("name", [None, "", "   "])
async def test_create_role_without_name_rejected_before_write(session, name):
    with pytest.raises(ValidationError, match="Role name is required"):
        await roles_service.create_role(session, RoleCreate(name=name))
    assert await _count(session, Role) == 0


@pytest.mark.asyncio
async def test_create_role_with_unknown_permission_leaves_no_rows(session):
    [known] = await _permissions(session, "docs.view")

    with pytest.raises(ValidationError, match="invalid permission IDs: 424242"):
        await roles_service.create_role(
            session, RoleCreate(name="broken", permission_ids=[known, 424242])
        )
    assert await _count(session, Role) == 0
    assert await _count(session, RolePermission) == 0


@pytest.mark.asyncio
async def test_create_role_for_unknown_tenant_rejected(session):
    with pytest.raises(ValidationError):
        await roles_service.create_role(session, RoleCreate(name="ghost", tenant_id=77))
    assert await _count(session, Role) == 0


@pytest.mark.asyncio
async def test_duplicate_permission_ids_are_linked_once(session):
    [view] = await _permissions(session, "docs.view")
    role = await roles_service.create_role(
        session, RoleCreate(name="viewer", permission_ids=[view, view])
    )
    assert [p.id for p in role.permissions] == [view]


@pytest.mark.asyncio
async def test_update_role_replaces_permissions_and_touches_updated_at(session):
    view, edit = await _permissions(session, "docs.view", "docs.edit")
    created = await roles_service.create_role(
        session, RoleCreate(name="writer", permission_ids=[view])
    )

    updated = await roles_service.update_role(
        session,
        created.id,
        RoleUpdate(description="Writes docs", permission_ids=[edit]),
    )
    assert updated.description == "Writes docs"
    assert [p.id for p in updated.permissions] == [edit]
    assert updated.updated_at >= created.updated_at


@pytest.mark.asyncio
async def test_rename_role_onto_existing_name_rejected(session):
    await roles_service.create_role(session, RoleCreate(name="alpha"))
    beta = await roles_service.create_role(session, RoleCreate(name="beta"))

    with pytest.raises(ConflictError):
        await roles_service.update_role(session, beta.id, RoleUpdate(name="alpha"))


@pytest.mark.asyncio
async def test_assign_and_remove_permission(session):
    [view] = await _permissions(session, "docs.view")
    role = await roles_service.create_role(session, RoleCreate(name="reader"))

    perms = await roles_service.assign_permission(session, role.id, view)
    assert [p.id for p in perms] == [view]
    # Linking twice is a no-op
    perms = await roles_service.assign_permission(session, role.id, view)
    assert [p.id for p in perms] == [view]

    perms = await roles_service.remove_permission(session, role.id, view)
    assert perms == []
    with pytest.raises(NotFoundError):
        await roles_service.remove_permission(session, role.id, view)


@pytest.mark.asyncio
async def test_delete_role_cleans_permission_links(session):
    view, edit = await _permissions(session, "docs.view", "docs.edit")
    doomed = await roles_service.create_role(
        session, RoleCreate(name="doomed", permission_ids=[view, edit])
    )
    kept = await roles_service.create_role(
        session, RoleCreate(name="kept", permission_ids=[view])
    )

    await roles_service.delete_role(session, doomed.id)

    with pytest.raises(NotFoundError):
        await roles_service.get_role_by_id(session, doomed.id)
    remaining = (await session.execute(select(RolePermission))).scalars().all()
    assert [(rp.role_id, rp.permission_id) for rp in remaining] == [(kept.id, view)]


@pytest.mark.asyncio
async def test_tenant_caller_cannot_see_other_tenant_roles(session):
    acme = await tenants_service.create_tenant(session, TenantCreate(name="Acme", slug="acme"))
    globex = await tenants_service.create_tenant(
        session, TenantCreate(name="Globex", slug="globex")
    )
    secret = await roles_service.create_role(
        session, RoleCreate(name="secret", tenant_id=globex.id)
    )
    shared = await roles_service.create_role(session, RoleCreate(name="shared"))

    with pytest.raises(NotFoundError):
        await roles_service.get_role_by_id(session, secret.id, tenant_id=acme.id)
    visible = await roles_service.list_roles(session, tenant_id=acme.id)
    assert [r.id for r in visible] == [shared.id]


@pytest.mark.asyncio
async def test_tenant_caller_cannot_modify_global_roles(session):
    acme = await tenants_service.create_tenant(session, TenantCreate(name="Acme", slug="acme"))
    [perm] = await _permissions(session, "roles.view")
    shared = await roles_service.create_role(
        session, RoleCreate(name="member", is_default=True, permission_ids=[perm])
    )

    with pytest.raises(ForbiddenError):
        await roles_service.update_role(
            session, shared.id, RoleUpdate(is_default=False, permission_ids=[]), tenant_id=acme.id
        )
    with pytest.raises(ForbiddenError):
        await roles_service.assign_permission(session, shared.id, perm, tenant_id=acme.id)
    with pytest.raises(ForbiddenError):
        await roles_service.remove_permission(session, shared.id, perm, tenant_id=acme.id)
    with pytest.raises(ForbiddenError):
        await roles_service.delete_role(session, shared.id, tenant_id=acme.id)

    unchanged = await roles_service.get_role_by_id(session, shared.id)
    assert unchanged.is_default is True
    assert [p.id for p in unchanged.permissions] == [perm]


@pytest.mark.asyncio
async def test_tenant_caller_modifies_own_tenant_role(session):
    acme = await tenants_service.create_tenant(session, TenantCreate(name="Acme", slug="acme"))
    local = await roles_service.create_role(session, RoleCreate(name="local", tenant_id=acme.id))

    updated = await roles_service.update_role(
        session, local.id, RoleUpdate(description="Acme only"), tenant_id=acme.id
    )
    assert updated.description == "Acme only"

    await roles_service.delete_role(session, local.id, tenant_id=acme.id)
    with pytest.raises(NotFoundError):
        await roles_service.get_role_by_id(session, local.id)
