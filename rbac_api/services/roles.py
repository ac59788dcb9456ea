"""Role service: roles, their permission links and their holders.

Every function takes the request's ``AsyncSession`` explicitly. A
``tenant_id`` argument, when given, is the caller's tenant: such callers
see global roles plus their own tenant's roles, and nothing else. They
may only modify their own tenant's roles.
"""

import logging

from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from rbac_api.core.database import transaction
from rbac_api.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from rbac_api.models.base import utcnow
from rbac_api.models.role import Permission, Role, RolePermission
from rbac_api.models.user import User, UserRole
from rbac_api.schemas.role import (
    PermissionRead,
    RoleCreate,
    RoleDetail,
    RoleRead,
    RoleUpdate,
)
from rbac_api.schemas.user import UserRead
from rbac_api.services.permissions import missing_permission_ids
from rbac_api.services.tenants import ensure_tenant_exists

logger = logging.getLogger(__name__)


# ── Reads ────────────────────────────────────────────────────

async def get_role_by_id(
    session: AsyncSession, role_id: int, tenant_id: int | None = None
) -> RoleDetail:
    """Fetch a role together with every permission linked to it."""
    try:
        role = await _get_visible_role(session, role_id, tenant_id)
        permissions = await list_role_permissions(session, role_id)
    except SQLAlchemyError:
        logger.exception("Failed to load role %s", role_id)
        raise
    return RoleDetail(
        **RoleRead.model_validate(role).model_dump(),
        permissions=permissions,
    )


async def list_roles(
    session: AsyncSession, tenant_id: int | None = None
) -> list[RoleRead]:
    stmt = select(Role).order_by(Role.name.asc(), Role.id.asc())  # type: ignore[attr-defined, union-attr]
    if tenant_id is not None:
        stmt = stmt.where(_visible_to(tenant_id))
    result = await session.execute(stmt)
    return [RoleRead.model_validate(r) for r in result.scalars().all()]


async def list_role_permissions(session: AsyncSession, role_id: int) -> list[PermissionRead]:
    stmt = (
        select(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(RolePermission.role_id == role_id)
        .order_by(Permission.id.asc())  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return [PermissionRead.model_validate(p) for p in result.scalars().all()]


async def list_role_users(
    session: AsyncSession, role_id: int, tenant_id: int | None = None
) -> list[UserRead]:
    await _get_visible_role(session, role_id, tenant_id)
    stmt = (
        select(User)
        .join(UserRole, UserRole.user_id == User.id)
        .where(UserRole.role_id == role_id)
        .order_by(User.email.asc())  # type: ignore[attr-defined]
    )
    if tenant_id is not None:
        stmt = stmt.where(User.tenant_id == tenant_id)
    result = await session.execute(stmt)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


# ── Writes ───────────────────────────────────────────────────

async def create_role(session: AsyncSession, data: RoleCreate) -> RoleDetail:
    """Create a role and link its permissions in a single transaction."""
    name = (data.name or "").strip()
    if not name:
        raise ValidationError("Role name is required")
    permission_ids = list(dict.fromkeys(data.permission_ids))

    async with transaction(session):
        await ensure_tenant_exists(session, data.tenant_id)
        await _ensure_permissions_exist(session, permission_ids)
        await _ensure_name_available(session, name, data.tenant_id)

        role = Role(
            name=name,
            description=data.description,
            is_default=data.is_default,
            tenant_id=data.tenant_id,
        )
        session.add(role)
        await session.flush()  # populate role.id
        role_id = role.id

        session.add_all(
            RolePermission(role_id=role_id, permission_id=pid) for pid in permission_ids
        )
        await session.flush()

    logger.info("Created role %s (%s) with %d permissions", role_id, name, len(permission_ids))
    return await get_role_by_id(session, role_id)


async def update_role(
    session: AsyncSession,
    role_id: int,
    data: RoleUpdate,
    tenant_id: int | None = None,
) -> RoleDetail:
    """Partial update; ``permission_ids`` replaces the whole link set."""
    async with transaction(session):
        role = await _get_writable_role(session, role_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True)

        if "name" in update_data:
            name = (update_data.pop("name") or "").strip()
            if not name:
                raise ValidationError("Role name is required")
            if name != role.name:
                await _ensure_name_available(session, name, role.tenant_id, exclude_id=role_id)
            role.name = name

        permission_ids = update_data.pop("permission_ids", None)
        for field, value in update_data.items():
            if field == "is_default" and value is None:
                continue
            setattr(role, field, value)

        if permission_ids is not None:
            permission_ids = list(dict.fromkeys(permission_ids))
            await _ensure_permissions_exist(session, permission_ids)
            await session.execute(
                delete(RolePermission).where(RolePermission.role_id == role_id)
            )
            session.add_all(
                RolePermission(role_id=role_id, permission_id=pid) for pid in permission_ids
            )

        role.updated_at = utcnow()
        session.add(role)
        await session.flush()

    return await get_role_by_id(session, role_id)


async def delete_role(
    session: AsyncSession, role_id: int, tenant_id: int | None = None
) -> None:
    """Delete a role together with its permission links and user grants."""
    async with transaction(session):
        role = await _get_writable_role(session, role_id, tenant_id)
        await session.execute(delete(RolePermission).where(RolePermission.role_id == role_id))
        await session.execute(delete(UserRole).where(UserRole.role_id == role_id))
        await session.delete(role)
    logger.info("Deleted role %s", role_id)


async def assign_permission(
    session: AsyncSession,
    role_id: int,
    permission_id: int,
    tenant_id: int | None = None,
) -> list[PermissionRead]:
    """Link a permission to a role. Linking twice is a no-op."""
    async with transaction(session):
        role = await _get_writable_role(session, role_id, tenant_id)
        if await session.get(Permission, permission_id) is None:
            raise NotFoundError("Permission not found")
        if await session.get(RolePermission, (role_id, permission_id)) is None:
            session.add(RolePermission(role_id=role_id, permission_id=permission_id))
            role.updated_at = utcnow()
            session.add(role)
    return await list_role_permissions(session, role_id)


async def remove_permission(
    session: AsyncSession,
    role_id: int,
    permission_id: int,
    tenant_id: int | None = None,
) -> list[PermissionRead]:
    async with transaction(session):
        role = await _get_writable_role(session, role_id, tenant_id)
        link = await session.get(RolePermission, (role_id, permission_id))
        if link is None:
            raise NotFoundError("Permission is not assigned to this role")
        await session.delete(link)
        role.updated_at = utcnow()
        session.add(role)
    return await list_role_permissions(session, role_id)


# ── Internal helpers ─────────────────────────────────────────

def _visible_to(tenant_id: int):
    return or_(Role.tenant_id.is_(None), Role.tenant_id == tenant_id)  # type: ignore[union-attr]


async def _get_visible_role(
    session: AsyncSession, role_id: int, tenant_id: int | None
) -> Role:
    role = await session.get(Role, role_id)
    if role is None:
        raise NotFoundError("Role not found")
    if tenant_id is not None and role.tenant_id not in (None, tenant_id):
        raise NotFoundError("Role not found")
    return role


async def _get_writable_role(
    session: AsyncSession, role_id: int, tenant_id: int | None
) -> Role:
    """Like :func:`_get_visible_role`, but global roles are read-only to tenant callers."""
    role = await _get_visible_role(session, role_id, tenant_id)
    if tenant_id is not None and role.tenant_id != tenant_id:
        raise ForbiddenError("Global roles can only be modified by global users")
    return role


async def _ensure_name_available(
    session: AsyncSession,
    name: str,
    tenant_id: int | None,
    exclude_id: int | None = None,
) -> None:
    stmt = select(Role.id).where(Role.name == name)
    if tenant_id is None:
        stmt = stmt.where(Role.tenant_id.is_(None))  # type: ignore[union-attr]
    else:
        stmt = stmt.where(Role.tenant_id == tenant_id)
    if exclude_id is not None:
        stmt = stmt.where(Role.id != exclude_id)
    result = await session.execute(stmt)
    if result.first() is not None:
        scope = "globally" if tenant_id is None else f"in tenant {tenant_id}"
        raise ConflictError(f"Role '{name}' already exists {scope}")


async def _ensure_permissions_exist(session: AsyncSession, permission_ids: list[int]) -> None:
    missing = await missing_permission_ids(session, permission_ids)
    if missing:
        raise ValidationError(
            "One or more invalid permission IDs: "
            + ", ".join(str(pid) for pid in sorted(missing))
        )
