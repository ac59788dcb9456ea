"""Permission catalogue CRUD."""

import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from rbac_api.core.database import transaction
from rbac_api.core.errors import ConflictError, NotFoundError
from rbac_api.models.role import Permission, RolePermission
from rbac_api.schemas.role import PermissionCreate, PermissionRead

logger = logging.getLogger(__name__)


async def list_permissions(session: AsyncSession) -> list[PermissionRead]:
    stmt = select(Permission).order_by(
        Permission.category.asc(),  # type: ignore[union-attr]
        Permission.name.asc(),  # type: ignore[attr-defined]
    )
    result = await session.execute(stmt)
    return [PermissionRead.model_validate(p) for p in result.scalars().all()]


async def get_permission(session: AsyncSession, permission_id: int) -> PermissionRead:
    permission = await session.get(Permission, permission_id)
    if permission is None:
        raise NotFoundError("Permission not found")
    return PermissionRead.model_validate(permission)


async def create_permission(session: AsyncSession, data: PermissionCreate) -> PermissionRead:
    async with transaction(session):
        existing = await session.execute(
            select(Permission.id).where(Permission.name == data.name)
        )
        if existing.first() is not None:
            raise ConflictError(f"Permission '{data.name}' already exists")

        permission = Permission(
            name=data.name,
            description=data.description,
            category=data.category,
        )
        session.add(permission)
        await session.flush()
        created = PermissionRead.model_validate(permission)
    return created


async def delete_permission(session: AsyncSession, permission_id: int) -> None:
    """Delete a permission and detach it from every role."""
    async with transaction(session):
        permission = await session.get(Permission, permission_id)
        if permission is None:
            raise NotFoundError("Permission not found")
        await session.execute(
            delete(RolePermission).where(RolePermission.permission_id == permission_id)
        )
        await session.delete(permission)
    logger.info("Deleted permission %s", permission_id)


async def missing_permission_ids(
    session: AsyncSession, permission_ids: list[int]
) -> set[int]:
    """Return the subset of ``permission_ids`` with no matching row."""
    if not permission_ids:
        return set()
    stmt = select(Permission.id).where(Permission.id.in_(permission_ids))  # type: ignore[union-attr]
    result = await session.execute(stmt)
    return set(permission_ids) - set(result.scalars().all())
