"""Tenant CRUD with a restrict-on-delete policy."""

import logging

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from rbac_api.core.database import transaction
from rbac_api.core.errors import ConflictError, NotFoundError, ValidationError
from rbac_api.models.role import Role
from rbac_api.models.tenant import Tenant
from rbac_api.models.user import User
from rbac_api.schemas.tenant import TenantCreate, TenantRead

logger = logging.getLogger(__name__)


async def create_tenant(session: AsyncSession, data: TenantCreate) -> TenantRead:
    async with transaction(session):
        existing = await session.execute(select(Tenant.id).where(Tenant.slug == data.slug))
        if existing.first() is not None:
            raise ConflictError(f"Slug '{data.slug}' is already taken")

        tenant = Tenant(name=data.name, slug=data.slug)
        session.add(tenant)
        await session.flush()
        created = TenantRead.model_validate(tenant)
    logger.info("Created tenant %s (%s)", created.id, created.slug)
    return created


async def get_tenant(session: AsyncSession, tenant_id: int) -> TenantRead:
    tenant = await session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return TenantRead.model_validate(tenant)


async def list_tenants(session: AsyncSession) -> list[TenantRead]:
    result = await session.execute(select(Tenant).order_by(Tenant.slug.asc()))  # type: ignore[attr-defined]
    return [TenantRead.model_validate(t) for t in result.scalars().all()]


async def delete_tenant(session: AsyncSession, tenant_id: int) -> None:
    """Delete an empty tenant; refuse while it still owns users or roles."""
    async with transaction(session):
        tenant = await session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        users = await session.scalar(
            select(func.count()).select_from(User).where(User.tenant_id == tenant_id)
        )
        roles = await session.scalar(
            select(func.count()).select_from(Role).where(Role.tenant_id == tenant_id)
        )
        if users or roles:
            raise ConflictError(
                f"Tenant still owns {users} user(s) and {roles} role(s); remove them first"
            )
        await session.delete(tenant)
    logger.info("Deleted tenant %s", tenant_id)


async def ensure_tenant_exists(session: AsyncSession, tenant_id: int | None) -> None:
    """Reject references to unknown tenants; ``None`` (global) always passes."""
    if tenant_id is None:
        return
    if await session.get(Tenant, tenant_id) is None:
        raise ValidationError(f"Tenant {tenant_id} does not exist")
