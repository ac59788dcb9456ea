"""User service: tenant-scoped CRUD plus role assignment."""

import logging

from sqlalchemy import and_, delete, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from rbac_api.core.database import transaction
from rbac_api.core.errors import ConflictError, NotFoundError, ValidationError
from rbac_api.core.security import hash_password, verify_password
from rbac_api.models.base import utcnow
from rbac_api.models.role import Permission, Role, RolePermission
from rbac_api.models.user import User, UserRole
from rbac_api.schemas.common import DeleteResult
from rbac_api.schemas.role import PermissionRead, RoleRead
from rbac_api.schemas.user import UserCreate, UserDetail, UserRead, UserUpdate
from rbac_api.services.tenants import ensure_tenant_exists

logger = logging.getLogger(__name__)


async def create_user(session: AsyncSession, data: UserCreate) -> UserDetail:
    """Create a user. Without explicit ``role_ids`` the default roles apply."""
    email = data.email.lower()
    async with transaction(session):
        await ensure_tenant_exists(session, data.tenant_id)
        await _ensure_email_available(session, email)

        if data.role_ids is None:
            role_ids = await _default_role_ids(session, data.tenant_id)
        else:
            role_ids = list(dict.fromkeys(data.role_ids))
            await _ensure_roles_assignable(session, role_ids, data.tenant_id)

        user = User(
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            tenant_id=data.tenant_id,
        )
        session.add(user)
        await session.flush()  # populate user.id
        user_id = user.id

        session.add_all(UserRole(user_id=user_id, role_id=rid) for rid in role_ids)
        await session.flush()

    logger.info("Created user %s with roles %s", user_id, role_ids)
    return await get_user(session, user_id)


async def get_user(
    session: AsyncSession, user_id: int, tenant_id: int | None = None
) -> UserDetail:
    """Fetch a user with their roles and the union of those roles' permissions."""
    user = await _get_scoped_user(session, user_id, tenant_id)

    roles_stmt = (
        select(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.name.asc())  # type: ignore[attr-defined]
    )
    roles = (await session.execute(roles_stmt)).scalars().all()

    permissions_stmt = (
        select(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id)
        .distinct()
        .order_by(Permission.name.asc())  # type: ignore[attr-defined]
    )
    permissions = (await session.execute(permissions_stmt)).scalars().all()

    return UserDetail(
        **UserRead.model_validate(user).model_dump(),
        roles=[RoleRead.model_validate(r) for r in roles],
        permissions=[PermissionRead.model_validate(p) for p in permissions],
    )


async def list_users(
    session: AsyncSession, tenant_id: int | None = None
) -> list[UserRead]:
    stmt = select(User).order_by(User.email.asc())  # type: ignore[attr-defined]
    if tenant_id is not None:
        stmt = stmt.where(User.tenant_id == tenant_id)
    result = await session.execute(stmt)
    return [UserRead.model_validate(u) for u in result.scalars().all()]


async def update_user(
    session: AsyncSession,
    user_id: int,
    data: UserUpdate,
    tenant_id: int | None = None,
) -> UserDetail:
    """Partial update; ``role_ids`` replaces the user's role assignments."""
    async with transaction(session):
        user = await _get_scoped_user(session, user_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "email" in update_data:
            email = update_data.pop("email").lower()
            if email != user.email:
                await _ensure_email_available(session, email)
            user.email = email
        if "password" in update_data:
            user.password_hash = hash_password(update_data.pop("password"))

        role_ids = update_data.pop("role_ids", None)
        for field, value in update_data.items():
            setattr(user, field, value)

        if role_ids is not None:
            role_ids = list(dict.fromkeys(role_ids))
            await _ensure_roles_assignable(session, role_ids, user.tenant_id)
            await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
            session.add_all(UserRole(user_id=user_id, role_id=rid) for rid in role_ids)

        user.updated_at = utcnow()
        session.add(user)
        await session.flush()

    return await get_user(session, user_id)


async def delete_user(
    session: AsyncSession, user_id: int, tenant_id: int | None = None
) -> DeleteResult:
    """Hard-delete a user and their role grants."""
    async with transaction(session):
        await _get_scoped_user(session, user_id, tenant_id)
        await session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        result = await session.execute(delete(User).where(User.id == user_id))
        # A concurrent delete may have removed the row since it was loaded
        if result.rowcount == 0:
            raise NotFoundError("User not found")
    logger.info("Deleted user %s", user_id)
    return DeleteResult(id=user_id)


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    """Return the user matching the credentials, or None."""
    result = await session.execute(select(User).where(User.email == email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        return None
    if user.is_active:
        user.last_login_at = utcnow()
        session.add(user)
        await session.commit()
    return user


async def has_permission(session: AsyncSession, user_id: int, permission_name: str) -> bool:
    """True if any role granted to the user carries the named permission."""
    stmt = (
        select(Permission.id)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id, Permission.name == permission_name)
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def grant_role(session: AsyncSession, user_id: int, role_id: int) -> None:
    """Grant a single role to a user. Granting twice is a no-op."""
    async with transaction(session):
        await _get_scoped_user(session, user_id, None)
        if await session.get(UserRole, (user_id, role_id)) is None:
            session.add(UserRole(user_id=user_id, role_id=role_id))


# ── Internal helpers ─────────────────────────────────────────

async def _get_scoped_user(
    session: AsyncSession, user_id: int, tenant_id: int | None
) -> User:
    user = await session.get(User, user_id)
    if user is None or (tenant_id is not None and user.tenant_id != tenant_id):
        raise NotFoundError("User not found")
    return user


async def _ensure_email_available(session: AsyncSession, email: str) -> None:
    result = await session.execute(select(User.id).where(User.email == email))
    if result.first() is not None:
        raise ConflictError("A user with this email already exists")


async def _default_role_ids(session: AsyncSession, tenant_id: int | None) -> list[int]:
    stmt = select(Role.id).where(Role.is_default.is_(True))  # type: ignore[attr-defined]
    if tenant_id is None:
        stmt = stmt.where(Role.tenant_id.is_(None))  # type: ignore[union-attr]
    else:
        stmt = stmt.where(or_(Role.tenant_id.is_(None), Role.tenant_id == tenant_id))  # type: ignore[union-attr]
    result = await session.execute(stmt.order_by(Role.id.asc()))  # type: ignore[union-attr]
    return list(result.scalars().all())


async def _ensure_roles_assignable(
    session: AsyncSession, role_ids: list[int], tenant_id: int | None
) -> None:
    """Every role must exist and be grantable to a user of ``tenant_id``.

    Global users may hold any global role. Tenant users may hold their own
    tenant's roles, and of the global roles only the default ones.
    """
    if not role_ids:
        return
    stmt = select(Role.id).where(Role.id.in_(role_ids))  # type: ignore[union-attr]
    if tenant_id is None:
        stmt = stmt.where(Role.tenant_id.is_(None))  # type: ignore[union-attr]
    else:
        stmt = stmt.where(
            or_(
                Role.tenant_id == tenant_id,
                and_(Role.tenant_id.is_(None), Role.is_default.is_(True)),  # type: ignore[union-attr, attr-defined]
            )
        )
    found = set((await session.execute(stmt)).scalars().all())
    if len(found) != len(role_ids):
        raise ValidationError("One or more invalid role IDs")
