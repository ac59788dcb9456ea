"""Seed data: the permission catalogue and the two canonical global roles.

Run after migrations and before anyone registers, so that the default
``user`` role exists::

    rbac-seed            # or: python -m rbac_api.services.seed
    rbac-seed --admin-email root@example.com --admin-password ...

Reseeding roles is destructive: every existing role (global and tenant)
is deleted along with its permission links and user grants. The CLI
refuses to run with ``APP_ENV=production`` unless ``--force`` is passed.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from rbac_api.core.config import get_settings
from rbac_api.core.database import get_engine, get_session_factory, init_db, transaction
from rbac_api.core.logging_config import configure_logging
from rbac_api.models.base import utcnow
from rbac_api.models.role import Permission, Role, RolePermission
from rbac_api.models.user import User, UserRole
from rbac_api.schemas.user import UserCreate
from rbac_api.services import users as users_service

logger = logging.getLogger(__name__)

DEFAULT_ROLES: list[dict] = [
    {
        "name": "admin",
        "description": "Administrator with full access",
        "is_default": False,
    },
    {
        "name": "user",
        "description": "Regular user with limited access",
        "is_default": True,
    },
]

DEFAULT_PERMISSIONS: dict[str, list[str]] = {
    "users": ["users.view", "users.create", "users.edit", "users.delete"],
    "roles": ["roles.view", "roles.create", "roles.edit", "roles.delete"],
    "permissions": ["permissions.view", "permissions.manage"],
    "templates": ["templates.view", "templates.create", "templates.edit", "templates.delete"],
    "widget": ["widget.configure", "widget.embed"],
    "context": ["context.view", "context.create", "context.manage", "context.test"],
    "kb": ["kb.view", "kb.manage"],
    "embed": ["embed.generate", "embed.customize"],
    "logs": ["logs.view"],
    "analytics": ["analytics.view"],
    "settings": ["settings.view", "settings.manage"],
    "ai": ["ai.configure"],
    "tenants": ["tenants.view", "tenants.manage"],
}


@dataclass
class SeedSummary:
    permissions_created: int
    roles_created: int
    admin_permissions: int


async def seed_default_permissions(session: AsyncSession) -> int:
    """Insert catalogue permissions that do not exist yet. Returns the count added."""
    async with transaction(session):
        result = await session.execute(select(Permission.name))
        existing = set(result.scalars().all())

        created = 0
        for category, names in DEFAULT_PERMISSIONS.items():
            for name in names:
                if name in existing:
                    continue
                action = name.split(".", 1)[1].replace("_", " ")
                session.add(
                    Permission(
                        name=name,
                        description=f"Can {action} {category}",
                        category=category,
                    )
                )
                created += 1
    return created


async def seed_default_roles(session: AsyncSession) -> int:
    """Delete every role, then insert the canonical global roles."""
    async with transaction(session):
        await session.execute(delete(UserRole))
        await session.execute(delete(RolePermission))
        await session.execute(delete(Role))

        now = utcnow()
        session.add_all(
            Role(**fields, tenant_id=None, created_at=now, updated_at=now)
            for fields in DEFAULT_ROLES
        )
    logger.info("Seeded %d default roles", len(DEFAULT_ROLES))
    return len(DEFAULT_ROLES)


async def grant_all_permissions(session: AsyncSession, role_name: str) -> int:
    """Link every permission to the named global role."""
    async with transaction(session):
        result = await session.execute(
            select(Role.id).where(Role.name == role_name, Role.tenant_id.is_(None))  # type: ignore[union-attr]
        )
        role_id = result.scalar_one()
        linked = await session.execute(
            select(RolePermission.permission_id).where(RolePermission.role_id == role_id)
        )
        already = set(linked.scalars().all())
        permission_ids = (await session.execute(select(Permission.id))).scalars().all()
        missing = [pid for pid in permission_ids if pid not in already]
        session.add_all(RolePermission(role_id=role_id, permission_id=pid) for pid in missing)
    return len(already) + len(missing)


async def seed(session: AsyncSession) -> SeedSummary:
    permissions_created = await seed_default_permissions(session)
    roles_created = await seed_default_roles(session)
    admin_permissions = await grant_all_permissions(session, "admin")
    return SeedSummary(
        permissions_created=permissions_created,
        roles_created=roles_created,
        admin_permissions=admin_permissions,
    )


async def seed_admin_user(session: AsyncSession, email: str, password: str) -> int:
    """Ensure a global user with ``email`` exists and holds the ``admin`` role.

    Reseeding roles drops every grant, so an existing account is re-granted
    rather than recreated. Returns the user id.
    """
    result = await session.execute(
        select(Role.id).where(Role.name == "admin", Role.tenant_id.is_(None))  # type: ignore[union-attr]
    )
    admin_role_id = result.scalar_one()

    existing = await session.execute(select(User.id).where(User.email == email.lower()))
    user_id = existing.scalar_one_or_none()
    if user_id is None:
        created = await users_service.create_user(
            session,
            UserCreate(
                email=email,
                password=password,
                first_name="Admin",
                last_name="User",
                role_ids=[admin_role_id],
            ),
        )
        logger.info("Created admin user %s", created.email)
        return created.id

    await users_service.grant_role(session, user_id, admin_role_id)
    logger.info("Granted admin role to existing user %s", email)
    return user_id


# ── CLI ──────────────────────────────────────────────────────

async def _run(
    create_tables: bool, admin_email: str | None, admin_password: str | None
) -> SeedSummary:
    if create_tables:
        await init_db()
    try:
        async with get_session_factory()() as session:
            summary = await seed(session)
            if admin_email and admin_password:
                await seed_admin_user(session, admin_email, admin_password)
            return summary
    finally:
        await get_engine().dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed default permissions and roles.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="allow seeding when APP_ENV=production",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create missing tables first (development only; use Alembic otherwise)",
    )
    parser.add_argument("--admin-email", help="create or re-grant a global admin account")
    parser.add_argument("--admin-password", help="password for a newly created admin")
    args = parser.parse_args(argv)
    if args.admin_email and not args.admin_password:
        parser.error("--admin-email requires --admin-password")

    settings = get_settings()
    configure_logging(settings.log_level)

    if settings.is_production and not args.force:
        logger.error("Refusing to reseed roles in production without --force")
        return 2

    summary = asyncio.run(_run(args.create_tables, args.admin_email, args.admin_password))
    logger.info(
        "Seed complete: %d new permissions, %d roles, admin holds %d permissions",
        summary.permissions_created,
        summary.roles_created,
        summary.admin_permissions,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
