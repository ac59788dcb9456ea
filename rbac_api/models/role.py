"""Role and permission models plus the role ⇄ permission link."""

from datetime import datetime

from sqlalchemy import Index, Text, func
from sqlmodel import Column, Field, SQLModel

from rbac_api.models.base import TimestampMixin, utcnow


class Role(TimestampMixin, SQLModel, table=True):
    __tablename__ = "roles"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, nullable=False)
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    # Auto-assigned to new users
    is_default: bool = Field(default=False)

    # NULL = global role, shared by every tenant
    tenant_id: int | None = Field(
        default=None,
        foreign_key="tenants.id",
        ondelete="RESTRICT",
        nullable=True,
        index=True,
    )


# Role names are unique per tenant; all global roles share the 0 bucket.
Index(
    "uq_roles_name_scope",
    Role.__table__.c.name,  # type: ignore[attr-defined]
    func.coalesce(Role.__table__.c.tenant_id, 0),  # type: ignore[attr-defined]
    unique=True,
)


class Permission(TimestampMixin, SQLModel, table=True):
    __tablename__ = "permissions"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True, nullable=False, index=True)
    description: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100, index=True)


class RolePermission(SQLModel, table=True):
    __tablename__ = "role_permissions"

    role_id: int = Field(foreign_key="roles.id", ondelete="CASCADE", primary_key=True)
    permission_id: int = Field(
        foreign_key="permissions.id", ondelete="CASCADE", primary_key=True
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
