"""User model — global, or scoped to a tenant."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from rbac_api.models.base import TimestampMixin, utcnow


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(max_length=320, unique=True, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    first_name: str = Field(max_length=255, nullable=False)
    last_name: str = Field(max_length=255, nullable=False)

    # NULL = global user
    tenant_id: int | None = Field(
        default=None,
        foreign_key="tenants.id",
        ondelete="RESTRICT",
        nullable=True,
        index=True,
    )
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(default=None)


class UserRole(SQLModel, table=True):
    """Grant of a role to a user."""

    __tablename__ = "user_roles"

    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", primary_key=True)
    role_id: int = Field(foreign_key="roles.id", ondelete="CASCADE", primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
