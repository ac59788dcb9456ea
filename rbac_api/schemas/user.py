from datetime import datetime

from pydantic import EmailStr, Field

from rbac_api.schemas.common import CamelModel
from rbac_api.schemas.role import PermissionRead, RoleRead


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    tenant_id: int | None = None
    # None = assign the default roles
    role_ids: list[int] | None = None


class UserUpdate(CamelModel):
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    is_active: bool | None = None
    role_ids: list[int] | None = None


class UserRead(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    tenant_id: int | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UserDetail(UserRead):
    roles: list[RoleRead] = Field(default_factory=list)
    permissions: list[PermissionRead] = Field(default_factory=list)
