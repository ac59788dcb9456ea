from datetime import datetime

from pydantic import Field

from rbac_api.schemas.common import CamelModel


# ── Permissions ──────────────────────────────────────────────

class PermissionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100)


class PermissionRead(CamelModel):
    id: int
    name: str
    description: str | None
    category: str | None


# ── Roles ────────────────────────────────────────────────────

class RoleCreate(CamelModel):
    # Optional here so that a missing name is reported as
    # "Role name is required" rather than a generic schema error.
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    is_default: bool = False
    tenant_id: int | None = None
    permission_ids: list[int] = Field(default_factory=list)


class RoleUpdate(CamelModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    is_default: bool | None = None
    permission_ids: list[int] | None = None


class RoleRead(CamelModel):
    id: int
    name: str
    description: str | None
    is_default: bool
    tenant_id: int | None
    created_at: datetime
    updated_at: datetime


class RoleDetail(RoleRead):
    permissions: list[PermissionRead] = Field(default_factory=list)


class RolePermissionAssign(CamelModel):
    permission_id: int
