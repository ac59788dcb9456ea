from datetime import datetime

from pydantic import Field

from rbac_api.schemas.common import CamelModel


class TenantCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9\-]+$")


class TenantRead(CamelModel):
    id: int
    name: str
    slug: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
