"""Tenant model — isolation boundary for users and roles."""

from sqlmodel import Field, SQLModel

from rbac_api.models.base import TimestampMixin


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)
    is_active: bool = Field(default=True)
