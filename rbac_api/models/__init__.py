"""Import all models so SQLModel.metadata picks them up."""

from rbac_api.models.role import Permission, Role, RolePermission
from rbac_api.models.tenant import Tenant
from rbac_api.models.user import User, UserRole

__all__ = [
    "Permission",
    "Role",
    "RolePermission",
    "Tenant",
    "User",
    "UserRole",
]
