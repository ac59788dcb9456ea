"""Roles CRUD and role ⇄ permission links."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from rbac_api.api.deps import AuthContext, Session, require_permission
from rbac_api.schemas.role import (
    PermissionRead,
    RoleCreate,
    RoleDetail,
    RolePermissionAssign,
    RoleRead,
    RoleUpdate,
)
from rbac_api.schemas.user import UserRead
from rbac_api.services import roles as roles_service

router = APIRouter(prefix="/roles", tags=["roles"])

CanView = Annotated[AuthContext, Depends(require_permission("roles.view"))]
CanCreate = Annotated[AuthContext, Depends(require_permission("roles.create"))]
CanEdit = Annotated[AuthContext, Depends(require_permission("roles.edit"))]
CanDelete = Annotated[AuthContext, Depends(require_permission("roles.delete"))]


@router.get("", response_model=list[RoleRead])
async def list_roles(auth: CanView, session: Session) -> list[RoleRead]:
    return await roles_service.list_roles(session, auth.tenant_id)


@router.post("", response_model=RoleDetail, status_code=status.HTTP_201_CREATED)
async def create_role(body: RoleCreate, auth: CanCreate, session: Session) -> RoleDetail:
    # Tenant users can only create roles inside their own tenant
    if auth.tenant_id is not None:
        body = body.model_copy(update={"tenant_id": auth.tenant_id})
    return await roles_service.create_role(session, body)


@router.get("/{role_id}", response_model=RoleDetail)
async def get_role(role_id: int, auth: CanView, session: Session) -> RoleDetail:
    return await roles_service.get_role_by_id(session, role_id, auth.tenant_id)


@router.put("/{role_id}", response_model=RoleDetail)
async def update_role(
    role_id: int, body: RoleUpdate, auth: CanEdit, session: Session
) -> RoleDetail:
    return await roles_service.update_role(session, role_id, body, auth.tenant_id)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: int, auth: CanDelete, session: Session) -> None:
    await roles_service.delete_role(session, role_id, auth.tenant_id)


@router.get("/{role_id}/permissions", response_model=list[PermissionRead])
async def list_role_permissions(
    role_id: int, auth: CanView, session: Session
) -> list[PermissionRead]:
    role = await roles_service.get_role_by_id(session, role_id, auth.tenant_id)
    return role.permissions


@router.post("/{role_id}/permissions", response_model=list[PermissionRead])
async def assign_permission(
    role_id: int, body: RolePermissionAssign, auth: CanEdit, session: Session
) -> list[PermissionRead]:
    return await roles_service.assign_permission(
        session, role_id, body.permission_id, auth.tenant_id
    )


@router.delete("/{role_id}/permissions/{permission_id}", response_model=list[PermissionRead])
async def remove_permission(
    role_id: int, permission_id: int, auth: CanEdit, session: Session
) -> list[PermissionRead]:
    return await roles_service.remove_permission(
        session, role_id, permission_id, auth.tenant_id
    )


@router.get("/{role_id}/users", response_model=list[UserRead])
async def list_role_users(role_id: int, auth: CanView, session: Session) -> list[UserRead]:
    return await roles_service.list_role_users(session, role_id, auth.tenant_id)
