"""Permission catalogue endpoints. The catalogue is shared, so only global users may change it."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from rbac_api.api.deps import AuthContext, Session, require_global, require_permission
from rbac_api.schemas.role import PermissionCreate, PermissionRead
from rbac_api.services import permissions as permissions_service

router = APIRouter(prefix="/permissions", tags=["permissions"])

CanView = Annotated[AuthContext, Depends(require_permission("permissions.view"))]
CanManage = Annotated[AuthContext, Depends(require_permission("permissions.manage"))]


@router.get("", response_model=list[PermissionRead])
async def list_permissions(auth: CanView, session: Session) -> list[PermissionRead]:
    return await permissions_service.list_permissions(session)


@router.post("", response_model=PermissionRead, status_code=status.HTTP_201_CREATED)
async def create_permission(
    body: PermissionCreate, auth: CanManage, session: Session
) -> PermissionRead:
    require_global(auth)
    return await permissions_service.create_permission(session, body)


@router.get("/{permission_id}", response_model=PermissionRead)
async def get_permission(permission_id: int, auth: CanView, session: Session) -> PermissionRead:
    return await permissions_service.get_permission(session, permission_id)


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(permission_id: int, auth: CanManage, session: Session) -> None:
    require_global(auth)
    await permissions_service.delete_permission(session, permission_id)
