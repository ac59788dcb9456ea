"""Tenant management. Creating and deleting tenants is reserved to global users."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from rbac_api.api.deps import AuthContext, Session, require_global, require_permission
from rbac_api.core.errors import NotFoundError
from rbac_api.schemas.tenant import TenantCreate, TenantRead
from rbac_api.services import tenants as tenants_service

router = APIRouter(prefix="/tenants", tags=["tenants"])

CanView = Annotated[AuthContext, Depends(require_permission("tenants.view"))]
CanManage = Annotated[AuthContext, Depends(require_permission("tenants.manage"))]


@router.post("", response_model=TenantRead, status_code=status.HTTP_201_CREATED)
async def create_tenant(body: TenantCreate, auth: CanManage, session: Session) -> TenantRead:
    require_global(auth)
    return await tenants_service.create_tenant(session, body)


@router.get("", response_model=list[TenantRead])
async def list_tenants(auth: CanView, session: Session) -> list[TenantRead]:
    if auth.tenant_id is not None:
        return [await tenants_service.get_tenant(session, auth.tenant_id)]
    return await tenants_service.list_tenants(session)


@router.get("/{tenant_id}", response_model=TenantRead)
async def get_tenant(tenant_id: int, auth: CanView, session: Session) -> TenantRead:
    if auth.tenant_id is not None and auth.tenant_id != tenant_id:
        raise NotFoundError("Tenant not found")
    return await tenants_service.get_tenant(session, tenant_id)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(tenant_id: int, auth: CanManage, session: Session) -> None:
    require_global(auth)
    await tenants_service.delete_tenant(session, tenant_id)
