"""Users CRUD — confined to the caller's tenant for tenant users."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from rbac_api.api.deps import AuthContext, Session, require_permission
from rbac_api.schemas.common import DeleteResult
from rbac_api.schemas.user import UserCreate, UserDetail, UserRead, UserUpdate
from rbac_api.services import users as users_service

router = APIRouter(prefix="/users", tags=["users"])

CanView = Annotated[AuthContext, Depends(require_permission("users.view"))]
CanCreate = Annotated[AuthContext, Depends(require_permission("users.create"))]
CanEdit = Annotated[AuthContext, Depends(require_permission("users.edit"))]
CanDelete = Annotated[AuthContext, Depends(require_permission("users.delete"))]


@router.post("", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, auth: CanCreate, session: Session) -> UserDetail:
    if auth.tenant_id is not None:
        body = body.model_copy(update={"tenant_id": auth.tenant_id})
    return await users_service.create_user(session, body)


@router.get("", response_model=list[UserRead])
async def list_users(
    auth: CanView,
    session: Session,
    tenant_id: int | None = Query(default=None, alias="tenantId"),
) -> list[UserRead]:
    if auth.tenant_id is not None:
        tenant_id = auth.tenant_id
    return await users_service.list_users(session, tenant_id)


@router.get("/{user_id}", response_model=UserDetail)
async def get_user(user_id: int, auth: CanView, session: Session) -> UserDetail:
    return await users_service.get_user(session, user_id, auth.tenant_id)


@router.patch("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: int, body: UserUpdate, auth: CanEdit, session: Session
) -> UserDetail:
    return await users_service.update_user(session, user_id, body, auth.tenant_id)


@router.delete("/{user_id}", response_model=DeleteResult)
async def delete_user(user_id: int, auth: CanDelete, session: Session) -> DeleteResult:
    return await users_service.delete_user(session, user_id, auth.tenant_id)
