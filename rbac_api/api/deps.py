"""FastAPI dependencies for authentication, permission checks and tenant resolution."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.core.database import get_session
from rbac_api.core.security import decode_jwt
from rbac_api.models.user import User
from rbac_api.services import users as users_service

bearer_scheme = HTTPBearer()


class AuthContext:
    """Resolved identity carried through a request.

    ``tenant_id`` is None for global users, who are not confined to a tenant.
    """

    __slots__ = ("user_id", "tenant_id", "email")

    def __init__(self, user_id: int, tenant_id: int | None, email: str) -> None:
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.email = email


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AuthContext:
    """Resolve a bearer JWT to the calling user."""
    try:
        payload = decode_jwt(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed token payload",
        ) from exc

    # Tenant is read from the row, not the token, so reassignments apply at once
    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled or no longer exists",
        )

    return AuthContext(user_id=user_id, tenant_id=user.tenant_id, email=user.email)


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
Session = Annotated[AsyncSession, Depends(get_session)]


def require_permission(permission_name: str):
    """Dependency factory: the caller must hold ``permission_name`` through one of their roles."""

    async def _check(auth: Auth, session: Session) -> AuthContext:
        if not await users_service.has_permission(session, auth.user_id, permission_name):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission_name}",
            )
        return auth

    return _check


def require_global(auth: AuthContext) -> None:
    """Raise 403 if the caller is confined to a tenant."""
    if auth.tenant_id is not None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only global users can perform this action",
        )
