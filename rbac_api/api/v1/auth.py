"""Authentication endpoints — signup, login, current user."""

from fastapi import APIRouter, HTTPException, status
from pydantic import EmailStr, Field

from rbac_api.api.deps import Auth, Session
from rbac_api.core.security import create_jwt
from rbac_api.schemas.common import CamelModel
from rbac_api.schemas.user import UserCreate, UserDetail, UserRead
from rbac_api.services import users as users_service

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class LoginResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead


# ── Routes ───────────────────────────────────────────────────

@router.post("/register", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, session: Session) -> UserDetail:
    """Self-service signup. Creates a global user holding the default roles."""
    return await users_service.create_user(
        session,
        UserCreate(
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        ),
    )


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session) -> LoginResponse:
    """Authenticate with email + password, receive a JWT."""
    user = await users_service.authenticate_user(session, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is disabled",
        )

    token = create_jwt(
        subject=str(user.id),
        tenant_id=str(user.tenant_id) if user.tenant_id is not None else None,
    )
    return LoginResponse(access_token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserDetail)
async def get_me(auth: Auth, session: Session) -> UserDetail:
    """Return the current user with their roles and effective permissions."""
    return await users_service.get_user(session, auth.user_id)
