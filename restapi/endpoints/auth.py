"""Authentication endpoints for user login and registration."""

import logging
from typing import Any, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.core.permissions import Principal
from components.core.security import create_access_token, verify_password, verify_token
from components.user.models import User, UserRole
from components.user.repository import UserRepository
from components.user.schemas import UserCreate, UserRegister, User as UserSchema, UserWithToken
from components.user.utils import create_jwt_token_payload_from_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    token: Optional[str] = Depends(oauth2_scheme)
) -> Optional[User]:
    """Get current user from JWT token, or None when no token was sent."""
    if token is None:
        return None

    payload = verify_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        user_id = None
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_principal(
    user: Optional[User] = Depends(get_current_user),
) -> Optional[Principal]:
    """Reduce the current user to what the authorization policy needs."""
    if user is None:
        return None
    return Principal(id=user.id, role=user.role)


def _with_token(user: User) -> UserWithToken:
    access_token = create_access_token(data=create_jwt_token_payload_from_user(user))
    return UserWithToken(
        **UserSchema.model_validate(user).model_dump(),
        access_token=access_token,
    )


@router.post("/register", response_model=UserWithToken, status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserRegister,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Create a new client account and return a JWT token."""
    repo = UserRepository(db)
    user = await repo.create(UserCreate(**user_in.model_dump(), role=UserRole.CLIENT))
    return _with_token(user)


@router.post("/login", response_model=UserWithToken)
async def login(
    db: AsyncSession = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """Login with email and password and return a JWT token."""
    repo = UserRepository(db)
    user = await repo.get_by_email(form_data.username)

    if not user or not verify_password(form_data.password, user.password):
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _with_token(user)


@router.get("/me", response_model=UserSchema)
async def read_me(
    current_user: Optional[User] = Depends(get_current_user)
) -> Any:
    """Get the authenticated user."""
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user
