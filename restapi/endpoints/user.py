"""User management endpoints for administrators."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.core.permissions import Capability, Principal, authorize
from components.core.schemas import Message
from components.user.models import UserRole
from components.user.repository import UserRepository
from components.user import schemas
from restapi.endpoints.auth import get_current_principal

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: schemas.UserCreate,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Create a new user with any role."""
    authorize(principal, Capability.MANAGE_USERS)
    repo = UserRepository(db)
    return await repo.create(user)


@router.get("/", response_model=List[schemas.User])
async def read_users(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of records to return"),
    role: Optional[UserRole] = Query(None, description="Only users with this role"),
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get list of users with optional filtering."""
    authorize(principal, Capability.MANAGE_USERS)
    repo = UserRepository(db)
    return await repo.get_all(skip=skip, limit=limit, role=role)


@router.get("/{user_id}", response_model=schemas.User)
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Get a specific user by ID."""
    authorize(principal, Capability.MANAGE_USERS)
    repo = UserRepository(db)
    return await repo.get_or_404(user_id)


@router.put("/{user_id}", response_model=schemas.User)
async def update_user(
    user_id: int,
    user: schemas.UserUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Update a user."""
    authorize(principal, Capability.MANAGE_USERS)
    repo = UserRepository(db)
    return await repo.update(user_id, user)


@router.delete("/{user_id}", response_model=Message)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal)
):
    """Delete a user that owns no credits."""
    principal = authorize(principal, Capability.MANAGE_USERS)
    repo = UserRepository(db)
    await repo.delete(user_id, actor_id=principal.id)
    return Message(message="User deleted successfully")
