"""Pydantic schemas for user data validation."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from components.credit import schemas as credit_schemas
from components.user.models import UserRole


class UserBase(BaseModel):
    """Base user schema."""
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr


class UserRegister(UserBase):
    """Schema for public registration; always creates a client."""
    password: str = Field(..., min_length=8, max_length=128)


class UserCreate(UserRegister):
    """Schema for user creation by an administrator."""
    role: UserRole = UserRole.CLIENT


class UserUpdate(UserBase):
    """Schema for user update; the password is only changed when given."""
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: UserRole


class User(UserBase):
    """Schema for user response."""
    id: int
    role: UserRole
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithToken(User):
    """Schema for user response with an access token."""
    access_token: str
    token_type: str = "bearer"


class UserJWTPayload(BaseModel):
    """Claims stored in an access token."""
    sub: str
    role: UserRole


class ClientTotals(BaseModel):
    """Borrowing figures of a client."""
    credit_count: int
    pending_credits: int
    active_credits: int
    total_borrowed: float
    total_repaid: float
    outstanding: float


class ClientOverview(ClientTotals):
    """Schema for a client line in the supervisor view."""
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None


class ClientProfile(ClientTotals):
    """Schema for a client with their credits."""
    client: User
    credits: List[credit_schemas.CreditWithPayments]
