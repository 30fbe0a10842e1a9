"""User model for the database."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum, func
from sqlalchemy.orm import relationship

from components.core.database import Base


class UserRole(str, enum.Enum):
    CLIENT = "CLIENT"
    SUPERVISOR = "SUPERVISOR"
    ADMINISTRATOR = "ADMINISTRATOR"


class User(Base):
    """User model representing a client or a staff member."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # Hashed password
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CLIENT, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationship with Credits
    credits = relationship("Credit", back_populates="user", foreign_keys="Credit.user_id")
