"""Core schemas for the application."""

from pydantic import BaseModel


class HealthCheck(BaseModel):
    """Schema for health check response."""
    service_name: str
    version: str
    status: str


class Message(BaseModel):
    """Schema for plain acknowledgement responses."""
    message: str
