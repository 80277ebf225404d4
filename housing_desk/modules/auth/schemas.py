"""
Auth Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from housing_desk.modules.auth.models import UserRole


class LoginRequest(BaseModel):
    """Login credentials."""
    login: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    """Issued bearer token."""
    access_token: str
    token_type: str = "bearer"
    user: "UserResponse"


class UserCreate(BaseModel):
    """Schema for creating a user (staff only)."""
    login: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    email: str | None = Field(None, max_length=255)
    role: UserRole = UserRole.RESIDENT
    address: str | None = Field(None, max_length=500)
    apartment: str | None = Field(None, max_length=20)
    building: str | None = Field(None, max_length=50)


class UserResponse(BaseModel):
    """User response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    login: str
    name: str
    phone: str | None
    email: str | None
    role: str
    address: str | None
    apartment: str | None
    building: str | None
    is_active: bool
    created_at: datetime


TokenResponse.model_rebuild()
