"""User account management schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from stockroom.models.user import UserRole
from stockroom.schemas.auth import UserResponse


class UserCreate(BaseModel):
    """Schema for an administrator creating an account."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    role: UserRole = UserRole.LECTURER


class RegisterRequest(BaseModel):
    """Self-service sign-up. The account is always a lecturer."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserDetailResponse(UserResponse):
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserListResponse(BaseModel):
    items: list[UserDetailResponse]
    total: int
    page: int
    page_size: int
