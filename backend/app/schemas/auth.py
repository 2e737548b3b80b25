"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication and profile endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole


class UserRegister(BaseModel):
    """
    Schema for user registration.

    Default role is SENDER. ADMIN cannot be self-registered.
    """
    email: EmailStr = Field(..., description="User email address")
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    password: str = Field(..., min_length=6, description="Password (min 6 characters)")
    role: Optional[UserRole] = Field(default=UserRole.SENDER, description="User role (defaults to sender)")
    full_name: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)


class UserLogin(BaseModel):
    """Login with either username or email."""
    username: str = Field(..., description="Username or email")
    password: str = Field(..., description="Password")


class TokenResponse(BaseModel):
    """Returned by successful login/register operations."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="User role")
    landing_route: str = Field(..., description="Dashboard path for this role")


class UserResponse(BaseModel):
    """Current user profile."""
    id: int
    email: str
    username: str
    role: UserRole
    full_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    wallet_address: Optional[str] = None
    is_active: bool
    is_superuser: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    wallet_address: Optional[str] = Field(None, max_length=100)


class LandingRouteResponse(BaseModel):
    role: Optional[str]
    path: str
