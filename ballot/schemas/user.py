"""
User schemas for API request/response validation.
"""
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from ballot.schemas.common import CamelModel


class UserRegister(CamelModel):
    """Schema for registering a new user."""

    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure name is not whitespace only."""
        if len(v.strip()) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v.strip()


class UserLogin(CamelModel):
    """Schema for logging in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class UserProfileUpdate(CamelModel):
    """
    Schema for updating the current user's profile.

    Changing the password requires the current password.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=6, max_length=72)

    @model_validator(mode="after")
    def require_current_password(self) -> "UserProfileUpdate":
        if self.new_password and not self.current_password:
            raise ValueError("Current password is required to set a new password")
        return self


class UserResponse(CamelModel):
    """Public user data."""

    id: str
    name: str
    email: str
    created_at: datetime


class AuthResponse(CamelModel):
    """Token issued by register, login and refresh."""

    message: str
    token: str
    user: UserResponse
