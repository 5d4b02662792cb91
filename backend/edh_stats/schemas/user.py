"""
Pydantic schemas for User entity and authentication.
"""
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import datetime

from edh_stats.core import validators


class UserCreate(BaseModel):
    """Schema for user registration."""
    username: str
    password: str
    email: Optional[EmailStr] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        return validators.normalize_username(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validators.check_password_strength(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validators.normalize_email(v)


class UserUpdate(BaseModel):
    """Schema for profile / username update. Only supplied fields change."""
    username: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        if v is None:
            raise ValueError("Username cannot be empty")
        return validators.normalize_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validators.normalize_email(v)


class PasswordChange(BaseModel):
    """Schema for password change."""
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, v):
        return validators.check_password_strength(v)


class UserLogin(BaseModel):
    """Schema for user login."""
    username: str
    password: str
    remember: bool = False

    @field_validator("username")
    @classmethod
    def lower_username(cls, v):
        return v.strip().lower()


class UserResponse(BaseModel):
    """Schema for user response. Never carries the password hash."""
    id: int
    username: str
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TokenClaims(BaseModel):
    """Verified contents of a bearer token."""
    user_id: int
    username: str
    issued_at: int
    expires_at: int
    ceiling: int


class AuthSession(BaseModel):
    """Authenticated user plus the token proving it."""
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
