"""Schemas for users, auth and moderation."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BeforeValidator, EmailStr, Field, field_validator, model_validator

from placer.core.config import settings
from placer.models.user import User
from placer.schemas.common import CamelModel, Pagination


def _lower_email(value: str) -> str:
    return value.strip().lower() if isinstance(value, str) else value


NormalizedEmail = Annotated[EmailStr, BeforeValidator(_lower_email)]


class SignupRequest(CamelModel):
    first_name: str = Field(..., max_length=50)
    last_name: str = Field("", max_length=50)
    email: NormalizedEmail
    password: str

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("First name is required")
        return value

    @field_validator("last_name")
    @classmethod
    def strip_last_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < settings.password_min_length:
            raise ValueError(f"Password must be at least {settings.password_min_length} characters")
        return value


class LoginRequest(CamelModel):
    # a malformed address is just a failed login, not a validation error
    email: Annotated[str, BeforeValidator(_lower_email)]
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_length(cls, value: str) -> str:
        if len(value) < settings.password_min_length:
            raise ValueError(f"New password must be at least {settings.password_min_length} characters")
        return value

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ProfileUpdate(CamelModel):
    """Validated profile form; ``None`` means "leave unchanged"."""

    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)

    @field_validator("first_name")
    @classmethod
    def first_name_not_empty(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("First name cannot be empty")
        return value

    @field_validator("last_name")
    @classmethod
    def strip_last_name(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None


class UserOut(CamelModel):
    """Full user record as its owner (or an admin) sees it."""

    id: str
    first_name: str
    last_name: str
    email: str
    is_approved: bool
    role: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    places_count: int
    joined_at: datetime
    last_login_at: Optional[datetime] = None
    created_at: datetime


class UserPublic(CamelModel):
    id: str
    first_name: str
    last_name: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    role: str
    places_count: int
    joined_at: datetime


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserOut


class UserResponse(CamelModel):
    user: UserOut


class UserListResponse(CamelModel):
    users: list[UserOut]
    pagination: Pagination


def user_out(user: User) -> UserOut:
    return UserOut.model_validate(user)
