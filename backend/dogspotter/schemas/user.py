"""
Dog Spotter Backend — Account & Auth Schemas
=============================================

Request and response models for registration, login and the profile routes.
Password hashes never appear in any response model.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from dogspotter.config import settings


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValueError("Invalid email address")
    return email


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=settings.password_min_length, max_length=128)
    name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class TokenValidationRequest(BaseModel):
    token: str = Field(min_length=1)


class TokenValidationResponse(BaseModel):
    valid: bool
    user_id: Optional[uuid.UUID] = None


class AuthUser(BaseModel):
    """Identity returned alongside a token and by GET /api/auth/me."""
    id: uuid.UUID
    email: str
    name: Optional[str] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    message: str
    user: AuthUser
    token: str


class MeResponse(BaseModel):
    user: AuthUser


# ══════════════════════════════════════════════════════════════════════════
# Profile
# ══════════════════════════════════════════════════════════════════════════


class UserProfile(BaseModel):
    id: uuid.UUID
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime
    dog_count: Optional[int] = Field(default=None, description="Sightings reported by this user")

    model_config = {"from_attributes": True}


class UserProfileEnvelope(BaseModel):
    message: Optional[str] = None
    user: UserProfile


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=500)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=settings.password_min_length, max_length=128)


class UserStats(BaseModel):
    total_dogs: int
    dogs_found: int
    dogs_lost: int


class UserStatsResponse(BaseModel):
    stats: UserStats
