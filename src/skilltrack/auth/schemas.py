"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

Role = Literal["learner", "mentor", "admin"]


class _EmailNormalized(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SignupRequest(_EmailNormalized):
    full_name: str = Field(..., min_length=2, max_length=200)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            msg = "full_name must be at least 2 characters"
            raise ValueError(msg)
        return v


class LoginRequest(_EmailNormalized):
    password: str = Field(..., min_length=1, max_length=128)


class RequestPasswordResetRequest(_EmailNormalized):
    pass


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=10)
    new_password: str = Field(..., min_length=6, max_length=128)


class CreateUserRequest(_EmailNormalized):
    """Admin-side user creation; any role."""

    password: str = Field(..., min_length=6, max_length=128)
    role: Role
    full_name: str = Field(..., min_length=2, max_length=200)


class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    full_name: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


class OkResponse(BaseModel):
    ok: bool = True
