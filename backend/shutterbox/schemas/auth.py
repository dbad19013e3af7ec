"""
Shutterbox Backend — Auth & User Schemas
==========================================

What:  Request/response models for registration, login and the /me endpoints.
Why:   Input rules (username shape, password strength, email format) are
       enforced before any service code runs; FastAPI answers 422 on failure.

Field rules:
    username    3-50 chars, letters / digits / underscore
    email       something@something.tld, stored trimmed and lower-cased
    password    8-72 chars with at least one letter and one digit
                (72 is bcrypt's input limit)
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

USERNAME_PATTERN = r"^[a-zA-Z0-9_]{3,50}$"
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not EMAIL_RE.match(email):
        raise ValueError("Please enter a valid email address")
    return email


def _check_password_strength(value: str) -> str:
    if not re.search(r"[A-Za-z]", value) or not re.search(r"\d", value):
        raise ValueError("Password must include at least one letter and one number")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(pattern=USERNAME_PATTERN, description="Public handle")
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: str = Field(max_length=254)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=256)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        # No format check: an unknown email must fail as "Invalid credentials"
        return v.strip().lower()


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=256)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UpdateProfileRequest(BaseModel):
    """Partial update: only fields present in the body are changed."""

    username: Optional[str] = Field(default=None, pattern=USERNAME_PATTERN)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    profile_picture: Optional[str] = Field(default=None, max_length=2048)

    @field_validator("profile_picture")
    @classmethod
    def validate_profile_picture(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not re.match(r"^https?://\S+$", v):
            raise ValueError("Invalid URL")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TokenResponse(BaseModel):
    token: str = Field(description="Signed identity token, valid for 7 days")
    message: str = Field(default="Login successful")


class UserResponse(BaseModel):
    """Public view of an account. Never includes the password hash."""

    id: uuid.UUID
    username: str
    first_name: str
    last_name: str
    email: str
    role: str
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuthCheckResponse(BaseModel):
    is_authenticated: bool = True
    user: UserResponse
