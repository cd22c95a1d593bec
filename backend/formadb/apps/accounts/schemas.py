# backend/formadb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from .models import Role, UserStatus


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserRead(BaseModel):
    """
    Public representation of a user; the password hash is never exposed.
    """

    id: str
    name: str
    email: EmailStr
    role: Role
    status: UserStatus
    profile_image: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: str
    name: str
    email: EmailStr

    class Config:
        from_attributes = True


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Optional[str] = Field(
        None,
        description="Requested role; legacy labels (formateur, Responsable) are accepted.",
    )


class AdminUserCreate(SignupRequest):
    status: UserStatus = UserStatus.ACTIVE


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[str] = None
    status: Optional[UserStatus] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    profile_image: Optional[str] = None


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
