# backend/orgdb/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from orgdb.schemas import RequestModel

from .models import Capability


# ---------------------------------------------------------------------------
# ROLES
# ---------------------------------------------------------------------------


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    capabilities: List[Capability] = []


# ---------------------------------------------------------------------------
# USERS
# ---------------------------------------------------------------------------


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: Optional[str] = None
    email: str
    phone_number: Optional[str] = None
    role_id: Optional[int] = None
    zone_id: Optional[str] = None
    group_id: Optional[str] = None
    sector_id: Optional[int] = None
    is_active: bool
    is_superuser: bool
    must_change_password: bool
    created_at: datetime


class CurrentUserRead(UserRead):
    capabilities: List[Capability] = []


class ProvisionedUserRead(UserRead):
    """
    A user created by a zone / group batch.

    `temporary_password` is only present when the server generated the
    password; it is never returned again.
    """

    temporary_password: Optional[str] = None


class UserProvision(RequestModel):
    """One entry of the `users` array in zone / group creation payloads."""

    username: str = Field(min_length=1, max_length=128)
    email: EmailStr
    phone_number: Optional[str] = Field(default=None, max_length=64)
    sector_name: str = Field(min_length=1, max_length=255)
    role_id: Optional[int] = None
    password: Optional[str] = Field(default=None, min_length=8)


# ---------------------------------------------------------------------------
# AUTH
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class PasswordChange(RequestModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)
