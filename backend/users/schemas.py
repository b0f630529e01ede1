# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the user-management endpoints."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr

from models.user import Gender, Role


# -- Requests --------------------------------------------------------------


class UpdateUserRequest(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    role: Optional[Role] = None


# -- Responses -------------------------------------------------------------


class UserRow(BaseModel):
    """Public profile – never carries password, OTP or token hashes."""

    id: int
    full_name: str
    phone: str
    email: str
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    users: List[UserRow]
