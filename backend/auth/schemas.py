# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from models.user import Gender


# -- Requests --------------------------------------------------------------


class SignupRequest(BaseModel):
    full_name: str
    phone: str
    email: EmailStr
    password: str
    confirm_password: str
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str  # format is checked by the engine (INVALID_INPUT, not 422)


class SigninRequest(BaseModel):
    email: EmailStr
    password: str


# -- Responses -------------------------------------------------------------


class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    message: str
    user_id: int = Field(serialization_alias="userId")
    access_token: str = Field(serialization_alias="accessToken")
    token_type: str = "bearer"
