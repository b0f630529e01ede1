# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – signup, OTP activation, signin, refresh, signout, me.

Transport notes
---------------
* The refresh token only ever travels in the ``refreshToken`` cookie
  (HttpOnly, SameSite=strict, scoped to /auth).  It is never in a body.
* The access token is returned in the JSON body for use as a bearer header.
* Engine failures are ``AuthError`` and are turned into responses by the
  handler registered in ``main.py``; nothing here catches them.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response, status

from auth.schemas import (
    MessageResponse,
    SigninRequest,
    SignupRequest,
    TokenResponse,
    VerifyOtpRequest,
)
from auth.service import AuthService, get_auth_service
from core.config import Settings, get_settings
from core.security import TokenClaims, get_current_user
from users.schemas import UserRow
from users.service import UserService, get_user_service

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "refreshToken"
_COOKIE_PATH = "/auth"


def _set_refresh_cookie(response: Response, token: str, cfg: Settings) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        max_age=cfg.cookie_max_age_seconds,
        path=_COOKIE_PATH,
        httponly=True,
        secure=cfg.cookie_secure,
        samesite="strict",
    )


# ---------------------------------------------------------------------------
# POST /auth/signup
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)):
    """Register a USER account; it stays inactive until the mailed OTP is confirmed."""
    return MessageResponse(message=service.signup(body))


# ---------------------------------------------------------------------------
# POST /auth/verify-otp
# ---------------------------------------------------------------------------


@router.post("/verify-otp", response_model=MessageResponse)
def verify_otp(body: VerifyOtpRequest, service: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=service.verify_otp(body.email, body.otp))


# ---------------------------------------------------------------------------
# POST /auth/signin
# ---------------------------------------------------------------------------


@router.post("/signin", response_model=TokenResponse)
def signin(
    body: SigninRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    """Authenticate; access token in the body, refresh token in the cookie."""
    result = service.signin(body.email, body.password)
    _set_refresh_cookie(response, result.refresh_token, cfg)
    return TokenResponse(
        message="User signed in",
        user_id=result.user_id,
        access_token=result.access_token,
    )


# ---------------------------------------------------------------------------
# POST /auth/refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    service: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    """Rotate the refresh cookie and hand out a fresh access token."""
    result = service.refresh(refresh_token)
    _set_refresh_cookie(response, result.refresh_token, cfg)
    return TokenResponse(
        message="User accessToken refreshed",
        user_id=result.user_id,
        access_token=result.access_token,
    )


# ---------------------------------------------------------------------------
# POST /auth/signout
# ---------------------------------------------------------------------------


@router.post("/signout", response_model=MessageResponse)
def signout(
    response: Response,
    current_user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    """Revoke the caller's session and clear the cookie.  Safe to repeat."""
    service.signout(current_user.id)
    response.delete_cookie(
        REFRESH_COOKIE,
        path=_COOKIE_PATH,
        httponly=True,
        secure=cfg.cookie_secure,
        samesite="strict",
    )
    return MessageResponse(message="User signed out")


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserRow)
def me(
    current_user: TokenClaims = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Return the authenticated user's public profile (no secrets)."""
    return users.get_user(current_user, current_user.id)
