# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Secret hashing / verification            (passlib pbkdf2_sha256)
2. Access / refresh JWT issuing & checking  (PyJWT / HS256)
3. FastAPI dependency guards                (get_current_user, require_active,
                                             require_admin, require_owner)
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, ValidationError

from auth.policy import ensure_admin_or_owner, ensure_owner
from core.config import Settings, get_settings
from core.errors import AuthError, ErrorKind
from models.user import Role

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – passwords and refresh tokens
# ---------------------------------------------------------------------------
# The salt is random per hash and embedded in the hash string, so hashing
# the same refresh token twice never yields the same stored value.
# ---------------------------------------------------------------------------


class SecretHasher:
    """One-way salted hashing of passwords and refresh tokens."""

    def __init__(self, rounds: int = 600_000):
        self._handler = _pbkdf2.using(rounds=rounds)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SecretHasher":
        return cls(rounds=cfg.password_hash_rounds)

    def hash(self, plain: str) -> str:
        """Return the full passlib hash string  e.g. "$pbkdf2-sha256$..."."""
        return self._handler.hash(plain)

    def compare(self, plain: str, hashed: str) -> bool:
        """
        Constant-time verification of *plain* against a hash produced by
        :meth:`hash`.  A malformed stored hash raises ``ValueError``.
        """
        return self._handler.verify(plain, hashed)


def validate_password(plain: str, min_length: int) -> None:
    """Raise INVALID_INPUT if *plain* does not meet the minimum policy."""
    if len(plain) < min_length:
        raise AuthError(
            ErrorKind.INVALID_INPUT,
            f"Password must be at least {min_length} characters long",
        )


# ---------------------------------------------------------------------------
# 2.  JWT – access and refresh tokens
# ---------------------------------------------------------------------------


class TokenClaims(BaseModel):
    """Identity carried inside both tokens; trusted only after verification."""

    id: int
    email: str
    role: Role
    is_active: bool

    model_config = {"frozen": True}

    @classmethod
    def for_user(cls, user) -> "TokenClaims":
        return cls(id=user.id, email=user.email, role=user.role, is_active=user.is_active)


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


class TokenVerificationError(Exception):
    """Signature, expiry or payload check failed."""


class TokenIssuer:
    """
    Signs and verifies the two token kinds.  Access and refresh tokens use
    different secrets so one can never be presented as the other.
    """

    algorithm = "HS256"

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, cfg: Settings) -> "TokenIssuer":
        return cls(
            access_secret=cfg.access_token_secret,
            refresh_secret=cfg.refresh_token_secret,
            access_ttl=timedelta(minutes=cfg.access_token_expire_minutes),
            refresh_ttl=timedelta(days=cfg.refresh_token_expire_days),
        )

    def sign(self, claims: dict, secret: str, ttl: timedelta) -> str:
        """
        Sign *claims* with HS256.  ``iat``, ``exp`` and a random ``jti`` are
        added, so two tokens for the same claims are never equal.
        """
        now = datetime.now(timezone.utc)
        to_encode = dict(claims)
        to_encode["iat"] = now
        to_encode["exp"] = now + ttl
        to_encode["jti"] = secrets.token_hex(16)
        return _jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def verify(self, token: str, secret: str) -> dict:
        """Check signature and expiry; return the raw payload."""
        try:
            return _jwt.decode(token, secret, algorithms=[self.algorithm])
        except _jwt.ExpiredSignatureError as exc:
            raise TokenVerificationError("Token has expired") from exc
        except _jwt.InvalidTokenError as exc:
            raise TokenVerificationError("Invalid token") from exc

    def decode_unverified(self, token: str) -> dict:
        """
        Read the payload WITHOUT checking signature or expiry.  The result is
        attacker-controlled; use it for diagnostics only, never for access
        decisions.  Returns ``{}`` for anything that is not a JWT.
        """
        try:
            return _jwt.decode(token, options={"verify_signature": False})
        except _jwt.InvalidTokenError:
            return {}

    def issue_pair(self, claims: TokenClaims) -> TokenPair:
        payload = claims.model_dump(mode="json")
        return TokenPair(
            access_token=self.sign(payload, self.access_secret, self.access_ttl),
            refresh_token=self.sign(payload, self.refresh_secret, self.refresh_ttl),
        )

    def verify_access(self, token: str) -> TokenClaims:
        return self._claims(self.verify(token, self.access_secret))

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._claims(self.verify(token, self.refresh_secret))

    @staticmethod
    def _claims(payload: dict) -> TokenClaims:
        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as exc:
            raise TokenVerificationError("Invalid token payload") from exc


def get_token_issuer(cfg: Settings = Depends(get_settings)) -> TokenIssuer:
    """Dependency: an issuer built from the request's settings."""
    return TokenIssuer.from_settings(cfg)


def get_hasher(cfg: Settings = Depends(get_settings)) -> SecretHasher:
    """Dependency: a hasher built from the request's settings."""
    return SecretHasher.from_settings(cfg)


# ---------------------------------------------------------------------------
# 3.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the actual login endpoint is POST /auth/signin (JSON body).  auto_error is
# off so a missing header gets the same AuthError envelope as a bad token.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/signin", auto_error=False)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """
    Dependency: verify the bearer access token and return its claims.
    The claims are the only source of identity and role for the request.

    Raises UNAUTHORIZED if the token is missing, invalid or expired.
    """
    if not token:
        raise AuthError(ErrorKind.UNAUTHORIZED, "Not authenticated")
    try:
        return issuer.verify_access(token)
    except TokenVerificationError as exc:
        raise AuthError(ErrorKind.UNAUTHORIZED, str(exc)) from exc


def require_active(current_user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
    """
    Dependency: wraps :func:`get_current_user` and additionally asserts the
    account confirmed its OTP.  Raises FORBIDDEN otherwise.
    """
    if not current_user.is_active:
        raise AuthError(ErrorKind.FORBIDDEN, "Account is not activated")
    return current_user


def require_admin(current_user: TokenClaims = Depends(require_active)) -> TokenClaims:
    """Dependency: ADMIN or OWNER role.  Raises 403 otherwise."""
    ensure_admin_or_owner(current_user.role)
    return current_user


def require_owner(current_user: TokenClaims = Depends(require_active)) -> TokenClaims:
    """Dependency: OWNER role.  Raises 403 otherwise."""
    ensure_owner(current_user.role)
    return current_user
