# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Authentication engine – the account / session state machine.

    signup ──► pending (is_active=False, otp set) ──verify_otp──► active
    signin ──► hashed_refresh_token = H(rt1)
    refresh(rt1) ──► hashed_refresh_token = H(rt2)   rt1 is dead from here on
    signout ──► hashed_refresh_token = NULL          every refresh token is dead

Security notes
--------------
* Neither the OTP, the password, the refresh token nor any hash is ever
  logged or placed in an error message.
* Hashes are computed before the write that stores them, and every
  transition that could race (OTP consumption, refresh rotation) is one
  conditional UPDATE whose affected-row count decides the winner.
* A refresh token is verified (signature + expiry, refresh secret) BEFORE
  its claims are used to look anything up.
* Presenting a refresh token that no longer matches the stored hash is
  treated as reuse of a stolen or superseded token: the request is refused
  with FORBIDDEN and the session is revoked.
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Callable, NamedTuple, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from auth.mailer import NotificationSink, get_notification_sink
from auth.policy import ensure_can_create_admin
from auth.schemas import SignupRequest
from core.config import Settings, get_settings
from core.errors import AuthError, DeliveryError, ErrorKind
from core.logger import logger, redact_email
from core.otp import OtpGenerator, is_well_formed
from core.security import (
    SecretHasher,
    TokenClaims,
    TokenIssuer,
    TokenVerificationError,
    get_hasher,
    get_token_issuer,
    validate_password,
)
from database import get_db
from models.user import Role, User
from users.repository import UserRepository

SIGNUP_MESSAGE = "Registration successful. Enter the code sent to your email to activate the account."
OTP_VERIFIED_MESSAGE = "OTP verified. Account activated."

_BAD_OTP = "Invalid or expired OTP"
_BAD_REFRESH = "Invalid refresh token"


class SigninResult(NamedTuple):
    user_id: int
    access_token: str
    refresh_token: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Some backends (SQLite) hand timestamps back without tzinfo.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        hasher: SecretHasher,
        tokens: TokenIssuer,
        notifier: NotificationSink,
        cfg: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._users = users
        self._hasher = hasher
        self._tokens = tokens
        self._notifier = notifier
        self._cfg = cfg
        self._clock = clock or _utcnow
        self._otp = OtpGenerator(ttl=timedelta(minutes=cfg.otp_expire_minutes), clock=self._clock)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def signup(self, data: SignupRequest, role: Role = Role.USER) -> str:
        """
        Create an inactive account and mail it an activation code.

        The row (with its pending OTP) is committed before delivery is
        attempted; a delivery failure is reported as DELIVERY_FAILED and
        leaves the account in place, still pending.
        """
        if self._users.find_by_email(data.email) is not None:
            raise AuthError(ErrorKind.ALREADY_EXISTS, "User already exists")
        validate_password(data.password, self._cfg.password_min_length)
        if data.password != data.confirm_password:
            raise AuthError(ErrorKind.INVALID_INPUT, "Passwords do not match")

        hashed_password = self._hasher.hash(data.password)
        otp = self._otp.generate()
        user = self._users.create(
            full_name=data.full_name,
            phone=data.phone,
            email=data.email,
            hashed_password=hashed_password,
            gender=data.gender,
            birth_date=data.birth_date,
            role=role,
            is_active=False,
            otp=otp.code,
            otp_expires_at=otp.expires_at,
        )
        user_id = user.id
        logger.info("signup: user id=%s role=%s created, activation pending", user_id, role.value)

        try:
            self._notifier.send_otp(user.email, user.full_name, otp.code)
        except DeliveryError as exc:
            logger.warning("signup: activation code for user id=%s not delivered", user_id)
            raise AuthError(
                ErrorKind.DELIVERY_FAILED,
                "Account created but the activation code could not be sent",
            ) from exc
        return SIGNUP_MESSAGE

    def create_admin(self, data: SignupRequest, requester_role: Role) -> str:
        """OWNER-only variant of :meth:`signup` producing a pending ADMIN."""
        ensure_can_create_admin(requester_role)
        return self.signup(data, role=Role.ADMIN)

    def verify_otp(self, email: str, code: str) -> str:
        """
        Activate the account if *code* matches and has not expired.

        Expiry is strict ``now > otp_expires_at``: a code checked exactly at
        its expiry instant is still accepted.  A successful check consumes
        the code, so replaying it fails.
        """
        if not is_well_formed(code):
            raise AuthError(ErrorKind.INVALID_INPUT, "OTP must be 6 digits")

        user = self._users.find_by_email(email)
        if user is None:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found")
        if not user.otp or user.otp_expires_at is None:
            raise AuthError(ErrorKind.INVALID_INPUT, "OTP not found or expired")

        user_id = user.id
        if not hmac.compare_digest(user.otp, code) or self._clock() > _as_utc(user.otp_expires_at):
            logger.info("otp: rejected code for user id=%s", user_id)
            raise AuthError(ErrorKind.UNAUTHORIZED, _BAD_OTP)

        consumed = self._users.update_many(
            [User.id == user_id, User.otp == code],
            is_active=True,
            otp=None,
            otp_expires_at=None,
        )
        if consumed == 0:
            # a concurrent verification got there first
            raise AuthError(ErrorKind.UNAUTHORIZED, _BAD_OTP)

        logger.info("otp: user id=%s activated", user_id)
        return OTP_VERIFIED_MESSAGE

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def signin(self, email: str, password: str) -> SigninResult:
        """
        Check the password and open a session.  Any refresh token issued
        earlier for this user stops working, because its hash is replaced.
        """
        user = self._users.find_by_email(email)
        if user is None:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found")
        if not self._hasher.compare(password, user.hashed_password):
            logger.info("signin: bad password for %s", redact_email(email))
            raise AuthError(ErrorKind.UNAUTHORIZED, "Email or password is incorrect")
        if not user.is_active and not self._cfg.allow_inactive_signin:
            raise AuthError(ErrorKind.UNAUTHORIZED, "Account is not activated")

        user_id = user.id
        pair = self._tokens.issue_pair(TokenClaims.for_user(user))
        hashed = self._hasher.hash(pair.refresh_token)
        self._users.update_many([User.id == user_id], hashed_refresh_token=hashed)

        logger.info("signin: user id=%s signed in", user_id)
        return SigninResult(user_id, pair.access_token, pair.refresh_token)

    def refresh(self, refresh_token: Optional[str]) -> SigninResult:
        """
        Exchange a refresh token for a new pair (rotation).

        * missing token                       → UNAUTHORIZED "No refresh token"
        * bad signature / expired / no id     → UNAUTHORIZED "Invalid token payload"
        * unknown user or no open session     → UNAUTHORIZED "Access Denied"
        * token does not match stored hash    → FORBIDDEN   "Invalid refresh token"
        """
        if not refresh_token:
            raise AuthError(ErrorKind.UNAUTHORIZED, "No refresh token")

        try:
            claims = self._tokens.verify_refresh(refresh_token)
        except TokenVerificationError as exc:
            claimed = self._tokens.decode_unverified(refresh_token).get("id")
            logger.warning("refresh: rejected token claiming user id=%r (%s)", claimed, exc)
            raise AuthError(ErrorKind.UNAUTHORIZED, "Invalid token payload") from exc

        user = self._users.find_by_id(claims.id)
        if user is None or user.hashed_refresh_token is None:
            logger.info("refresh: no open session for user id=%s", claims.id)
            raise AuthError(ErrorKind.UNAUTHORIZED, "Access Denied")

        user_id = user.id
        stored = user.hashed_refresh_token
        if not self._hasher.compare(refresh_token, stored):
            revoked = self._users.update_many(
                [User.id == user_id, User.hashed_refresh_token == stored],
                hashed_refresh_token=None,
            )
            logger.warning(
                "refresh: superseded token presented for user id=%s, session %s",
                user_id,
                "revoked" if revoked else "already rotated",
            )
            raise AuthError(ErrorKind.FORBIDDEN, _BAD_REFRESH)

        # re-read role / activation from the row, not from the old token
        pair = self._tokens.issue_pair(TokenClaims.for_user(user))
        new_hash = self._hasher.hash(pair.refresh_token)
        swapped = self._users.update_many(
            [User.id == user_id, User.hashed_refresh_token == stored],
            hashed_refresh_token=new_hash,
        )
        if swapped == 0:
            logger.warning("refresh: lost rotation race for user id=%s", user_id)
            raise AuthError(ErrorKind.FORBIDDEN, _BAD_REFRESH)

        logger.info("refresh: rotated session for user id=%s", user_id)
        return SigninResult(user_id, pair.access_token, pair.refresh_token)

    def signout(self, user_id: int) -> None:
        """Close the session.  Calling it with no open session is a no-op."""
        cleared = self._users.update_many(
            [User.id == user_id, User.hashed_refresh_token.isnot(None)],
            hashed_refresh_token=None,
        )
        logger.info("signout: user id=%s%s", user_id, "" if cleared else " (no open session)")


def get_auth_service(
    db: Session = Depends(get_db),
    hasher: SecretHasher = Depends(get_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
    notifier: NotificationSink = Depends(get_notification_sink),
    cfg: Settings = Depends(get_settings),
) -> AuthService:
    """FastAPI dependency: an engine bound to the request's DB session."""
    return AuthService(UserRepository(db), hasher, tokens, notifier, cfg)
