# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
User lifecycle management on top of the credential store.

Every method takes the requester's verified token claims and applies the
role rules from ``auth.policy`` before touching a row.
"""

from fastapi import Depends
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from auth.policy import (
    ensure_admin_or_owner,
    ensure_can_assign_role,
    ensure_can_delete,
    ensure_can_view,
    ensure_self,
    visible_roles,
)
from core.config import Settings, get_settings
from core.errors import AuthError, ErrorKind
from core.logger import logger, redact_email
from core.security import SecretHasher, TokenClaims, get_hasher, validate_password
from database import get_db
from models.user import Role, User
from users.repository import UserRepository
from users.schemas import UpdateUserRequest

# seed_owner is called from bin/ with raw strings, not a validated request body
_EMAIL = TypeAdapter(EmailStr)


class UserService:
    def __init__(self, users: UserRepository, hasher: SecretHasher, cfg: Settings):
        self._users = users
        self._hasher = hasher
        self._cfg = cfg

    def _require(self, user_id: int) -> User:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise AuthError(ErrorKind.NOT_FOUND, "User not found")
        return user

    def list_users(self, requester: TokenClaims) -> list[User]:
        """OWNER sees everyone, ADMIN everyone but the OWNER, USER nobody."""
        return self._users.list(roles=visible_roles(requester.role))

    def get_user(self, requester: TokenClaims, user_id: int) -> User:
        if requester.role is Role.USER:
            ensure_self(requester.id, user_id)
        user = self._require(user_id)
        ensure_can_view(requester.id, requester.role, user.id, user.role)
        return user

    def update_user(self, requester: TokenClaims, user_id: int, changes: UpdateUserRequest) -> User:
        """
        Self-service profile update.  A new password is re-hashed; role
        changes follow ``ensure_can_assign_role`` and the OWNER keeps its role.
        """
        ensure_self(requester.id, user_id)
        user = self._require(user_id)
        fields = changes.model_dump(exclude_unset=True, exclude_none=True)

        new_role = fields.get("role")
        if new_role is not None and new_role is not user.role:
            if user.role is Role.OWNER:
                raise AuthError(ErrorKind.FORBIDDEN, "OWNER role cannot be changed")
            ensure_can_assign_role(requester.role, new_role)

        new_email = fields.get("email")
        if new_email is not None and new_email != user.email:
            if self._users.find_by_email(new_email) is not None:
                raise AuthError(ErrorKind.ALREADY_EXISTS, "User with this email already exists")

        if "password" in fields:
            password = fields.pop("password")
            validate_password(password, self._cfg.password_min_length)
            fields["hashed_password"] = self._hasher.hash(password)

        updated = self._users.update(user_id, **fields)
        logger.info("users: user id=%s updated %s", user_id, sorted(changes.model_fields_set - {"password"}))
        return updated

    def delete_user(self, requester: TokenClaims, user_id: int) -> None:
        ensure_admin_or_owner(requester.role)
        user = self._require(user_id)
        ensure_can_delete(requester.role, user.role)
        self._users.delete(user_id)
        logger.info("users: user id=%s deleted by user id=%s", user_id, requester.id)

    def seed_owner(self, email: str, password: str, full_name: str, phone: str = "") -> User:
        """
        Create the one OWNER account, already active.  If an OWNER exists it
        is returned unchanged; a second one is never created.
        """
        existing = self._users.find_owner()
        if existing is not None:
            logger.info("seed: owner already present (user id=%s)", existing.id)
            return existing
        try:
            email = _EMAIL.validate_python(email)
        except ValidationError as exc:
            raise AuthError(ErrorKind.INVALID_INPUT, "Invalid email address") from exc
        if self._users.find_by_email(email) is not None:
            raise AuthError(ErrorKind.ALREADY_EXISTS, "Email already belongs to a non-owner account")
        validate_password(password, self._cfg.password_min_length)

        owner = self._users.create(
            full_name=full_name,
            phone=phone,
            email=email,
            hashed_password=self._hasher.hash(password),
            role=Role.OWNER,
            is_active=True,
        )
        logger.info("seed: owner %s created (user id=%s)", redact_email(email), owner.id)
        return owner


def get_user_service(
    db: Session = Depends(get_db),
    hasher: SecretHasher = Depends(get_hasher),
    cfg: Settings = Depends(get_settings),
) -> UserService:
    """FastAPI dependency: a user service bound to the request's DB session."""
    return UserService(UserRepository(db), hasher, cfg)
