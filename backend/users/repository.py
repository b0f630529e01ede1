# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Credential-store access for the ``users`` table.

All reads and writes of User rows by the authentication engine and the
user-management service go through :class:`UserRepository`.  Every write
commits immediately; state transitions that must not race are expressed as
a single conditional UPDATE via :meth:`UserRepository.update_many`, whose
affected-row count tells the caller whether it won.
"""

from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import AuthError, ErrorKind
from core.logger import logger
from models.user import Role, User

_DUPLICATE = "User with this email already exists"


class UserRepository:
    def __init__(self, db: Session):
        self._db = db

    # -- reads ---------------------------------------------------------------

    def find_by_email(self, email: str) -> Optional[User]:
        return self._db.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self._db.query(User).filter(User.id == user_id).first()

    def find_owner(self) -> Optional[User]:
        return self._db.query(User).filter(User.role == Role.OWNER).first()

    def list(self, roles: Optional[Iterable[Role]] = None) -> list[User]:
        q = self._db.query(User)
        if roles is not None:
            q = q.filter(User.role.in_(list(roles)))
        return q.order_by(User.id).all()

    # -- writes --------------------------------------------------------------

    def create(self, **fields) -> User:
        """
        Insert a row.  A unique-constraint violation (two signups racing on
        the same email) surfaces as ``CONFLICT``.
        """
        user = User(**fields)
        self._db.add(user)
        self._commit()
        self._db.refresh(user)
        return user

    def update(self, user_id: int, **fields) -> Optional[User]:
        """Apply *fields* to the row and return it, or None if it is gone."""
        user = self.find_by_id(user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        self._commit()
        self._db.refresh(user)
        return user

    def update_many(self, criteria, **fields) -> int:
        """
        ``UPDATE users SET <fields> WHERE <criteria>`` in one statement.

        *criteria* is a sequence of SQLAlchemy boolean expressions, e.g.
        ``[User.id == 3, User.hashed_refresh_token == old_hash]``.
        Returns the number of rows changed.
        """
        stmt = (
            update(User)
            .where(*criteria)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        result = self._db.execute(stmt)
        self._db.commit()
        return result.rowcount

    def delete(self, user_id: int) -> bool:
        user = self.find_by_id(user_id)
        if user is None:
            return False
        self._db.delete(user)
        self._db.commit()
        return True

    # -- helpers -------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            logger.warning("users: integrity violation on commit: %s", exc.orig)
            raise AuthError(ErrorKind.CONFLICT, _DUPLICATE) from exc
