# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""User ORM model plus the closed Role / Gender enumerations."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, Date, Enum, DateTime
from sqlalchemy.dialects import mysql
from sqlalchemy.sql import func

from database import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


# Emails match case-sensitively.  MySQL's default *_ci collation would not,
# so the column is binary-collated there.  Migration 0001 declares the same type.
EMAIL_TYPE = String(255).with_variant(mysql.VARCHAR(255, collation="utf8mb4_bin"), "mysql")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=False)
    # Unique index ix_users_email is the backstop against concurrent duplicate signups.
    email = Column(EMAIL_TYPE, unique=True, nullable=False, index=True)
    # pbkdf2_sha256 embeds the salt in the hash string
    hashed_password = Column(String(255), nullable=False)
    gender = Column(Enum(Gender, name="user_gender"), nullable=True)
    birth_date = Column(Date, nullable=True)
    role = Column(Enum(Role, name="user_role"), nullable=False, default=Role.USER, index=True)
    # False from signup until the OTP is confirmed
    is_active = Column(Boolean, nullable=False, default=False)
    # Pending activation code; otp and otp_expires_at are set and cleared together.
    otp = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    # Hash of the single currently valid refresh token – NULL means signed out.
    hashed_refresh_token = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role.value if self.role else None}>"
