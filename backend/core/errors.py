# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Failure taxonomy shared by the authentication engine, the authorization
policy and the user-management service.

Every domain failure is an :class:`AuthError` carrying exactly one
:class:`ErrorKind`.  The HTTP layer maps the kind to a status code in one
table (``main.py``); nothing upstream inspects messages or exception
subclasses.
"""

import enum


class ErrorKind(str, enum.Enum):
    ALREADY_EXISTS = "already_exists"    # duplicate email
    INVALID_INPUT = "invalid_input"      # short password, malformed OTP …
    NOT_FOUND = "not_found"              # unknown email / user id
    UNAUTHORIZED = "unauthorized"        # bad credentials, bad OTP, no session
    FORBIDDEN = "forbidden"              # refresh-token reuse, policy denial
    DELIVERY_FAILED = "delivery_failed"  # notification sink error
    CONFLICT = "conflict"                # storage unique-constraint violation
    INTERNAL = "internal"


class AuthError(Exception):
    """
    A typed, user-presentable failure.

    ``message`` is returned to the client verbatim, so it must never contain
    an OTP, a password, a token or a hash.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"AuthError({self.kind.value!r}, {self.message!r})"


class DeliveryError(Exception):
    """Raised by a notification sink when a message could not be handed off."""
