# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Role-based authorization rules.

Pure functions over {role, requester id, resource owner id}; none of them
touches the database.  Each ``ensure_*`` returns None when the action is
allowed and raises ``AuthError(FORBIDDEN)`` otherwise.  Request handlers
call these with the role from the verified access-token claims.
"""

from core.errors import AuthError, ErrorKind
from models.user import Role

_STAFF = frozenset({Role.ADMIN, Role.OWNER})


def _deny(message: str) -> None:
    raise AuthError(ErrorKind.FORBIDDEN, message)


def ensure_admin_or_owner(role: Role) -> None:
    if role not in _STAFF:
        _deny("Admin or owner access required")


def ensure_owner(role: Role) -> None:
    if role is not Role.OWNER:
        _deny("Owner access required")


def ensure_self(requester_id: int, owner_id: int) -> None:
    if requester_id != owner_id:
        _deny("You can only access your own account")


def ensure_owner_or_admin(requester_id: int, requester_role: Role, resource_owner_id: int) -> None:
    """Resource mutation: the user who owns the resource, or an ADMIN."""
    if requester_id != resource_owner_id and requester_role is not Role.ADMIN:
        _deny("You can't modify this resource")


def ensure_can_create_admin(requester_role: Role) -> None:
    if requester_role is not Role.OWNER:
        _deny("Only OWNER can create ADMIN")


def ensure_can_assign_role(requester_role: Role, new_role: Role) -> None:
    """
    Only the OWNER hands out non-USER roles, and OWNER itself is a seed-only
    role that nobody can assign.
    """
    if new_role is Role.OWNER:
        _deny("OWNER role cannot be assigned")
    if new_role is not Role.USER and requester_role is not Role.OWNER:
        _deny("Only OWNER can assign roles")


def ensure_can_delete(requester_role: Role, target_role: Role) -> None:
    if target_role is Role.OWNER:
        _deny("OWNER cannot be deleted")
    ensure_admin_or_owner(requester_role)
    if requester_role is Role.ADMIN and target_role is Role.ADMIN:
        _deny("ADMIN cannot delete other ADMINs")


def ensure_can_view(requester_id: int, requester_role: Role, target_id: int, target_role: Role) -> None:
    if requester_id == target_id or requester_role is Role.OWNER:
        return
    if requester_role is Role.ADMIN:
        if target_role is Role.OWNER:
            _deny("Cannot access owner data")
        return
    _deny("Access denied")


def visible_roles(requester_role: Role) -> frozenset:
    """Roles whose accounts *requester_role* may list."""
    if requester_role is Role.OWNER:
        return frozenset(Role)
    if requester_role is Role.ADMIN:
        return frozenset({Role.USER, Role.ADMIN})
    _deny("You are not allowed to view users")
