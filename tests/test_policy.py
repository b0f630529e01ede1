"""Tests for the role-based authorization rules."""

import pytest

from auth import policy
from core.errors import AuthError, ErrorKind
from models.user import Role


def _denied(fn, *args):
    with pytest.raises(AuthError) as exc_info:
        fn(*args)
    assert exc_info.value.kind is ErrorKind.FORBIDDEN
    return exc_info.value


class TestAdminOrOwner:
    def test_staff_allowed(self):
        policy.ensure_admin_or_owner(Role.ADMIN)
        policy.ensure_admin_or_owner(Role.OWNER)

    def test_user_denied(self):
        _denied(policy.ensure_admin_or_owner, Role.USER)


class TestSelfAndResourceOwner:
    def test_self(self):
        policy.ensure_self(3, 3)
        _denied(policy.ensure_self, 3, 4)

    def test_resource_owner_or_admin(self):
        policy.ensure_owner_or_admin(3, Role.USER, 3)
        policy.ensure_owner_or_admin(9, Role.ADMIN, 3)
        _denied(policy.ensure_owner_or_admin, 9, Role.USER, 3)
        # OWNER is not implicitly a resource owner
        _denied(policy.ensure_owner_or_admin, 9, Role.OWNER, 3)


class TestRoleAssignment:
    def test_only_owner_creates_admin(self):
        policy.ensure_can_create_admin(Role.OWNER)
        _denied(policy.ensure_can_create_admin, Role.ADMIN)
        _denied(policy.ensure_can_create_admin, Role.USER)

    def test_anyone_may_keep_user_role(self):
        for requester in Role:
            policy.ensure_can_assign_role(requester, Role.USER)

    def test_only_owner_assigns_admin(self):
        policy.ensure_can_assign_role(Role.OWNER, Role.ADMIN)
        _denied(policy.ensure_can_assign_role, Role.ADMIN, Role.ADMIN)
        _denied(policy.ensure_can_assign_role, Role.USER, Role.ADMIN)

    def test_owner_role_never_assignable(self):
        for requester in Role:
            _denied(policy.ensure_can_assign_role, requester, Role.OWNER)


class TestDeletion:
    @pytest.mark.parametrize("requester", [Role.ADMIN, Role.OWNER])
    def test_staff_delete_users(self, requester):
        policy.ensure_can_delete(requester, Role.USER)

    def test_owner_deletes_admin(self):
        policy.ensure_can_delete(Role.OWNER, Role.ADMIN)

    def test_admin_cannot_delete_admin(self):
        err = _denied(policy.ensure_can_delete, Role.ADMIN, Role.ADMIN)
        assert "ADMIN" in err.message

    @pytest.mark.parametrize("requester", list(Role))
    def test_owner_never_deletable(self, requester):
        err = _denied(policy.ensure_can_delete, requester, Role.OWNER)
        assert err.message == "OWNER cannot be deleted"

    def test_user_deletes_nobody(self):
        _denied(policy.ensure_can_delete, Role.USER, Role.USER)


class TestVisibility:
    def test_view_rules(self):
        policy.ensure_can_view(5, Role.USER, 5, Role.USER)
        policy.ensure_can_view(1, Role.OWNER, 5, Role.ADMIN)
        policy.ensure_can_view(2, Role.ADMIN, 5, Role.USER)
        _denied(policy.ensure_can_view, 2, Role.ADMIN, 1, Role.OWNER)
        _denied(policy.ensure_can_view, 5, Role.USER, 6, Role.USER)

    def test_visible_roles(self):
        assert policy.visible_roles(Role.OWNER) == frozenset(Role)
        assert Role.OWNER not in policy.visible_roles(Role.ADMIN)
        _denied(policy.visible_roles, Role.USER)
