"""Tests for user management: listing, profile reads/updates, deletion, owner seeding."""

import pytest
from pydantic import ValidationError

from core.errors import AuthError, ErrorKind
from core.security import TokenClaims
from models.user import Role
from users.schemas import UpdateUserRequest

from conftest import PASSWORD


def _claims(user) -> TokenClaims:
    return TokenClaims.for_user(user)


def _fails(kind, fn, *args) -> AuthError:
    with pytest.raises(AuthError) as exc_info:
        fn(*args)
    assert exc_info.value.kind is kind, exc_info.value
    return exc_info.value


@pytest.fixture
def cast(owner, make_active):
    """One account per role: (owner, admin, other_admin, user, other_user)."""
    return (
        owner,
        make_active("admin@x.com", Role.ADMIN),
        make_active("admin2@x.com", Role.ADMIN),
        make_active("user@x.com"),
        make_active("user2@x.com"),
    )


class TestListUsers:
    def test_owner_sees_everyone(self, user_service, cast):
        listed = user_service.list_users(_claims(cast[0]))
        assert {u.email for u in listed} == {u.email for u in cast}

    def test_admin_does_not_see_owner(self, user_service, cast):
        listed = user_service.list_users(_claims(cast[1]))
        assert "owner@x.com" not in {u.email for u in listed}
        assert len(listed) == len(cast) - 1

    def test_user_is_denied(self, user_service, cast):
        _fails(ErrorKind.FORBIDDEN, user_service.list_users, _claims(cast[3]))


class TestGetUser:
    def test_self(self, user_service, cast):
        user = cast[3]
        assert user_service.get_user(_claims(user), user.id).email == "user@x.com"

    def test_user_cannot_read_others(self, user_service, cast):
        _fails(ErrorKind.FORBIDDEN, user_service.get_user, _claims(cast[3]), cast[4].id)

    def test_user_asking_for_missing_id_is_forbidden(self, user_service, cast):
        """A USER learns nothing about which ids exist."""
        _fails(ErrorKind.FORBIDDEN, user_service.get_user, _claims(cast[3]), 999)

    def test_admin_reads_users_and_admins(self, user_service, cast):
        admin = _claims(cast[1])
        assert user_service.get_user(admin, cast[3].id).role is Role.USER
        assert user_service.get_user(admin, cast[2].id).role is Role.ADMIN

    def test_admin_cannot_read_owner(self, user_service, cast):
        _fails(ErrorKind.FORBIDDEN, user_service.get_user, _claims(cast[1]), cast[0].id)

    def test_owner_reads_anyone(self, user_service, cast):
        for user in cast:
            assert user_service.get_user(_claims(cast[0]), user.id).id == user.id

    def test_missing(self, user_service, cast):
        _fails(ErrorKind.NOT_FOUND, user_service.get_user, _claims(cast[0]), 999)


class TestUpdateUser:
    def test_profile_fields(self, user_service, cast):
        user = cast[3]
        updated = user_service.update_user(
            _claims(user), user.id, UpdateUserRequest(full_name="New Name", phone="+1")
        )
        assert updated.full_name == "New Name"
        assert updated.phone == "+1"

    def test_password_is_rehashed(self, user_service, repo, hasher, cast):
        user = cast[3]
        user_service.update_user(_claims(user), user.id, UpdateUserRequest(password="brand-new-pw"))
        stored = repo.find_by_id(user.id).hashed_password
        assert hasher.compare("brand-new-pw", stored)
        assert not hasher.compare(PASSWORD, stored)

    def test_short_password(self, user_service, cast):
        user = cast[3]
        _fails(ErrorKind.INVALID_INPUT, user_service.update_user, _claims(user), user.id,
               UpdateUserRequest(password="123"))

    def test_only_self(self, user_service, cast):
        _fails(ErrorKind.FORBIDDEN, user_service.update_user, _claims(cast[1]), cast[3].id,
               UpdateUserRequest(full_name="x"))

    def test_malformed_email(self):
        with pytest.raises(ValidationError):
            UpdateUserRequest(email="not-an-email")

    def test_email_taken(self, user_service, cast):
        user = cast[3]
        _fails(ErrorKind.ALREADY_EXISTS, user_service.update_user, _claims(user), user.id,
               UpdateUserRequest(email="user2@x.com"))

    def test_user_cannot_promote_self(self, user_service, repo, cast):
        user = cast[3]
        _fails(ErrorKind.FORBIDDEN, user_service.update_user, _claims(user), user.id,
               UpdateUserRequest(role=Role.ADMIN))
        assert repo.find_by_id(user.id).role is Role.USER

    def test_admin_can_step_down(self, user_service, cast):
        admin = cast[1]
        updated = user_service.update_user(_claims(admin), admin.id, UpdateUserRequest(role=Role.USER))
        assert updated.role is Role.USER

    def test_owner_keeps_role(self, user_service, cast):
        owner = cast[0]
        _fails(ErrorKind.FORBIDDEN, user_service.update_user, _claims(owner), owner.id,
               UpdateUserRequest(role=Role.ADMIN))

    def test_same_role_is_not_a_change(self, user_service, cast):
        user = cast[3]
        updated = user_service.update_user(_claims(user), user.id, UpdateUserRequest(role=Role.USER))
        assert updated.role is Role.USER


class TestDeleteUser:
    def test_admin_deletes_user(self, user_service, repo, cast):
        target_id = cast[3].id
        user_service.delete_user(_claims(cast[1]), target_id)
        assert repo.find_by_id(target_id) is None

    def test_admin_cannot_delete_admin(self, user_service, repo, cast):
        err = _fails(ErrorKind.FORBIDDEN, user_service.delete_user, _claims(cast[1]), cast[2].id)
        assert err.message == "ADMIN cannot delete other ADMINs"
        assert repo.find_by_id(cast[2].id) is not None

    @pytest.mark.parametrize("requester", [0, 1])
    def test_owner_is_never_deleted(self, user_service, repo, cast, requester):
        err = _fails(ErrorKind.FORBIDDEN, user_service.delete_user, _claims(cast[requester]), cast[0].id)
        assert err.message == "OWNER cannot be deleted"
        assert repo.find_owner() is not None

    def test_owner_deletes_admin(self, user_service, repo, cast):
        target_id = cast[1].id
        user_service.delete_user(_claims(cast[0]), target_id)
        assert repo.find_by_id(target_id) is None

    def test_user_cannot_delete(self, user_service, cast):
        _fails(ErrorKind.FORBIDDEN, user_service.delete_user, _claims(cast[3]), cast[4].id)

    def test_missing(self, user_service, cast):
        _fails(ErrorKind.NOT_FOUND, user_service.delete_user, _claims(cast[0]), 999)


class TestSeedOwner:
    def test_creates_active_owner(self, user_service, hasher):
        owner = user_service.seed_owner("boss@x.com", PASSWORD, "Boss")
        assert owner.role is Role.OWNER
        assert owner.is_active is True
        assert hasher.compare(PASSWORD, owner.hashed_password)

    def test_idempotent(self, user_service, repo):
        first = user_service.seed_owner("boss@x.com", PASSWORD, "Boss")
        second = user_service.seed_owner("someone-else@x.com", PASSWORD, "Other")
        assert second.id == first.id
        assert [u.email for u in repo.list(roles={Role.OWNER})] == ["boss@x.com"]

    def test_email_of_existing_account(self, user_service, make_active):
        make_active("taken@x.com")
        _fails(ErrorKind.ALREADY_EXISTS, user_service.seed_owner, "taken@x.com", PASSWORD, "Boss")

    def test_short_password(self, user_service, repo):
        _fails(ErrorKind.INVALID_INPUT, user_service.seed_owner, "boss@x.com", "123", "Boss")
        assert repo.find_owner() is None

    @pytest.mark.parametrize("email", ["not-an-email", "boss@", "boss at x.com"])
    def test_malformed_email(self, user_service, repo, email):
        _fails(ErrorKind.INVALID_INPUT, user_service.seed_owner, email, PASSWORD, "Boss")
        assert repo.find_owner() is None
        assert repo.list() == []
