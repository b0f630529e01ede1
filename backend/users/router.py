# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
User-management endpoints.

Role gates
----------
* list / delete          – ADMIN or OWNER (``require_admin``)
* create-admin           – OWNER only (``require_owner``)
* get / update           – any activated account; the service applies the
                           self / visibility rules from ``auth.policy``
"""

from fastapi import APIRouter, Depends, status

from auth.schemas import MessageResponse, SignupRequest
from auth.service import AuthService, get_auth_service
from core.security import TokenClaims, require_active, require_admin, require_owner
from users.schemas import UpdateUserRequest, UserListResponse, UserRow
from users.service import UserService, get_user_service

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------------------------------------------------------
# GET /users  – list users visible to the requester
# ---------------------------------------------------------------------------


@router.get("", response_model=UserListResponse)
def list_users(
    admin: TokenClaims = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """OWNER gets every row, ADMIN every row except the OWNER."""
    return UserListResponse(users=users.list_users(admin))


# ---------------------------------------------------------------------------
# POST /users/create-admin  – OWNER registers a new (pending) ADMIN
# ---------------------------------------------------------------------------


@router.post("/create-admin", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_admin(
    body: SignupRequest,
    owner: TokenClaims = Depends(require_owner),
    service: AuthService = Depends(get_auth_service),
):
    """
    Same flow as signup: the ADMIN account starts inactive and must confirm
    the OTP sent to its address.
    """
    return MessageResponse(message=service.create_admin(body, owner.role))


# ---------------------------------------------------------------------------
# GET /users/{id}
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=UserRow)
def get_user(
    user_id: int,
    current_user: TokenClaims = Depends(require_active),
    users: UserService = Depends(get_user_service),
):
    return users.get_user(current_user, user_id)


# ---------------------------------------------------------------------------
# PATCH /users/{id}  – self-service profile update
# ---------------------------------------------------------------------------


@router.patch("/{user_id}", response_model=UserRow)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    current_user: TokenClaims = Depends(require_active),
    users: UserService = Depends(get_user_service),
):
    return users.update_user(current_user, user_id, body)


# ---------------------------------------------------------------------------
# DELETE /users/{id}
# ---------------------------------------------------------------------------


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    admin: TokenClaims = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """
    Guards (see ``auth.policy.ensure_can_delete``):
    * the OWNER can never be deleted;
    * an ADMIN cannot delete another ADMIN.
    """
    users.delete_user(admin, user_id)
    return MessageResponse(message="User deleted successfully")
