"""
api/routes/v1/users.py -- User management REST endpoints.

Routes:
  GET    /api/v1/users                        -- list all users
  GET    /api/v1/users/profile                -- the caller's own record, re-read from the store
  GET    /api/v1/users/{id}                   -- one user
  PUT    /api/v1/users/{id}                   -- update email / real_name / phone_number
  DELETE /api/v1/users/{id}                   -- delete a user
  POST   /api/v1/users/{id}/change-password   -- change the caller's own password

Route registration order matters: GET /users/profile must be registered before
GET /users/{user_id} or FastAPI tries to parse "profile" as an integer id.

Authorization uses the identity cached on the session at login (role, user
id), not a fresh read of the user row. Any logged-in user may read any other
user's record and the full listing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import ApiResponse, ChangePasswordRequest, UserResponse, UserUpdateRequest
from auth.dependencies import get_account_service, require_identity
from auth.errors import Forbidden, UserNotFound
from auth.models import SessionIdentity
from auth.service import AccountService

# Auth policy:
# - GET    /api/v1/users:                       requires session
# - GET    /api/v1/users/profile:               requires session
# - GET    /api/v1/users/{id}:                  requires session
# - PUT    /api/v1/users/{id}:                  requires session + (owner or ADMIN)
# - DELETE /api/v1/users/{id}:                  requires session + ADMIN
# - POST   /api/v1/users/{id}/change-password:  requires session + owner (admins included)
router = APIRouter()


@router.get("/users", response_model=ApiResponse[list[UserResponse]])
def list_users(
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[list[UserResponse]]:
    users = [UserResponse.from_user(u) for u in service.list_all()]
    return ApiResponse[list[UserResponse]].ok("Fetched user list", users)


@router.get("/users/profile", response_model=ApiResponse[UserResponse])
def get_profile(
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[UserResponse]:
    """Return the caller's own record as currently stored."""
    user = service.find_by_id(identity.user_id)
    if user is None:
        raise UserNotFound()
    return ApiResponse[UserResponse].ok("Fetched profile", UserResponse.from_user(user))


@router.get("/users/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(
    user_id: int,
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[UserResponse]:
    user = service.get(user_id)
    return ApiResponse[UserResponse].ok("Fetched user", UserResponse.from_user(user))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(
    user_id: int,
    body: UserUpdateRequest,
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[UserResponse]:
    """Update profile fields. Owners may edit themselves; admins may edit anyone."""
    if identity.user_id != user_id and not identity.is_admin:
        raise Forbidden("You may not modify other users")
    user = service.update(
        user_id,
        email=body.email,
        real_name=body.real_name,
        phone_number=body.phone_number,
    )
    return ApiResponse[UserResponse].ok("User updated", UserResponse.from_user(user))


@router.delete("/users/{user_id}", response_model=ApiResponse[None])
def delete_user(
    user_id: int,
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[None]:
    """Delete a user. Admin only."""
    if not identity.is_admin:
        raise Forbidden("Admin privileges required")
    service.delete(user_id)
    return ApiResponse[None].ok("User deleted")


@router.post("/users/{user_id}/change-password", response_model=ApiResponse[None])
def change_password(
    user_id: int,
    body: ChangePasswordRequest,
    identity: SessionIdentity = Depends(require_identity),
    service: AccountService = Depends(get_account_service),
) -> ApiResponse[None]:
    """Change the caller's own password. Admins cannot reset other users' passwords here."""
    if identity.user_id != user_id:
        raise Forbidden("You can only change your own password")
    service.change_password(user_id, body.old_password, body.new_password)
    return ApiResponse[None].ok("Password changed")
