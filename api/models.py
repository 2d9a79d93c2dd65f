"""
API request and response models for UserHub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.

Every endpoint answers with the same envelope, ApiResponse:
    {"success": bool, "message": str, "data": <payload or null>}
including errors, so clients parse one shape regardless of status code.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Role, User

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response wrapper used by every route and exception handler."""

    success: bool
    message: str
    data: Optional[T] = None

    @classmethod
    def ok(cls, message: str, data: Optional[T] = None) -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str) -> "ApiResponse[T]":
        return cls(success=False, message=message)


# ---------------------------------------------------------------------------
# Request models
#
# Required fields are Optional here on purpose: a missing or blank value must
# come back as a 400 envelope naming the field ("Username must not be empty"),
# which AccountService produces. Pydantic would answer with a generic
# validation error instead.
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register. role is not accepted."""

    model_config = ConfigDict(extra="ignore")

    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    real_name: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=50)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login. username may also be an email."""

    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class UserUpdateRequest(BaseModel):
    """Request body for PUT /api/v1/users/{id}.

    Only email, real_name and phone_number are read. Other keys (role,
    username, password...) are dropped silently, so clients may PUT back a
    whole user object.
    """

    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = Field(default=None, max_length=255)
    real_name: Optional[str] = Field(default=None, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=50)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /api/v1/users/{id}/change-password."""

    old_password: Optional[str] = Field(default=None, max_length=255)
    new_password: Optional[str] = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. Has no password field of any kind."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    real_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: Role
    created_at: str
    updated_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Build a UserResponse from an auth.models.User, dropping the hash."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            real_name=user.real_name,
            phone_number=user.phone_number,
            role=user.role,
            created_at=user.created_at or "",
            updated_at=user.updated_at or "",
        )


class LoginData(BaseModel):
    """Payload of a successful login."""

    user: UserResponse
    session_id: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
