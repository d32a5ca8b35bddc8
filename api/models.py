"""
API request and response models for the planner REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Every response body carries a "success" flag; errors add "message" and,
for validation failures, a list of per-field errors.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from auth.models import UserProfile

# Name is trimmed before the length check; passwords are never trimmed.
_Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class _EmailNormalizingModel(BaseModel):
    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email(cls, value):
        """Trim and lowercase the address so "Ann@X.com " and "ann@x.com" match."""
        if isinstance(value, str):
            return value.strip().lower()
        return value


class SignUpRequest(_EmailNormalizingModel):
    """Request body for POST /api/auth/signup."""

    name: _Name
    email: EmailStr
    password: str = Field(min_length=6, max_length=255)


class SignInRequest(_EmailNormalizingModel):
    """Request body for POST /api/auth/signin."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public user projection: id, name, email, createdAt. No password field."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str
    email: str
    created_at: str = Field(serialization_alias="createdAt")

    @classmethod
    def from_profile(cls, user: UserProfile) -> "UserResponse":
        return cls(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


class AuthResponse(BaseModel):
    """Response body for sign-up and sign-in."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    user: UserResponse


class MeResponse(BaseModel):
    """Response body for GET /api/auth/me."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    user: UserResponse


class MessageResponse(BaseModel):
    """Body-less success, e.g. sign-out."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class FieldErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    errors: Optional[list[FieldErrorDetail]] = None
    error: Optional[str] = None  # exception text, development only


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = "Server is running!"
    timestamp: str
