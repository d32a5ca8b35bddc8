"""
auth/service.py -- Sign-up, sign-in and token authentication use cases.

AuthService orchestrates the credential store and the token utilities. It
knows nothing about HTTP: every expected outcome comes back as an AuthResult
whose failure member carries the status code and the client-facing message.
Unexpected errors (a database outage, say) are not caught here -- they
propagate to the application's catch-all handler, which logs them and
answers 500.

Security:
  Bad-credential messages are identical for an unknown email and a wrong
  password, and authenticate_user() equalizes their timing.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from auth.models import UserProfile
from auth.store import CredentialStore, DuplicateEmailError
from auth.tokens import authenticate_user, decode_access_token, hash_password

logger = logging.getLogger("planner.auth")

MIN_PASSWORD_LENGTH = 6


class AuthFailure(Enum):
    """Expected failure outcomes, each with its HTTP status and message."""

    VALIDATION = (400, "Validation failed")
    DUPLICATE_EMAIL = (400, "Email already registered")
    BAD_CREDENTIALS = (401, "Invalid email or password")
    AUTH_REQUIRED = (401, "Authentication required. Please sign in.")
    INVALID_TOKEN = (401, "Invalid or expired token. Please sign in again.")
    USER_NOT_FOUND = (401, "User not found. Please sign in again.")

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an auth operation: either a user or a failure."""

    user: UserProfile | None = None
    failure: AuthFailure | None = None
    errors: tuple[FieldError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, user: UserProfile) -> AuthResult:
        return cls(user=user)

    @classmethod
    def fail(cls, failure: AuthFailure, errors: tuple[FieldError, ...] = ()) -> AuthResult:
        return cls(failure=failure, errors=errors)


class AuthService:
    """Auth use cases against an injected CredentialStore."""

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    def sign_up(self, name: str | None, email: str | None, password: str | None) -> AuthResult:
        """Register a new user and return its projection.

        The email pre-check gives the common case a clean answer; the store's
        UNIQUE constraint still decides races between concurrent sign-ups.
        """
        errors = []
        if not name or not name.strip():
            errors.append(FieldError("name", "Name is required"))
        if not email or not email.strip():
            errors.append(FieldError("email", "Email is required"))
        if not password:
            errors.append(FieldError("password", "Password is required"))
        elif len(password) < MIN_PASSWORD_LENGTH:
            errors.append(FieldError("password", f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"))
        if errors:
            return AuthResult.fail(AuthFailure.VALIDATION, tuple(errors))

        if self.store.get_by_email(email) is not None:
            return AuthResult.fail(AuthFailure.DUPLICATE_EMAIL)

        try:
            user = self.store.create_user(name.strip(), email, hash_password(password))
        except DuplicateEmailError:
            logger.info("Concurrent sign-up lost the race for an already registered email")
            return AuthResult.fail(AuthFailure.DUPLICATE_EMAIL)

        logger.info("User signed up: %s", user.id)
        return AuthResult.success(user)

    def sign_in(self, email: str | None, password: str | None) -> AuthResult:
        """Check credentials and return the user projection on success."""
        errors = []
        if not email:
            errors.append(FieldError("email", "Email is required"))
        if not password:
            errors.append(FieldError("password", "Password is required"))
        if errors:
            return AuthResult.fail(AuthFailure.VALIDATION, tuple(errors))

        user = authenticate_user(self.store, email, password)
        if user is None:
            logger.info("Sign-in rejected: bad credentials")
            return AuthResult.fail(AuthFailure.BAD_CREDENTIALS)

        logger.info("User signed in: %s", user.id)
        return AuthResult.success(
            UserProfile(id=user.id, name=user.name, email=user.email, created_at=user.created_at)
        )

    def authenticate(self, token: str | None) -> AuthResult:
        """Resolve a session token to the user it was issued for."""
        if not token:
            return AuthResult.fail(AuthFailure.AUTH_REQUIRED)

        claims = decode_access_token(token)
        if claims is None:
            return AuthResult.fail(AuthFailure.INVALID_TOKEN)

        user = self.store.get_by_id(claims.user_id)
        if user is None:
            return AuthResult.fail(AuthFailure.USER_NOT_FOUND)
        return AuthResult.success(user)
