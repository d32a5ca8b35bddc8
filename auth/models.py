"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these classes only own the shape.

User carries the bcrypt hash and never leaves the auth layer. UserProfile is
the projection that every response and every request context receives.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A stored user record, including the password hash.

    Only the credential check in sign-in ever needs hashed_password; every
    other code path works with UserProfile.
    """

    id: str
    name: str
    email: str  # stored lowercased; UNIQUE in the users table
    hashed_password: str
    created_at: str


@dataclass(frozen=True)
class UserProfile:
    """Public projection of a User -- the password hash is not part of it."""

    id: str
    name: str
    email: str
    created_at: str


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""

    user_id: str
    expires_at: datetime
