"""
auth/tokens.py -- JWT, password hashing, and session cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       the user id (sub), issue time (iat) and expiry (exp). Verification
       returns None on any failure -- the auth dependency turns that into a
       401. Nothing is stored server-side, so a token stays valid until it
       expires.

  Passwords: bcrypt directly, cost factor from Settings.bcrypt_rounds. The
       _DUMMY_HASH constant enables timing equalization in authenticate_user()
       so response time does not reveal whether an email is registered.

  Cookie: the token travels in an httpOnly cookie named "token". SameSite is
       strict and Secure is only set in production, where the app is served
       over HTTPS.

Settings are read through get_settings() on each call rather than captured at
import time, so tests can swap configuration with get_settings.cache_clear().

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import CredentialStore

logger = logging.getLogger("planner.auth")

COOKIE_NAME = "token"

_ALGORITHM = "HS256"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Password hashing (bcrypt)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes of its input. The request model
    caps passwords at 255 characters; anything past byte 72 is ignored by
    the hash rather than rejected.
    """
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode("utf-8")[:72], bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash -- treat as a mismatch.
        return False


# Timing equalization dummy hash. Computed once at module load with the
# configured cost so a lookup miss runs exactly as much bcrypt work as a
# wrong password does.
_DUMMY_HASH: str = hash_password("planner_timing_dummy")


def authenticate_user(store: CredentialStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the email is registered:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, issued_at: datetime | None = None) -> str:
    """Encode a signed JWT for user_id that expires after the token lifetime.

    Args:
        user_id:   Stored user id, written to the "sub" claim.
        issued_at: Issue time; defaults to now (UTC). Expiry is
                   issued_at + Settings.token_expire_seconds.
    """
    settings = get_settings()
    issued = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=settings.token_expire_seconds)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims | None:
    """Verify a JWT. Returns its claims, or None on any failure.

    Covers a bad signature, a malformed token, an expired token and a
    payload without a usable subject. Never raises.
    """
    try:
        payload = jwt.decode(token, get_settings().jwt_secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    exp = payload.get("exp")
    if not isinstance(user_id, str) or not user_id or not isinstance(exp, int):
        return None
    return TokenClaims(user_id=user_id, expires_at=datetime.fromtimestamp(exp, tz=timezone.utc))


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the JWT as the session cookie on the response.

    httponly=True: page scripts cannot read the cookie.
    samesite="strict": never sent on cross-site requests.
    secure: HTTPS-only when running in production.
    max_age: matches the JWT lifetime so both expire together.
    """
    settings = get_settings()
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        max_age=settings.token_expire_seconds,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


def clear_auth_cookie(response) -> None:
    """Overwrite the session cookie with an empty, already-expired value.

    Uses the same flag set as set_auth_cookie(); browsers only replace a
    cookie whose path and attributes line up with the original.
    """
    response.set_cookie(
        COOKIE_NAME,
        value="",
        expires=_EPOCH,
        path="/",
        secure=get_settings().is_production,
        httponly=True,
        samesite="strict",
    )
