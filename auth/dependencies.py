"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token is read from the "token" cookie set at sign-up / sign-in.
get_current_user() is the gatekeeper for protected routes:
  1. no cookie                -> 401 "Authentication required"
  2. bad / expired token      -> 401 "Invalid or expired token"
  3. user no longer exists    -> 401 "User not found"
  4. otherwise the UserProfile is stored on request.state.user and returned.

Anything unexpected (e.g. the database is down) is left to propagate to the
catch-all exception handler, which logs it and answers 500.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import UserProfile
from auth.service import AuthService
from auth.tokens import COOKIE_NAME


def get_auth_service(request: Request) -> AuthService:
    """Build an AuthService around the store attached to app.state at startup."""
    return AuthService(request.app.state.user_store)


def get_current_user(request: Request) -> UserProfile:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: UserProfile = Depends(get_current_user)): ...
    """
    result = get_auth_service(request).authenticate(request.cookies.get(COOKIE_NAME))
    if not result.ok:
        raise HTTPException(status_code=result.failure.status_code, detail=result.failure.message)
    request.state.user = result.user
    return result.user
