"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/auth/signup   -- create account; sets session cookie; 201
  POST /api/auth/signin   -- password sign-in; sets session cookie; 200
  POST /api/auth/signout  -- clears session cookie (requires auth); 200
  GET  /api/auth/me       -- current user projection (requires auth)

Security:
  Sign-up and sign-in are rate-limited per client IP (AUTH_RATE_LIMIT).
  AuthService.sign_in() equalizes timing -- never inline the lookup and the
  bcrypt check here.
  Cache-Control: no-store on responses that set the session cookie.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    AuthResponse,
    ErrorResponse,
    FieldErrorDetail,
    MeResponse,
    MessageResponse,
    SignInRequest,
    SignUpRequest,
    UserResponse,
)
from auth.dependencies import get_auth_service, get_current_user
from auth.models import UserProfile
from auth.service import AuthResult, AuthService
from auth.tokens import clear_auth_cookie, create_access_token, set_auth_cookie
from core.config import get_settings

# Auth policy:
# - POST /api/auth/signup:   public
# - POST /api/auth/signin:   public
# - POST /api/auth/signout:  requires auth (get_current_user)
# - GET  /api/auth/me:       requires auth (get_current_user)
router = APIRouter()
logger = logging.getLogger("planner.auth")

_AUTH_RATE_LIMIT = get_settings().auth_rate_limit


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(_AUTH_RATE_LIMIT)  # below @router so the registered endpoint is the limited one
def signup(
    request: Request,
    body: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account and sign the new user in.

    400 for a registered email. Two simultaneous sign-ups for the same email
    resolve to one 201 and one 400 -- the store's UNIQUE constraint decides.
    """
    result = service.sign_up(body.name, body.email, body.password)
    if not result.ok:
        return _failure_response(result)
    return _signed_in_response(result.user, "User created successfully", status_code=201)


@router.post("/auth/signin", response_model=AuthResponse)
@limiter.limit(_AUTH_RATE_LIMIT)
def signin(
    request: Request,
    body: SignInRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Unknown email and wrong password produce the same 401 body, so the
    response never reveals whether an address is registered.
    """
    result = service.sign_in(body.email, body.password)
    if not result.ok:
        return _failure_response(result)
    return _signed_in_response(result.user, "Signed in successfully", status_code=200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/signout", response_model=MessageResponse)
def signout(current_user: UserProfile = Depends(get_current_user)) -> JSONResponse:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="Signed out successfully").model_dump())
    clear_auth_cookie(resp)
    logger.info("User signed out: %s", current_user.id)
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: UserProfile = Depends(get_current_user)) -> JSONResponse:
    """Return the projection of the currently authenticated user."""
    return JSONResponse(
        content=MeResponse(user=UserResponse.from_profile(current_user)).model_dump(by_alias=True),
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _signed_in_response(user: UserProfile, message: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(message=message, user=UserResponse.from_profile(user)).model_dump(by_alias=True),
    )
    set_auth_cookie(resp, create_access_token(user.id))
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _failure_response(result: AuthResult) -> JSONResponse:
    errors = [FieldErrorDetail(field=e.field, message=e.message) for e in result.errors] or None
    resp = JSONResponse(
        status_code=result.failure.status_code,
        content=ErrorResponse(message=result.failure.message, errors=errors).model_dump(exclude_none=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
