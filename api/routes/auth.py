"""
api/routes/auth.py -- Login, logout, current user and password change.

Routes:
  POST /api/login             -- password login; sets session cookie (public)
  POST /api/logout            -- destroys the session; clears cookie
  GET  /api/user              -- current user info
  POST /api/change-password   -- replace password; clears first_access

The last three sit on the SESSION gate group: they require a session but are
reachable while the first-access password change is still pending.

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  AuthService.login() provides timing equalization -- use it, never inline
  a lookup + verify.
  Unknown username and wrong password produce byte-identical 401 bodies.
  Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.audit import client_ip
from api.limiter import limiter, login_rate_limit
from api.models import ChangePasswordRequest, LoginRequest, UserResponse
from auth.dependencies import PUBLIC, SESSION, get_current_user, session_token
from auth.errors import AuthError
from auth.models import User
from auth.service import AuthService
from auth.tokens import clear_session_cookie, set_session_cookie

public_router = APIRouter(dependencies=PUBLIC)
router = APIRouter(dependencies=SESSION)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@public_router.post("/login", response_model=UserResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; set the session cookie.

    Sync endpoint: bcrypt runs in FastAPI's thread pool, not on the event loop.
    """
    auth: AuthService = request.app.state.auth
    try:
        result = auth.login(body.username, body.password, ip_address=client_ip(request))
    except AuthError as exc:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": exc.code, "message": exc.message}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(status_code=200, content=user_to_response(result.user).model_dump())
    set_session_cookie(resp, result.token, max_age=auth.sessions.ttl)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Session endpoints (first-access users allowed)
# ---------------------------------------------------------------------------


@router.post("/logout")
def logout(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Audit the logout, destroy the server-side session and clear the cookie."""
    auth: AuthService = request.app.state.auth
    auth.logout(session_token(request), current_user, ip_address=client_ip(request))
    resp = JSONResponse(content={})
    clear_session_cookie(resp)
    return resp


@router.get("/user", response_model=UserResponse)
def current_user_info(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the currently authenticated user."""
    return user_to_response(current_user)


@router.post("/change-password", response_model=UserResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Replace the current user's password and leave the first-access state.

    400 when the current password is wrong or the new one violates policy.
    The session stays valid.
    """
    auth: AuthService = request.app.state.auth
    try:
        updated = auth.change_password(
            current_user,
            body.current_password,
            body.new_password,
            ip_address=client_ip(request),
        )
    except AuthError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    return user_to_response(updated)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def user_to_response(user: User | None) -> UserResponse:
    if user is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "User not found after write."},
        )
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
        first_access=user.first_access,
        last_access=user.last_access,
        created_at=user.created_at or "",
    )
