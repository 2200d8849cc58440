"""
auth/dependencies.py -- FastAPI Depends() gates for authentication and authorization.

The session cookie ("session_id") is resolved through AuthService.resolve();
the gates then run in a fixed order:

    1. get_current_user                     -- 401 if no valid session
    2. require_password_change_satisfied    -- 403 {requiresPasswordChange: true}
    3. require_admin                        -- 403 if role != admin

Gates are never attached ad hoc to individual business routes. Each router
declares one of the ordered gate lists below via APIRouter(dependencies=...),
so a route added to a router inherits the full chain:

    SESSION   -- authenticated only: /user, /logout, /change-password
    BUSINESS  -- authenticated + password change satisfied
    ADMIN     -- BUSINESS + admin role

FastAPI caches a dependency per request, so get_current_user resolves the
session once even though every gate depends on it.

Layer rule: no imports from api/ or records/.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from auth.errors import PasswordChangeRequired
from auth.models import User
from auth.tokens import SESSION_COOKIE


def session_token(request: Request) -> str | None:
    return request.cookies.get(SESSION_COOKIE) or None


def try_get_current_user(request: Request) -> User | None:
    """Resolve the request's session cookie. Returns None on any failure."""
    return request.app.state.auth.resolve(session_token(request))


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user


def require_password_change_satisfied(user: User = Depends(get_current_user)) -> User:
    """Block first-access users from everything except the SESSION routes.

    Raises PasswordChangeRequired, which the app turns into a 403 carrying
    requiresPasswordChange: true so clients can redirect to the change flow.
    """
    if user.first_access:
        raise PasswordChangeRequired()
    return user


def require_admin(user: User = Depends(require_password_change_satisfied)) -> User:
    """Require admin role. 401 if unauthenticated, 403 if not admin."""
    if not user.is_admin:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Admin access required."},
        )
    return user


# ---------------------------------------------------------------------------
# Ordered gate lists, one per route group
# ---------------------------------------------------------------------------

PUBLIC: list = []
SESSION = [Depends(get_current_user)]
BUSINESS = [Depends(get_current_user), Depends(require_password_change_satisfied)]
ADMIN = [Depends(get_current_user), Depends(require_password_change_satisfied), Depends(require_admin)]
