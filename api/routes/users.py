"""
api/routes/users.py -- User administration (admin only).

Routes:
  GET   /api/usuarios                    -- list all users
  POST  /api/usuarios                    -- create user (first_access = true)
  PATCH /api/usuarios/{id}               -- update name/email/role, optional password reset
  PATCH /api/usuarios/{id}/toggle-ativo  -- activate / deactivate
  GET   /api/logs                        -- newest 100 audit entries

Every route sits on the ADMIN gate group: 401 anonymous, 403 first-access or
non-admin.

Rules:
  Usernames are immutable (UserPatch forbids the field).
  Users are never hard-deleted; deactivation is the only removal.
  An admin cannot deactivate themself or the last active admin.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api import audit as audit_log
from api.models import AuditLogResponse, ToggleActiveRequest, UserCreate, UserPatch, UserResponse
from api.routes.auth import user_to_response
from audit.models import AuditAction, AuditLogEntry
from audit.store import AuditStore
from auth.dependencies import ADMIN, require_admin
from auth.models import User
from auth.service import AuthService
from auth.store import UserStore

logger = logging.getLogger("officedesk.api")

router = APIRouter(dependencies=ADMIN)


@router.get("/usuarios", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    """List all user accounts, newest first."""
    user_store: UserStore = request.app.state.users
    return [user_to_response(u) for u in user_store.list_users()]


@router.post("/usuarios", response_model=UserResponse, status_code=201)
def create_user(
    request: Request,
    body: UserCreate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Create a user account. The new user must change the password on first login."""
    user_store: UserStore = request.app.state.users
    auth: AuthService = request.app.state.auth

    _ensure_unique(user_store, username=body.username, email=str(body.email))
    new_user = User(
        username=body.username,
        email=str(body.email),
        name=body.name,
        role=body.role.value,
        hashed_password=auth.hasher.hash(body.password),
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "duplicate_user", "message": "Username or email already in use."},
        ) from exc

    audit_log.record(
        request,
        current_user,
        AuditAction.create_user,
        entity="usuario",
        entity_id=user_id,
        detail=f"Created user {body.username}",
    )
    return user_to_response(user_store.get_by_id(user_id))


@router.patch("/usuarios/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    body: UserPatch,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Update name, email, role, and optionally reset the password.

    A password reset does not touch first_access; only the user's own
    change-password call clears it.
    """
    user_store: UserStore = request.app.state.users
    auth: AuthService = request.app.state.auth

    target = _get_or_404(user_store, user_id)
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    if "email" in updates:
        updates["email"] = str(updates["email"])
        _ensure_unique(user_store, email=updates["email"], exclude_id=target.id)
    if "role" in updates:
        updates["role"] = updates["role"].value
        if target.is_admin and target.is_active and updates["role"] != "admin":
            if user_store.count_active_admins() <= 1:
                raise HTTPException(
                    status_code=400,
                    detail={"code": "last_admin", "message": "Cannot demote the last active admin account."},
                )
    if "password" in updates:
        updates["hashed_password"] = auth.hasher.hash(updates.pop("password"))

    try:
        user_store.update_user(user_id, **updates)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail={"code": "duplicate_user", "message": "Username or email already in use."},
        ) from exc

    changed = sorted("password" if k == "hashed_password" else k for k in updates)
    audit_log.record(
        request,
        current_user,
        AuditAction.edit_user,
        entity="usuario",
        entity_id=user_id,
        detail=f"Updated user {target.username}: {', '.join(changed)}",
    )
    return user_to_response(user_store.get_by_id(user_id))


@router.patch("/usuarios/{user_id}/toggle-ativo", response_model=UserResponse)
def toggle_active(
    request: Request,
    user_id: int,
    body: ToggleActiveRequest,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Activate or deactivate a user.

    Prevents:
      - Self-deactivation (admin accidentally locking themselves out).
      - Deactivating the last active admin (no recovery path without DB access).
    Issued sessions of a deactivated user are revoked only when
    REVOKE_SESSIONS_ON_DISABLE is set.
    """
    user_store: UserStore = request.app.state.users
    auth: AuthService = request.app.state.auth

    target = _get_or_404(user_store, user_id)
    if not body.is_active:
        if target.id == current_user.id:
            raise HTTPException(
                status_code=400,
                detail={"code": "self_deactivation", "message": "You cannot deactivate your own account."},
            )
        if target.is_admin and target.is_active and user_store.count_active_admins() <= 1:
            raise HTTPException(
                status_code=400,
                detail={"code": "last_admin", "message": "Cannot deactivate the last active admin account."},
            )

    user_store.set_active(user_id, body.is_active)
    if not body.is_active:
        auth.on_user_deactivated(user_id)

    audit_log.record(
        request,
        current_user,
        AuditAction.toggle_user_active,
        entity="usuario",
        entity_id=user_id,
        detail=f"User {target.username} {'activated' if body.is_active else 'deactivated'}",
    )
    return user_to_response(user_store.get_by_id(user_id))


@router.get("/logs", response_model=list[AuditLogResponse])
def list_logs(request: Request) -> list[AuditLogResponse]:
    """Return the newest 100 audit entries."""
    audit: AuditStore = request.app.state.audit
    return [audit_entry_to_response(e) for e in audit.list_recent(limit=100)]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def audit_entry_to_response(entry: AuditLogEntry) -> AuditLogResponse:
    return AuditLogResponse(
        id=entry.id,
        user_id=entry.user_id,
        user_name=entry.user_name,
        action=entry.action,
        entity=entry.entity,
        entity_id=entry.entity_id,
        detail=entry.detail,
        ip_address=entry.ip_address,
        created_at=entry.created_at,
    )


def _get_or_404(user_store: UserStore, user_id: int) -> User:
    user = user_store.get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return user


def _ensure_unique(
    user_store: UserStore,
    username: str | None = None,
    email: str | None = None,
    exclude_id: int | None = None,
) -> None:
    """400 when username or email is taken by another account.

    The UNIQUE constraints remain the real guard; this gives a clearer message.
    """
    if username is not None and user_store.get_by_username(username) is not None:
        raise HTTPException(
            status_code=400,
            detail={"code": "duplicate_username", "message": "Username already in use."},
        )
    if email is not None:
        existing = user_store.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise HTTPException(
                status_code=400,
                detail={"code": "duplicate_email", "message": "Email already in use."},
            )
