"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in records/models.py and audit/models.py -- dataclasses own domain shape;
stores and services do the work.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An office user (lawyer, clerk or administrator).

    username is immutable once created: no store method or route changes it.
    first_access is True for every freshly created account and is cleared only
    by AuthService.change_password(), which writes it together with the new
    password hash in a single UPDATE.

    hashed_password never leaves the server -- API response models do not
    carry a password field.
    """

    username: str
    email: str
    name: str
    hashed_password: str
    role: str = "user"  # "admin" | "user"
    id: int | None = None
    is_active: bool = True
    first_access: bool = True
    last_access: str | None = None  # ISO 8601 UTC, None until first login
    created_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class Session:
    """Server-side record behind an opaque session cookie.

    token_hash is HMAC-SHA256(SECRET_KEY, raw_token). The raw token lives only
    in the client's cookie, so a leaked sessions table cannot be replayed.
    """

    token_hash: str
    user_id: int
    created_at: str
    expires_at: str
