"""
auth/tokens.py -- Opaque session tokens and the session cookie.

Security design decisions:
  Tokens: secrets.token_urlsafe(32) gives 256 bits of entropy -- brute-force
       is computationally infeasible. The raw token is handed to the browser in
       an httpOnly cookie and never persisted.

  Storage key: the sessions table stores HMAC-SHA256(SECRET_KEY, raw_token).
       The hash is deterministic, so lookup is an O(1) primary-key read, and an
       attacker who obtains the DB cannot forge a cookie without SECRET_KEY.
       bcrypt's intentional slowness is unnecessary for 256-bit random values.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses to build
       settings without one.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from core.config import get_settings

SESSION_COOKIE = "session_id"


def generate_session_token() -> str:
    """Return a new random, URL-safe session token."""
    return secrets.token_urlsafe(32)


def hash_session_token(raw_token: str, secret_key: str | None = None) -> str:
    """Return HMAC-SHA256(secret_key, raw_token) as a hex string."""
    key = secret_key if secret_key is not None else get_settings().secret_key
    return hmac.new(key.encode(), raw_token.encode(), hashlib.sha256).hexdigest()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, max_age: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": cookie sent on same-site navigations and GET cross-site
        links, but not on cross-site POST -- CSRF mitigation for most cases.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the server-side session TTL so both expire together.
    """
    settings = get_settings()
    response.set_cookie(
        SESSION_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=max_age if max_age > 0 else settings.session_ttl_seconds,
    )


def clear_session_cookie(response) -> None:
    settings = get_settings()
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )
