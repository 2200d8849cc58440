"""
auth/errors.py -- Exceptions raised by the authentication state machine.

AuthService raises these; the route layer translates them into HTTP responses.
Keeping them free of FastAPI imports lets the service be unit-tested without
an application.
"""

from __future__ import annotations

# Shared by "no such user" and "wrong password" so the two cases are
# byte-identical on the wire.
GENERIC_LOGIN_FAILURE = "Invalid username or password."


class AuthError(Exception):
    """Base class for every authentication failure."""

    code = "auth_error"
    message = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidCredentials(AuthError):
    code = "bad_credentials"
    message = GENERIC_LOGIN_FAILURE


class AccountDisabled(AuthError):
    code = "account_disabled"
    message = "This account is disabled."


class CurrentPasswordIncorrect(AuthError):
    code = "current_password_incorrect"
    message = "Current password is incorrect."


class PasswordPolicyError(AuthError):
    code = "password_policy"
    message = "New password must be at least 6 characters."


class PasswordChangeRequired(AuthError):
    """Raised by the first-access gate; carries requiresPasswordChange on the wire."""

    code = "password_change_required"
    message = "You must change your password before using the system."
