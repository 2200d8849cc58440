"""
auth/service.py -- Authentication state machine.

    anonymous --login--> authenticated(first_access) --change_password--> authenticated
    authenticated --logout--> anonymous
    authenticated --session expiry--> anonymous

AuthService owns the transitions. Routes call it, translate AuthError into HTTP
responses, and never touch the session store directly. Every successful
transition writes exactly one audit entry; failed attempts write none.

Security:
  [C1] login() always runs bcrypt, against a dummy hash when the username is
       unknown, so response time does not reveal whether an account exists.
       The error for "no such user" and "wrong password" is the same
       InvalidCredentials instance message.
  Disabled accounts are rejected before the password is checked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from audit.models import AuditAction
from audit.store import AuditStore
from auth.errors import AccountDisabled, CurrentPasswordIncorrect, InvalidCredentials, PasswordPolicyError
from auth.models import Session, User
from auth.passwords import BcryptHasher
from auth.sessions import SessionStore
from auth.store import UserStore
from auth.tokens import generate_session_token, hash_session_token

logger = logging.getLogger("officedesk.auth")

MIN_PASSWORD_LENGTH = 6


@dataclass
class LoginResult:
    user: User
    token: str  # raw token, goes into the cookie only
    session: Session


class AuthService:
    """Login, logout, password change and session resolution.

    Usage:
        auth = AuthService(users, sessions, audit, BcryptHasher(), secret_key)
        result = auth.login("alice", "secret1", ip_address="10.0.0.7")
        user = auth.resolve(result.token)
        auth.change_password(user, "secret1", "secret2")
        auth.logout(result.token, user)
    """

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        audit: AuditStore,
        hasher: BcryptHasher,
        secret_key: str,
        revoke_sessions_on_disable: bool = False,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.audit = audit
        self.hasher = hasher
        self._secret_key = secret_key
        self.revoke_sessions_on_disable = revoke_sessions_on_disable

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def login(self, username: str, password: str, ip_address: str | None = None) -> LoginResult:
        """Validate credentials and open a session.

        Raises InvalidCredentials or AccountDisabled. On success the user's
        last_access is stamped before the session is created and the login is
        audited before returning.
        """
        user = self.users.get_by_username(username)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            self.hasher.verify(password, self.hasher.dummy_hash)
            logger.info("Login failed for unknown username from %s", ip_address or "unknown")
            raise InvalidCredentials()
        if not user.is_active:
            logger.info("Login refused for disabled user id=%s", user.id)
            raise AccountDisabled()
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Login failed for user id=%s from %s", user.id, ip_address or "unknown")
            raise InvalidCredentials()

        self.users.update_last_access(user.id)
        token = generate_session_token()
        session = self.sessions.set(self._hash(token), user.id)
        self.audit.record(
            user.id,
            user.name,
            AuditAction.login,
            detail="Login successful",
            ip_address=ip_address,
        )
        refreshed = self.users.get_by_id(user.id) or user
        return LoginResult(user=refreshed, token=token, session=session)

    def logout(self, token: str, user: User, ip_address: str | None = None) -> None:
        """Audit the logout, then destroy the session behind token."""
        self.audit.record(
            user.id,
            user.name,
            AuditAction.logout,
            detail="Logout",
            ip_address=ip_address,
        )
        self.sessions.destroy(self._hash(token))

    def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        ip_address: str | None = None,
    ) -> User:
        """Replace the user's password and leave the first-access state.

        Raises CurrentPasswordIncorrect or PasswordPolicyError. The new hash and
        first_access = False are written by a single UPDATE.
        """
        stored = self.users.get_by_id(user.id)
        if stored is None:
            raise InvalidCredentials()
        if not self.hasher.verify(current_password, stored.hashed_password):
            raise CurrentPasswordIncorrect()
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise PasswordPolicyError()

        self.users.update_password(stored.id, self.hasher.hash(new_password))
        self.audit.record(
            stored.id,
            stored.name,
            AuditAction.change_password,
            detail="Password changed",
            ip_address=ip_address,
        )
        return self.users.get_by_id(stored.id)

    # ------------------------------------------------------------------
    # Session resolution
    # ------------------------------------------------------------------

    def resolve(self, token: str | None) -> User | None:
        """Map a raw cookie token to its user, or None if anonymous/expired.

        Inactive users still resolve unless revoke_sessions_on_disable is set:
        disabling an account blocks future logins, not issued sessions.
        """
        if not token:
            return None
        session = self.sessions.get(self._hash(token))
        if session is None:
            return None
        user = self.users.get_by_id(session.user_id)
        if user is None:
            return None
        if self.revoke_sessions_on_disable and not user.is_active:
            return None
        return user

    def revoke_user_sessions(self, user_id: int) -> int:
        """Destroy every session belonging to user_id. Returns how many."""
        count = self.sessions.destroy_for_user(user_id)
        logger.info("Revoked %d session(s) for user id=%s", count, user_id)
        return count

    def on_user_deactivated(self, user_id: int) -> int:
        """Apply the configured disable policy. Returns sessions revoked."""
        if not self.revoke_sessions_on_disable:
            return 0
        return self.revoke_user_sessions(user_id)

    def _hash(self, token: str) -> str:
        return hash_session_token(token, self._secret_key)


def seed_admin(
    users: UserStore,
    hasher: BcryptHasher,
    username: str,
    password: str,
    email: str,
    name: str,
) -> int | None:
    """Create the initial admin account when the users table is empty.

    The account starts in the first-access state like every other user, so the
    seed password must be changed on first login. Returns the new id, or None
    if users already exist.
    """
    if users.has_users():
        return None
    if not password:
        raise ValueError("An initial admin password is required to seed an empty database.")
    user_id = users.create_user(
        User(
            username=username,
            email=email,
            name=name,
            hashed_password=hasher.hash(password),
            role="admin",
        )
    )
    logger.info("Initial admin user %r created (password change required on first login)", username)
    return user_id
