"""
auth/passwords.py -- One-way password hashing (bcrypt).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

BcryptHasher is a small object rather than module functions so the cost factor
comes from settings and tests can build a cheap hasher (rounds=4). Both methods
are CPU-bound and synchronous; they are only called from sync route handlers,
which FastAPI runs in its worker thread pool, so the event loop never blocks on
them.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_MAX_BYTES]


class BcryptHasher:
    """Salted bcrypt hash + compare.

    Usage:
        hasher = BcryptHasher(rounds=12)
        hashed = hasher.hash("secret1")
        hasher.verify("secret1", hashed)   # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Only the first 72 bytes take part (bcrypt's limit; bcrypt 5 raises on
        longer input, so both methods truncate). The API layer caps password
        fields at 128 characters. Empty or non-string input
        is a programming error and raises ValueError.
        """
        if not isinstance(plain, str) or not plain:
            raise ValueError("password must be a non-empty string")
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    @property
    def dummy_hash(self) -> str:
        """A throwaway hash at the configured cost, used for timing equalization.

        Computed lazily once per hasher so unknown-username logins pay the same
        bcrypt cost as wrong-password logins.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("officedesk_timing_dummy")
        return self._dummy_hash
