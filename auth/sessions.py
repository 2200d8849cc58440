"""
auth/sessions.py -- Server-side session storage.

Sessions are keyed by the HMAC of the raw cookie token (see auth/tokens.py).
Every implementation honours the same small interface, so AuthService can run
against the SQL store in production and the in-memory store in unit tests:

    get(token_hash)              -> Session | None   (None once expired)
    set(token_hash, user_id)     -> Session
    destroy(token_hash)          -> bool
    destroy_for_user(user_id)    -> int
    purge_expired()              -> int

Expiry is checked on read against an injectable clock; purge_expired() trims
rows that were never read again. Nothing outside this module mutates session
rows.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine

from auth.models import Session
from core.database import DEFAULT_DB_URL, build_engine

_DEFAULT_TTL = 7 * 24 * 60 * 60  # 7 days in seconds

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    # Fixed precision and offset so stored values sort correctly as strings.
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _is_expired(session: Session, now: datetime) -> bool:
    return datetime.fromisoformat(session.expires_at) <= now


class SessionStore(Protocol):
    ttl: int

    def get(self, token_hash: str) -> Session | None: ...

    def set(self, token_hash: str, user_id: int) -> Session: ...

    def destroy(self, token_hash: str) -> bool: ...

    def destroy_for_user(self, user_id: int) -> int: ...

    def purge_expired(self) -> int: ...


# ---------------------------------------------------------------------------
# SQL-backed store
# ---------------------------------------------------------------------------

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("token_hash", String(64), primary_key=True),  # HMAC-SHA256 hex
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False, index=True),
)


class SqlSessionStore:
    """Persistent sessions; survive process restarts.

    Usage:
        sessions = SqlSessionStore(db_url, ttl=604800)
        sessions.set(token_hash, user_id)
        sessions.get(token_hash)
        sessions.destroy(token_hash)
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL, ttl: int = _DEFAULT_TTL, clock: Clock = _utc_now) -> None:
        self.ttl = ttl
        self._clock = clock
        self.engine: Engine = build_engine(db_url)
        _metadata.create_all(self.engine)

    def get(self, token_hash: str) -> Session | None:
        """Return the session for token_hash if it exists and hasn't expired."""
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        if row is None:
            return None
        session = _row_to_session(row)
        if _is_expired(session, self._clock()):
            self.destroy(token_hash)
            return None
        return session

    def set(self, token_hash: str, user_id: int) -> Session:
        now = self._clock()
        session = Session(
            token_hash=token_hash,
            user_id=user_id,
            created_at=_iso(now),
            expires_at=_iso(now + timedelta(seconds=self.ttl)),
        )
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    token_hash=session.token_hash,
                    user_id=session.user_id,
                    created_at=session.created_at,
                    expires_at=session.expires_at,
                )
            )
            conn.commit()
        return session

    def destroy(self, token_hash: str) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.token_hash == token_hash))
            conn.commit()
        return result.rowcount > 0

    def destroy_for_user(self, user_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def purge_expired(self) -> int:
        """Delete all sessions past their expiry. Returns number of rows removed."""
        cutoff = _iso(self._clock())
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= cutoff))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


def _row_to_session(row) -> Session:
    return Session(
        token_hash=row.token_hash,
        user_id=row.user_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemorySessionStore:
    """Dict-backed drop-in for SqlSessionStore. Process-local; used in tests."""

    def __init__(self, ttl: int = _DEFAULT_TTL, clock: Clock = _utc_now) -> None:
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}

    def get(self, token_hash: str) -> Session | None:
        session = self._sessions.get(token_hash)
        if session is None:
            return None
        if _is_expired(session, self._clock()):
            del self._sessions[token_hash]
            return None
        return session

    def set(self, token_hash: str, user_id: int) -> Session:
        now = self._clock()
        session = Session(
            token_hash=token_hash,
            user_id=user_id,
            created_at=_iso(now),
            expires_at=_iso(now + timedelta(seconds=self.ttl)),
        )
        self._sessions[token_hash] = session
        return session

    def destroy(self, token_hash: str) -> bool:
        return self._sessions.pop(token_hash, None) is not None

    def destroy_for_user(self, user_id: int) -> int:
        doomed = [k for k, s in self._sessions.items() if s.user_id == user_id]
        for key in doomed:
            del self._sessions[key]
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._clock()
        doomed = [k for k, s in self._sessions.items() if _is_expired(s, now)]
        for key in doomed:
            del self._sessions[key]
        return len(doomed)

    def close(self) -> None:
        self._sessions.clear()
