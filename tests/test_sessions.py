"""
tests/test_sessions.py -- Unit tests for the session stores.

Both implementations run the same tests against an injected clock, so expiry
is checked without sleeping.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from auth.sessions import MemorySessionStore, SqlSessionStore

TTL = 7 * 24 * 60 * 60


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["sql", "memory"])
def store(request, clock, tmp_path):
    if request.param == "sql":
        s = SqlSessionStore(f"sqlite:///{tmp_path / 'sessions.db'}", ttl=TTL, clock=clock)
    else:
        s = MemorySessionStore(ttl=TTL, clock=clock)
    yield s
    s.close()


class TestSessionLifecycle:
    def test_set_then_get(self, store) -> None:
        created = store.set("hash-a", 1)
        fetched = store.get("hash-a")
        assert fetched is not None
        assert fetched.user_id == 1
        assert fetched.expires_at == created.expires_at

    def test_expiry_is_seven_days(self, store, clock: FakeClock) -> None:
        session = store.set("hash-a", 1)
        expires = datetime.fromisoformat(session.expires_at)
        assert expires - clock.now == timedelta(days=7)

    def test_unknown_token(self, store) -> None:
        assert store.get("nope") is None

    def test_valid_until_expiry(self, store, clock: FakeClock) -> None:
        store.set("hash-a", 1)
        clock.advance(TTL - 1)
        assert store.get("hash-a") is not None

    def test_expired_session_resolves_to_none(self, store, clock: FakeClock) -> None:
        store.set("hash-a", 1)
        clock.advance(TTL)
        assert store.get("hash-a") is None
        # Expired rows are removed on read
        clock.now -= timedelta(seconds=TTL)
        assert store.get("hash-a") is None

    def test_destroy(self, store) -> None:
        store.set("hash-a", 1)
        assert store.destroy("hash-a") is True
        assert store.get("hash-a") is None
        assert store.destroy("hash-a") is False

    def test_destroy_for_user(self, store) -> None:
        store.set("hash-a", 1)
        store.set("hash-b", 1)
        store.set("hash-c", 2)
        assert store.destroy_for_user(1) == 2
        assert store.get("hash-a") is None
        assert store.get("hash-b") is None
        assert store.get("hash-c") is not None

    def test_purge_expired(self, store, clock: FakeClock) -> None:
        store.set("old", 1)
        clock.advance(TTL // 2)
        store.set("new", 2)
        clock.advance(TTL // 2 + 1)
        assert store.purge_expired() == 1
        assert store.get("new") is not None


def test_sql_sessions_survive_a_new_store_instance(tmp_path, clock: FakeClock) -> None:
    """Sessions are persisted, so a restarted process still sees them."""
    url = f"sqlite:///{tmp_path / 'sessions.db'}"
    first = SqlSessionStore(url, ttl=TTL, clock=clock)
    first.set("hash-a", 7)
    first.close()

    second = SqlSessionStore(url, ttl=TTL, clock=clock)
    try:
        session = second.get("hash-a")
        assert session is not None
        assert session.user_id == 7
    finally:
        second.close()
