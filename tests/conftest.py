"""
tests/conftest.py -- Shared test fixtures for OfficeDesk integration tests.

This module provides:
  - make_stores(): builds every store on a temporary SQLite file
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - create_user() / login() / client_for(): account and session helpers
  - office: module-scoped (client, stores) with an admin already created

Design: each test module gets its own SQLite file under tmp_path_factory.
A real file (not :memory:) is needed because TestClient runs sync route
handlers in a thread pool and every store owns its own engine.

SECRET_KEY, BCRYPT_ROUNDS, LOGIN_RATE_LIMIT and ALLOWED_HOSTS must be set
before any application import: api.main loads settings and configures the
middleware at import time.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# CRITICAL: Set before any api/auth/core import.
TEST_SECRET_KEY = "test-secret-key-for-officedesk-0123456789abcdef"
os.environ["SECRET_KEY"] = TEST_SECRET_KEY
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"
os.environ["ALLOWED_HOSTS"] = '["testserver", "localhost", "127.0.0.1"]'
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from api.main import app
from audit.store import AuditStore
from auth.models import User
from auth.passwords import BcryptHasher
from auth.service import AuthService
from auth.sessions import SqlSessionStore
from auth.store import UserStore
from cache.store import TTLCache
from core.lookup import ReferenceDataService
from records.files import FileStorage
from records.store import RecordsStore

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin-pass-1"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


@dataclass
class Stores:
    users: UserStore
    sessions: SqlSessionStore
    audit: AuditStore
    records: RecordsStore
    files: FileStorage
    reference: ReferenceDataService
    hasher: BcryptHasher
    auth: AuthService

    def close(self) -> None:
        self.users.close()
        self.sessions.close()
        self.audit.close()
        self.records.close()


def make_stores(tmp_dir: Path, revoke_sessions_on_disable: bool = False) -> Stores:
    """Create every store on one SQLite file inside tmp_dir."""
    db_url = f"sqlite:///{tmp_dir / 'officedesk-test.db'}"
    users = UserStore(db_url)
    sessions = SqlSessionStore(db_url, ttl=3600)
    audit = AuditStore(db_url)
    hasher = BcryptHasher(rounds=4)
    return Stores(
        users=users,
        sessions=sessions,
        audit=audit,
        records=RecordsStore(db_url),
        files=FileStorage(tmp_dir / "uploads"),
        reference=ReferenceDataService(TTLCache(ttl=3600), timeout=1.0),
        hasher=hasher,
        auth=AuthService(
            users,
            sessions,
            audit,
            hasher,
            TEST_SECRET_KEY,
            revoke_sessions_on_disable=revoke_sessions_on_disable,
        ),
    )


def _patch_lifespan(stores: Stores):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    an isolated test DB rather than the production database.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.users = stores.users
        app.state.sessions = stores.sessions
        app.state.audit = stores.audit
        app.state.records = stores.records
        app.state.files = stores.files
        app.state.reference = stores.reference
        app.state.auth = stores.auth
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


def create_user(
    stores: Stores,
    username: str,
    password: str,
    role: str = "user",
    name: Optional[str] = None,
    email: Optional[str] = None,
    first_access: bool = False,
) -> User:
    """Insert a user directly. first_access=False simulates a completed password change."""
    uid = stores.users.create_user(
        User(
            username=username,
            email=email or f"{username}@example.com",
            name=name or username.title(),
            hashed_password=stores.hasher.hash(password),
            role=role,
        )
    )
    if not first_access:
        stores.users.update_password(uid, stores.users.get_by_id(uid).hashed_password)
    return stores.users.get_by_id(uid)


def login(client: TestClient, username: str, password: str):
    resp = client.post("/api/login", json={"username": username, "password": password})
    assert resp.status_code == 200, f"Login as {username} failed: {resp.status_code} {resp.text}"
    return resp


def client_for(username: str, password: str) -> TestClient:
    """A fresh TestClient with its own cookie jar, logged in as username.

    Not entered as a context manager: the lifespan already ran for the
    module's main client and app.state is shared.
    """
    client = TestClient(app, raise_server_exceptions=True)
    login(client, username, password)
    return client


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def office(tmp_path_factory) -> Generator[tuple[TestClient, Stores], None, None]:
    """Yield (anonymous client, stores) with an admin account that has
    already completed its first-access password change."""
    stores = make_stores(tmp_path_factory.mktemp("office"))
    create_user(stores, ADMIN_USERNAME, ADMIN_PASSWORD, role="admin", name="Administrator")

    app.router.lifespan_context = _patch_lifespan(stores)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, stores

    stores.close()


@pytest.fixture(scope="module")
def admin_client(office) -> TestClient:
    """A separate client logged in as the admin."""
    return client_for(ADMIN_USERNAME, ADMIN_PASSWORD)
