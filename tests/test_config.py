"""
tests/test_config.py -- Settings validation.

Settings are built directly (not through the cached get_settings()) with
_env_file=None so a developer's .env cannot leak into the result.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

VALID_KEY = "k" * 32


def test_missing_secret_key_refuses_to_build(monkeypatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None)


def test_short_secret_key_rejected() -> None:
    with pytest.raises(ValidationError, match="at least 32"):
        Settings(_env_file=None, secret_key="too-short")


def test_defaults(monkeypatch) -> None:
    for var in ("BCRYPT_ROUNDS", "LOGIN_RATE_LIMIT", "ALLOWED_HOSTS"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None, secret_key=VALID_KEY)
    assert settings.session_ttl_seconds == 7 * 24 * 60 * 60
    assert settings.bcrypt_rounds == 12
    assert settings.login_rate_limit == "10/minute"
    assert settings.max_upload_bytes == 10 * 1024 * 1024
    assert settings.reference_cache_ttl_seconds == 86400
    assert settings.reference_timeout_seconds == 5.0
    assert settings.revoke_sessions_on_disable is False
    assert settings.secure_cookies is False


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("SECRET_KEY", VALID_KEY)
    monkeypatch.setenv("REVOKE_SESSIONS_ON_DISABLE", "true")
    monkeypatch.setenv("ALLOWED_HOSTS", '["office.example.com"]')
    settings = Settings(_env_file=None)
    assert settings.revoke_sessions_on_disable is True
    assert settings.allowed_hosts == ["office.example.com"]


@pytest.mark.parametrize("rounds", [3, 32])
def test_bcrypt_rounds_bounds(rounds: int) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key=VALID_KEY, bcrypt_rounds=rounds)
