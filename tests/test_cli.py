"""
tests/test_cli.py -- The maintenance commands in main.py.
"""

from __future__ import annotations

import pytest

import main as cli
from auth.store import UserStore
from core.config import get_settings


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(get_settings(), "database_url", url)
    monkeypatch.setattr(get_settings(), "bcrypt_rounds", 4)
    return url


def test_create_admin_starts_in_first_access(db_url, capsys) -> None:
    code = cli.main(["create-admin", "--username", "boss", "--email", "boss@example.com", "--password", "boss-pass"])
    assert code == 0
    assert "must be changed" in capsys.readouterr().out

    users = UserStore(db_url)
    boss = users.get_by_username("boss")
    users.close()
    assert boss.role == "admin"
    assert boss.first_access is True


def test_create_admin_refuses_when_users_exist(db_url, capsys) -> None:
    args = ["create-admin", "--username", "boss", "--email", "boss@example.com", "--password", "boss-pass"]
    assert cli.main(args) == 0
    assert cli.main(args) == 1
    assert "already exist" in capsys.readouterr().err


def test_create_admin_short_password(db_url) -> None:
    assert cli.main(["create-admin", "--password", "abc"]) == 1


def test_purge_sessions(db_url, capsys) -> None:
    assert cli.main(["purge-sessions"]) == 0
    assert "0 expired session(s) removed." in capsys.readouterr().out


def test_no_command_prints_help(capsys) -> None:
    assert cli.main([]) == 0
    assert "create-admin" in capsys.readouterr().out
