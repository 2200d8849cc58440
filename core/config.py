"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for OfficeDesk happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Enforces the SECRET_KEY policy below.

Security notes:
  SECRET_KEY keys the HMAC that turns raw session tokens into the values stored
  in the sessions table. A missing key is a hard startup failure in every mode:
  there is no auto-generated fallback, because a random key would silently
  invalidate every persisted session on restart. Keys shorter than 32 chars
  are rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
audit/, records/, or cache/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("officedesk.config")

_BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Everything except SECRET_KEY has a default so tests only need to export
    that one variable. Environment variable names are the uppercased field
    names (e.g. `session_ttl_seconds` reads SESSION_TTL_SECONDS).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured"; the validator raises.
    secret_key: str = ""
    database_url: str = f"sqlite:///{_BASE_DIR / 'officedesk.db'}"
    # JSON lists in the environment, e.g. ALLOWED_HOSTS='["office.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:5173", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_ttl_seconds: int = 7 * 24 * 60 * 60
    bcrypt_rounds: int = 12
    login_rate_limit: str = "10/minute"
    # Disabling a user leaves already-issued sessions alive unless this is set.
    revoke_sessions_on_disable: bool = False

    # Initial admin account, created on startup when the users table is empty.
    admin_username: str = "admin"
    admin_password: str = ""
    admin_email: str = "admin@officedesk.local"
    admin_name: str = "Administrator"

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    upload_dir: Path = _BASE_DIR / "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024

    # ------------------------------------------------------------------
    # Reference data (ViaCEP / IBGE)
    # ------------------------------------------------------------------

    reference_cache_ttl_seconds: int = 24 * 60 * 60
    reference_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build settings without a usable SECRET_KEY."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. Set SECRET_KEY in your environment or .env file."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
