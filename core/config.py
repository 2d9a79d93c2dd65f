"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for UserHub happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. database_url -> DATABASE_URL). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Session timings must be positive and the
      purge interval may not exceed the inactivity timeout.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userhub.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'userhub.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `session_max_inactive_seconds` reads from SESSION_MAX_INACTIVE_SECONDS.
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    session_cookie_name: str = "session_id"
    # Non-browser clients may send the id returned by /auth/login here instead.
    session_header_name: str = "X-Session-Id"
    # Sliding inactivity window, 30 minutes like a servlet container's default.
    session_max_inactive_seconds: int = 1800
    session_purge_interval_seconds: int = 600
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # CORS
    # ------------------------------------------------------------------

    # JSON list in the environment, e.g. CORS_ORIGINS='["https://app.example"]'
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_timing(self) -> "Settings":
        """Reject session timings that would make expiry meaningless.

        A zero or negative inactivity window would expire every session the
        moment it is created. A purge interval longer than the window is
        allowed by the store (expired rows are also dropped lazily on read)
        but usually means a typo, so it is logged.
        """
        if self.session_max_inactive_seconds <= 0:
            raise ValueError("SESSION_MAX_INACTIVE_SECONDS must be a positive number of seconds.")
        if self.session_purge_interval_seconds <= 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must be a positive number of seconds.")
        if self.session_purge_interval_seconds > self.session_max_inactive_seconds:
            logger.warning(
                "SESSION_PURGE_INTERVAL_SECONDS (%d) exceeds SESSION_MAX_INACTIVE_SECONDS (%d); "
                "expired sessions will linger until the next purge.",
                self.session_purge_interval_seconds,
                self.session_max_inactive_seconds,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
