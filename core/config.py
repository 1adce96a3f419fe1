"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the forum API happen here. No module should
call os.getenv() or os.environ.get() directly. Entry points (asgi.py, main.py)
call get_settings() once and hand the resulting Settings to create_app();
everything downstream receives configuration explicitly.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  frozen=True: Settings is immutable once built. The signing secret and the
      origin allow-list are read concurrently by every request without locking.

Security notes:
  [S1] A missing SECRET_KEY is a hard startup failure in every mode. There is
       no auto-generated fallback: tokens signed with a throwaway key would be
       silently invalidated on every restart.

  [S2] SECRET_KEY shorter than 32 chars is rejected outright. HMAC-SHA256
       signing relies on key entropy.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or forum/.
"""

import logging
from functools import lru_cache

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("forumapi.config")


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a default, so tests can build
    Settings(secret_key=..., _env_file=None) without touching the environment.

    List-valued settings (allowed_origins, allowed_hosts) are plain
    comma-separated strings; use the origin_allow_list / host_allow_list
    properties for the parsed form.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured"; the validator below
    # refuses to build a Settings without one [S1].
    secret_key: str = Field(default="", validation_alias=AliasChoices("secret_key", "SECRET_KEY", "JWT_SECRET"))
    database_url: str = "sqlite:///forum.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # 24 hours. Every token carries exp = issued_at + this value.
    token_lifetime_seconds: int = 86400
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    allowed_origins: str = ""
    allowed_hosts: str = "*"
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # Avatars
    # ------------------------------------------------------------------

    upload_dir: str = "uploads"
    max_avatar_bytes: int = 5 * 1024 * 1024

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def origin_allow_list(self) -> tuple[str, ...]:
        return _split_csv(self.allowed_origins)

    @property
    def host_allow_list(self) -> list[str]:
        return list(_split_csv(self.allowed_hosts)) or ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build a Settings without a usable signing secret [S1][S2]."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. " "Set SECRET_KEY (or JWT_SECRET) in your environment or .env file."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.token_lifetime_seconds <= 0:
            raise ValueError("TOKEN_LIFETIME_SECONDS must be positive.")
        if not self.origin_allow_list:
            logger.warning("ALLOWED_ORIGINS is empty -- every cross-origin browser request will be rejected")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Only entry points call this. Library code receives Settings (or the
    components built from it) as an argument.

    In tests: build Settings(...) directly instead, or call
    get_settings.cache_clear() after changing the environment.
    """
    return Settings()
