"""Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - The secret comes from STATELESS_RECORDS_SECRET or configure(); never hardcoded
    - get_settings() is cached (lru_cache) — single instance per process
    - configure() is called once during start-up, before tokens are issued; the
      secret is read-only afterwards
    - default_cipher() is the only place the process-wide secret reaches a Cipher

Design Decisions:
    - pydantic-settings over raw os.environ: validation, .env file support
    - Blank secret normalized to None so "set but empty" behaves like "unset"
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stateless_records.infrastructure.cipher import Cipher


class Settings(BaseSettings):
    """Package settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STATELESS_RECORDS_", env_file=".env", case_sensitive=False,
    )

    # Cipher
    secret: str | None = None

    @field_validator("secret", mode="before")
    @classmethod
    def blank_secret_is_unset(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()


_configured: Settings | None = None


def configure(**overrides: object) -> Settings:
    """Override settings in code (e.g. configure(secret=...)). Explicit values win over env."""
    global _configured
    _configured = Settings(**overrides)
    return _configured


def reset_configuration() -> None:
    """Drop programmatic overrides and the cached env settings."""
    global _configured
    _configured = None
    get_settings.cache_clear()


def current_settings() -> Settings:
    return _configured or get_settings()


def default_cipher() -> Cipher:
    """Cipher keyed by the process-wide secret."""
    return Cipher(current_settings().secret)
