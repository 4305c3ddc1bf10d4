"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- WINDOWLIMIT_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Nothing here is required by the counting core; settings only drive the HTTP
integration and logging setup.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


WINDOWLIMIT_ENV = os.getenv("WINDOWLIMIT_ENV", "development")

# Resolve .env files from the working directory of the host process
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(WINDOWLIMIT_ENV, ".env.development")
_env_path = Path.cwd() / _env_filename

_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class RateLimitSettings(BaseSettings):
    """HTTP-facing rate limit behaviour."""

    send_headers: bool = Field(
        True,
        description="Send RateLimit-* headers on limited routes",
    )
    header_limit: str = Field(
        "RateLimit-Limit",
        description="Header carrying the limit; empty string disables it",
    )
    header_remaining: str = Field(
        "RateLimit-Remaining",
        description="Header carrying the remaining attempts; empty string disables it",
    )
    header_reset: str = Field(
        "RateLimit-Reset",
        description="Header carrying seconds until the window resets; empty string disables it",
    )
    default_limit: int = Field(
        60,
        description="Attempts per window used by get_or_create callers without explicit values",
        ge=1,
    )
    default_time_window: int = Field(
        60,
        description="Window size in seconds used by get_or_create callers without explicit values",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Either 'json' or 'plain'")
    output: str = Field("stdout", description="Either 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/windowlimit.log)",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Settings container composed from domain-specific settings."""

    windowlimit_env: str = WINDOWLIMIT_ENV
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
