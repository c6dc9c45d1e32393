"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Limiter windows and limits are read once at process start. They are not
runtime-mutable; changing them requires a restart.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    trust_proxy_headers: bool = Field(
        True,
        description="Resolve client IP from cf-connecting-ip / x-forwarded-for headers",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Counter store (rate limit state) configuration."""

    backend: str = Field(
        "redis",
        description="Counter store backend: 'redis' or 'memory' (per-process, dev/tests only)",
    )
    redis_url: str | None = Field(
        None,
        description="Redis connection URL (redis:// or rediss://)",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Socket timeout applied to every Redis command",
        gt=0,
    )
    stats_cache_ttl_seconds: int = Field(
        600,
        description="TTL of the cached waitlist stats payload",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Waitlist entry persistence configuration."""

    url: str = Field(
        "sqlite+aiosqlite:///./waitlist.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(
        False,
        description="Echo SQL statements (debugging only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class DiscordSettings(BaseSettings):
    """Outbound Discord webhook configuration."""

    webhook_url: str | None = Field(
        None,
        description="Discord webhook URL; notifications are skipped when unset",
    )
    timeout_seconds: float = Field(
        10.0,
        description="HTTP timeout for webhook delivery",
        gt=0,
    )
    username: str = Field(
        "Waitlist Bot",
        description="Username shown on signup notifications",
    )

    model_config = SettingsConfigDict(
        env_prefix="DISCORD_",
        case_sensitive=False,
    )


class LimitSettings(BaseSettings):
    """Window sizes and limits for each named limiter policy."""

    signup_ip_window_seconds: int = Field(60, ge=1)
    signup_ip_limit: int = Field(3, ge=1)
    signup_email_window_seconds: int = Field(3600, ge=1)
    signup_email_limit: int = Field(5, ge=1)
    endpoint_window_seconds: int = Field(300, ge=1)
    endpoint_limit: int = Field(50, ge=1)
    webhook_ip_window_seconds: int = Field(300, ge=1)
    webhook_ip_limit: int = Field(10, ge=1)
    webhook_global_window_seconds: int = Field(60, ge=1)
    webhook_global_limit: int = Field(50, ge=1)
    content_window_seconds: int = Field(3600, ge=1)
    content_global_limit: int = Field(5, ge=1)
    content_actor_limit: int = Field(2, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Nested settings are created via default_factory so each one reads its
    own env prefix at construction time.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    limits: LimitSettings = Field(default_factory=LimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
