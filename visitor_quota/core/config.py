"""Service configuration using Pydantic Settings.

Each concern reads its own environment prefix (LOG_, STORE_, RATE_LIMIT_,
VISITOR_, APP_). APP_ENV picks an optional .env.{environment} file
(development, testing, staging, production) that is loaded into the
environment before the settings are built.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


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


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' for machine-friendly output, 'plain' for humans",
    )
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file'",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Remote key-value store configuration.

    The Redis backend is the shared production store. The memory backend keeps
    state per process and is meant for local development and tests.
    """

    backend: str = Field(
        "redis",
        description="Store backend name: 'redis' or 'memory'",
    )
    url: str | None = Field(
        None,
        description="Redis connection URL (redis:// or rediss://). Empty disables the store.",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Timeout for a single store command",
        gt=0,
    )
    connect_timeout_seconds: float = Field(
        2.0,
        description="Timeout for establishing a store connection",
        gt=0,
    )
    key_prefix: str = Field(
        "",
        description="Optional namespace prepended to every store key",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Quota policy for the protected action."""

    enabled: bool = Field(
        True,
        description="Enable quota enforcement (disabled answers always allow)",
    )
    limit_key: str = Field(
        "algebraTutorRateLimit",
        description="Name of the quota policy, part of the store key",
        min_length=1,
    )
    max_requests: int = Field(
        5,
        description="Maximum number of requests allowed per window (per visitor)",
        ge=1,
    )
    window_ms: int = Field(
        86_400_000,
        description="Quota window size in milliseconds",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers on responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class VisitorSettings(BaseSettings):
    """Client-side visitor identification configuration."""

    storage_path: str = Field(
        "~/.visitor_quota/visitor.json",
        description="Durable local file holding the fallback visitor id",
    )
    fingerprint_timeout_seconds: float = Field(
        1.0,
        description="Upper bound for a single fingerprinting attempt",
        gt=0,
    )
    service_url: str = Field(
        "http://localhost:8000",
        description="Base URL of the quota service used by the client command",
    )
    request_timeout_seconds: float = Field(
        5.0,
        description="Timeout for one quota service call from the client",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="VISITOR_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated list of admin keys for the visitor debug endpoint",
    )
    debug_endpoint_enabled: bool = Field(
        True,
        description="Expose GET /debug/visitor",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=LogSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    visitor: VisitorSettings = Field(default_factory=VisitorSettings)
    app: AppSettings = Field(default_factory=AppSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
