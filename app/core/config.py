"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
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

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration, including rate limiting."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    trust_proxy: bool = Field(
        True,
        description="Use the first X-Forwarded-For entry as the client address",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests allowed per long window",
        ge=1,
    )
    rate_limit_window_seconds: float = Field(
        60,
        description="Long rate limit window size in seconds",
        gt=0,
    )
    rate_limit_burst_capacity: int = Field(
        5,
        description="Maximum number of requests allowed per burst window",
        ge=1,
    )
    rate_limit_burst_window_seconds: float = Field(
        10,
        description="Burst window size in seconds",
        gt=0,
    )
    rate_limit_cleanup_interval_seconds: float = Field(
        60,
        description="Interval between sweeps that drop idle client state",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """User cache sizing and expiry."""

    ttl_seconds: float = Field(
        60,
        description="Time-to-live applied to every cached user",
        gt=0,
    )
    max_entries: int = Field(
        1000,
        description="Maximum number of cached users",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        30,
        description="Interval between background sweeps of expired entries",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Simulated backing store and fetch queue timing."""

    fetch_latency_seconds: float = Field(
        0.2,
        description="Simulated latency of a single user lookup",
        ge=0,
    )
    create_latency_seconds: float = Field(
        0.1,
        description="Simulated latency of a user write",
        ge=0,
    )
    queue_tick_seconds: float = Field(
        0.05,
        description="Pause between consecutive backend calls made by the fetch worker",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to receive and propagate the request id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is out of range.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
