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

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_newsletter_settings() -> "NewsletterSettings":
    """Build newsletter settings from environment (see _build_app_settings)."""

    return NewsletterSettings()  # type: ignore[call-arg]


def _build_smtp_settings() -> "SmtpSettings":
    return SmtpSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    public_url: str = Field(
        "http://localhost:3000",
        description="Public site URL used for verification links and redirects",
    )
    api_url: str = Field(
        "http://localhost:8000",
        description="Externally reachable base URL of this API (verification links)",
    )
    admin_email: str = Field(
        "admin@earlab.tech",
        description="Inbox receiving contact form notifications",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on form endpoints",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_sweep_interval_seconds: float = Field(
        300.0,
        description="Interval between sweeps of expired rate limit entries",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class NewsletterSettings(BaseSettings):
    """Newsletter double opt-in configuration.

    The token codec accepts any secret; the minimum length is enforced here so
    a deployment cannot start with a trivially guessable key.
    """

    secret: str = Field(
        ...,
        description="HMAC secret used to sign verification tokens",
        min_length=16,
    )
    token_ttl_hours: float = Field(
        24.0,
        description="Lifetime of a verification token in hours",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="NEWSLETTER_",
        case_sensitive=False,
    )


class SmtpSettings(BaseSettings):
    """Outbound SMTP configuration.

    Email delivery is disabled (with a warning) when host, user or password
    is missing.
    """

    host: str | None = Field(None, description="SMTP server hostname")
    port: int = Field(587, description="SMTP port (465 uses implicit TLS)")
    user: str | None = Field(None, description="SMTP username")
    password: str | None = Field(None, description="SMTP password")
    from_address: str = Field(
        "hello@earlab.tech",
        description="Default sender address",
    )
    timeout_seconds: float = Field(
        15.0,
        description="Socket timeout for SMTP operations",
    )

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    newsletter: NewsletterSettings = Field(default_factory=_build_newsletter_settings)
    smtp: SmtpSettings = Field(default_factory=_build_smtp_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
