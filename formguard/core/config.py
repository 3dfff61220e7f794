"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Abuse-protection policy (rate budget, honeypot/free-text/email field names,
spam patterns, disposable domains, score thresholds) lives in GuardSettings so
deployments can tune it without touching detector code.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

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


DEFAULT_SPAM_PATTERNS: list[str] = [
    r"\b(viagra|cialis|casino|poker|loan|credit|debt|mortgage)\b",
    r"\b(click here|visit now|act now|limited time)\b",
    r"\b(free money|make money|earn cash|get rich)\b",
    r"\b(guarantee|100% free|no obligation|risk free)\b",
    r"https?://\S+",
]


def parse_csv(value: str | None) -> tuple[str, ...]:
    """Parse a comma-separated settings value into a tuple of names.

    Args:
        value: Comma-separated string, or None.

    Returns:
        Tuple of trimmed, non-empty entries in their original order.

    Examples:
        >>> parse_csv("website, fax ,")
        ('website', 'fax')
        >>> parse_csv(None)
        ()
    """
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_guard_settings() -> "GuardSettings":
    """Build abuse-protection settings from environment.

    See _build_app_settings() for rationale about the type ignore.
    """

    return GuardSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format: structured JSON or plain text",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where to write logs",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/app.log)",
    )
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class GuardSettings(BaseSettings):
    """Rate limiting and spam-scoring policy for public form endpoints."""

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting of submissions",
    )
    rate_limit_capacity: int = Field(
        5,
        description="Maximum submissions a client may burst before being limited",
        ge=1,
    )
    rate_limit_refill_interval_seconds: float = Field(
        3600.0,
        description="Seconds over which a fully drained budget replenishes to capacity",
        gt=0,
    )
    rate_limit_shards: int = Field(
        16,
        description="Number of independently locked registry shards",
        ge=1,
    )
    rate_limit_sweep_mode: Literal["idle", "clear"] = Field(
        "idle",
        description=(
            "Registry cleanup strategy: 'idle' drops budgets untouched for "
            "idle_multiplier refill intervals, 'clear' empties the whole registry"
        ),
    )
    rate_limit_sweep_interval_seconds: float = Field(
        3600.0,
        description="Seconds between registry sweeps",
        gt=0,
    )
    rate_limit_idle_multiplier: float = Field(
        2.0,
        description="Idle budgets older than this many refill intervals are swept",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    honeypot_fields: str = Field(
        "website,phone_number,company,fax",
        description="Comma-separated field names real users never fill",
    )
    text_fields: str = Field(
        "beschreibung,nachricht,anmerkungen,kommentar,comment,message,description,notes",
        description="Comma-separated free-text field names scanned for spam content",
    )
    email_field: str | None = Field(
        "email",
        description="Name of the email field to validate (empty disables email checks)",
    )
    spam_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SPAM_PATTERNS),
        description="Case-insensitive regular expressions indicating spam (JSON list)",
    )
    disposable_email_domains: str = Field(
        "tempmail,guerrillamail,10minutemail,mailinator,spam,trash,temp,fake",
        description="Comma-separated substrings marking throwaway email domains",
    )

    min_fill_seconds: float = Field(
        3.0,
        description="Submissions completed faster than this are rejected",
        ge=0,
    )
    suspicious_fill_seconds: float = Field(
        10.0,
        description="Submissions completed faster than this raise the risk score",
        ge=0,
    )
    block_threshold: int = Field(
        70,
        description="Composite score at or above which a submission is spam",
        ge=1,
        le=100,
    )
    suspicious_threshold: int = Field(
        40,
        description="Composite score at or above which an admitted submission is flagged",
        ge=0,
        le=100,
    )

    strict_client_id: bool = Field(
        default_factory=lambda: APP_ENV == "development",
        description=(
            "Reject requests without a client identifier instead of using a "
            "shared sentinel (defaults to on when APP_ENV=development)"
        ),
    )
    trust_proxy_headers: bool = Field(
        False,
        description=(
            "Derive client address from X-Forwarded-For/X-Real-IP/CF-Connecting-IP; "
            "enable only behind a proxy that overwrites these headers"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="GUARD_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    guard: GuardSettings = Field(default_factory=_build_guard_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
