"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
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


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """Upstream chat-completion provider configuration.

    The default endpoint is an OpenAI-compatible router, so the official
    OpenAI SDK is used regardless of which model the router serves.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (only OpenAI-compatible endpoints are supported)",
    )
    model: str = Field(
        "google/gemini-2.5-pro-exp-03-25",
        description="Default model used when the client request does not name one",
    )
    api_key: str | None = Field(
        None,
        description="Shared API key for the upstream router",
    )
    base_url: str | None = Field(
        "https://router.requesty.ai/v1",
        description="OpenAI-compatible base URL of the upstream router",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Upstream request timeout in seconds",
    )
    max_retries: int = Field(
        0,
        description="SDK-level retries; keep at 0 so upstream 429s reach the limiter",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins ('*' for any)",
    )
    max_question_chars: int = Field(
        8000,
        description="Maximum question length accepted by /api/generate",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Request admission configuration.

    Window and quota values are deliberately not range-checked here: the
    limiter raises ConfigurationError at construction so a bad deployment
    fails at startup instead of admitting unlimited traffic.
    """

    enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on the proxy endpoints",
    )
    strategy: Literal["fixed", "sliding"] = Field(
        "fixed",
        description="Window strategy: 'fixed' resets wholesale, 'sliding' counts the trailing window",
    )
    window_ms: int = Field(
        60_000,
        description="Window duration in milliseconds",
    )
    max_requests: int = Field(
        5,
        description="Maximum admitted requests per client per window",
    )
    escalation_enabled: bool = Field(
        True,
        description="Lengthen lockouts geometrically for repeat offenders",
    )
    escalation_multiplier: float = Field(
        2.0,
        description="Growth factor applied per consecutive violation",
    )
    escalation_cap_factor: float = Field(
        16.0,
        description="Upper bound for the penalty factor",
    )
    sweep_enabled: bool = Field(
        True,
        description="Run the background expiry sweep",
    )
    sweep_interval_ms: int | None = Field(
        None,
        description="Sweep interval in milliseconds (defaults to the window duration)",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers alongside Retry-After when throttling",
    )
    fallback_client_key: str = Field(
        "unknown",
        description="Shared bucket for requests without a forwarded client address",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
