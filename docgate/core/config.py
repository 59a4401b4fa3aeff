"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
import threading
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


StrategyName = Literal["sliding_window", "fixed_window"]


class LimiterSettings(BaseSettings):
    """Admission controller policy.

    The policy is fixed once a controller is built from it; changing the
    environment afterwards has no effect on live controllers.
    """

    strategy: StrategyName = Field(
        "sliding_window",
        description="Admission strategy: sliding_window (rolling) or fixed_window",
    )
    limit: int = Field(
        5,
        description="Maximum number of admissions per period",
        ge=1,
    )
    period_seconds: float = Field(
        60.0,
        description="Length of the admission period in seconds",
        gt=0,
        le=threading.TIMEOUT_MAX,
        allow_inf_nan=False,
    )
    guard_seconds: float = Field(
        0.001,
        description="Extra delay added to computed waits so sleepers never wake one tick early",
        ge=0,
        allow_inf_nan=False,
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class DocumentApiSettings(BaseSettings):
    """Document submission API configuration."""

    base_url: str = Field(
        "https://ismp.crpt.ru",
        description="Base URL of the document API",
    )
    token: str | None = Field(
        None,
        description="Bearer token used by the operator CLI",
    )
    timeout_seconds: float = Field(
        30.0,
        description="HTTP request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="DOCS_API_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log lines are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/docgate.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
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
    limiter: LimiterSettings = Field(default_factory=LimiterSettings)
    documents_api: DocumentApiSettings = Field(default_factory=DocumentApiSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
