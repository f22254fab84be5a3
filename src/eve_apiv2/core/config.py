"""
EVE API v2 Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from eve_apiv2.core.config import get_settings

    settings = get_settings()
    client = ApiClient(timeout=settings.timeout)

Environment Variables:
    EVEAPI_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    EVEAPI_DEBUG: Legacy debug flag (enables DEBUG level if set)
    EVEAPI_LOG_JSON: Output logs as JSON
    EVEAPI_BASE_URL: XML API root (default: https://api.eveonline.com)
    EVEAPI_TIMEOUT: Per-call timeout in seconds (default: 30)
    EVEAPI_USER_AGENT: User-Agent header sent with every call
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import API_BASE_URL


class ApiSettings(BaseSettings):
    """
    Library configuration settings with validation.

    Environment variables are automatically loaded with the EVEAPI_ prefix,
    falling back to a .env file in the current working directory.
    All settings have sensible defaults and validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="EVEAPI_",
        env_file=".env",  # Relative to the working directory; optional
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for library components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Remote API
    # =========================================================================

    base_url: str = Field(
        default=API_BASE_URL,
        description="Root URL of the XML API",
    )

    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-call timeout in seconds",
    )

    user_agent: str = Field(
        default="eve-apiv2/1.0",
        description="User-Agent header sent with every call",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy EVEAPI_DEBUG.

        Priority:
        1. Explicit EVEAPI_LOG_LEVEL
        2. EVEAPI_DEBUG=1 → DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> ApiSettings:
    """
    Get the singleton settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return ApiSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()


# =============================================================================
# Convenience Functions
# =============================================================================


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_settings().effective_log_level == "DEBUG"


def is_json_logging() -> bool:
    """Check if JSON logging is enabled."""
    return get_settings().log_json
