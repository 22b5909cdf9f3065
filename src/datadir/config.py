"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from datadir.exceptions import ConfigurationError
from datadir.types import FetchStrategy

# NOAA best-track dataset for the Atlantic basin
DEFAULT_HURDAT2_URL = "https://www.nhc.noaa.gov/data/hurdat/hurdat2-1851-2023-051124.txt"

DEFAULT_USER_AGENT = "datadir-cache/0.3 (+https://www.nhc.noaa.gov/data/)"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        DATA_DIR: Directory where fetched objects are stored
        HURDAT2_URL: URL of the HURDAT2 dataset used by `datadir update`
        HTTP_TIMEOUT: Request timeout in seconds
        HTTP_USER_AGENT: User-Agent sent with every request
        FOLLOW_REDIRECTS: Whether the HTTP client follows redirects
        DEFAULT_STRATEGY: Fetch strategy used when none is given
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    DATA_DIR: Path = Field(
        default=Path("data"), description="Directory where data will be stored"
    )

    # Sources
    HURDAT2_URL: str = Field(
        default=DEFAULT_HURDAT2_URL,
        description="NOAA URL to download hurdat2 data",
    )

    # HTTP client
    HTTP_TIMEOUT: float = Field(
        default=30.0, gt=0.0, description="Request timeout in seconds"
    )
    HTTP_USER_AGENT: str = Field(
        default=DEFAULT_USER_AGENT, description="User-Agent header for requests"
    )
    FOLLOW_REDIRECTS: bool = Field(
        default=True, description="Follow HTTP redirects"
    )
    DEFAULT_STRATEGY: FetchStrategy = Field(
        default=FetchStrategy.IF_OUTDATED,
        description="Fetch strategy used when none is given",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(
        default=None, description="Optional JSON-lines log file"
    )

    @field_validator("HURDAT2_URL")
    @classmethod
    def validate_url_scheme(cls, v: str) -> str:
        """Validate that source URLs are http(s)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("HURDAT2_URL must be an http:// or https:// URL")
        return v

    @field_validator("HTTP_USER_AGENT")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Validate that the User-Agent is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("HTTP_USER_AGENT must not be empty")
        return v

    def display(self) -> dict[str, str | float | bool | None]:
        """Return settings as plain values for display."""
        return {
            "DATA_DIR": str(self.DATA_DIR),
            "HURDAT2_URL": self.HURDAT2_URL,
            "HTTP_TIMEOUT": self.HTTP_TIMEOUT,
            "HTTP_USER_AGENT": self.HTTP_USER_AGENT,
            "FOLLOW_REDIRECTS": self.FOLLOW_REDIRECTS,
            "DEFAULT_STRATEGY": self.DEFAULT_STRATEGY.value,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()


def load_settings() -> Settings:
    """Load fresh settings, reporting invalid values as ConfigurationError.

    Raises:
        ConfigurationError: If any setting fails validation. The context
            maps each offending field to its validation message.
    """
    clear_settings_cache()
    try:
        return get_settings()
    except ValidationError as e:
        errors = {
            ".".join(str(loc) for loc in err["loc"]): err["msg"]
            for err in e.errors()
        }
        raise ConfigurationError("Invalid configuration", context=errors) from e
