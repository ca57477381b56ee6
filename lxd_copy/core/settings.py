"""Timeout settings for endpoint API calls.

Provides centralized timeout configuration using Pydantic BaseSettings
with environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LxdTimeoutSettings(BaseSettings):
    """Endpoint API timeout configuration."""

    http_timeout: int = Field(
        30, alias="LXD_HTTP_TIMEOUT", description="Per-request HTTP timeout in seconds"
    )

    wait_timeout: int = Field(
        -1,
        alias="LXD_WAIT_TIMEOUT",
        description="Server-side operation wait timeout in seconds (-1 waits forever)",
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
timeout_settings = LxdTimeoutSettings()

HTTP_TIMEOUT: int = timeout_settings.http_timeout
WAIT_TIMEOUT: int = timeout_settings.wait_timeout
