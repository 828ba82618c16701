"""Configuration loading for dailyrec.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed, immutable access to all settings
"""

from typing import Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dailyrec.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv. Instances are frozen: the
    configuration read at startup is never mutated.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Daily API
    daily_api_key: str = Field(
        default="",
        description="Daily API key (required)",
    )
    daily_api_url: str = Field(
        default="https://api.daily.co/v1",
        description="Daily REST API base URL",
    )
    daily_domain: str = Field(
        default="",
        description="Daily domain, e.g. your-domain.daily.co",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for each Daily API request in seconds",
    )

    # Webhook receiver
    daily_webhook_secret: str = Field(
        default="",
        description="Webhook HMAC secret; empty disables signature verification",
    )
    webhook_host: str = Field(
        default="0.0.0.0",
        description="Host to listen on for webhook server",
    )
    webhook_port: int = Field(
        default=3001,
        description="Port to listen on for webhook server",
    )
    webhook_url: str = Field(
        default="",
        description="Public URL registered with Daily for webhook delivery",
    )
    webhook_defer_enrichment: bool = Field(
        default=False,
        description="Acknowledge ready events before enrichment completes",
    )
    log_file: str = Field(
        default="./recording_events.log",
        description="Append-only event log path",
    )
    access_link_valid_for_secs: int = Field(
        default=3600,
        description="Validity window of recording access links in seconds",
    )

    # CLI
    session_dir: str = Field(
        default=".",
        description="Directory for CLI session files",
    )
    recordings_dir: str = Field(
        default="./recordings/",
        description="Default download directory for recordings",
    )

    # Recording bucket
    recording_bucket_name: str = Field(default="", description="S3 bucket name")
    recording_bucket_region: str = Field(default="", description="S3 bucket region")
    recording_assume_role_arn: str = Field(
        default="",
        description="IAM role Daily assumes to write recordings",
    )
    recording_allow_api_access: bool = Field(
        default=True,
        description="Allow recording access through the Daily API",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("webhook_port")
    @classmethod
    def validate_webhook_port(cls, v: int) -> int:
        """Ensure webhook port is in valid range."""
        if v <= 0 or v > 65535:
            raise ValueError("webhook_port must be between 1 and 65535")
        return v

    @field_validator("access_link_valid_for_secs")
    @classmethod
    def validate_access_link_validity(cls, v: int) -> int:
        """Ensure access link validity is positive."""
        if v <= 0:
            raise ValueError("access_link_valid_for_secs must be positive")
        return v

    @field_validator("http_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure request timeout is positive."""
        if v <= 0:
            raise ValueError("http_timeout_seconds must be positive")
        return v

    @field_validator("daily_api_key", "daily_webhook_secret")
    @classmethod
    def strip_secret(cls, v: str) -> str:
        """Drop surrounding whitespace from keys copied into .env files."""
        return v.strip()

    @property
    def webhook_secret(self) -> str | None:
        """The active webhook secret, or None when verification is disabled."""
        return self.daily_webhook_secret or None


def load_settings(env_file: str | None = None, require_api_key: bool = True) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.
        require_api_key: If True, a missing DAILY_API_KEY is an error.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If validation fails or the API key is missing.
    """
    try:
        if env_file:
            settings = Settings(_env_file=env_file)  # type: ignore[call-arg]
        else:
            settings = Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if require_api_key and not settings.daily_api_key:
        raise ConfigurationError("DAILY_API_KEY is not set")
    return settings


__all__ = ["Settings", "load_settings"]
