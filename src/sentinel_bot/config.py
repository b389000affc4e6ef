"""Configuration management for Sentinel Bot.

This module handles all configuration via Pydantic settings with environment variable
support and validation. Configuration can be loaded from .env files or environment.
"""

from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upper bounds baked into the registered slash command options. The matching
# settings may only lower them.
REASON_LENGTH_LIMIT = 512
PURGE_COUNT_LIMIT = 100


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.

    Attributes:
        discord_token: Discord bot token for authentication.
        discord_client_id: Application ID, used when clearing global commands.
        dev_guild_id: Guild to sync slash commands to instantly (0 = global sync).
        postgres_dsn: PostgreSQL connection string.
        postgres_min_pool_size: Minimum connection pool size.
        postgres_max_pool_size: Maximum connection pool size.
        auto_apply_schema: Whether to create missing tables on startup.
        redis_url: Redis connection URL.
        redis_max_connections: Maximum Redis connection pool size.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Deployment environment.
        max_reason_length: Maximum length of a moderation reason.
        max_purge_count: Maximum messages a single purge may delete.
        max_mute_days: Longest allowed mute (Discord caps timeouts at 28 days).
        modlogs_page_size: Number of cases shown by a modlogs listing.
        presence_rotation_minutes: Interval between presence activity changes.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Discord Configuration
    discord_token: str = Field(
        ...,
        description="Discord bot token",
        min_length=50,
    )
    discord_client_id: int = Field(
        default=0,
        description="Discord application ID (0 = resolve from the logged-in client)",
        ge=0,
    )
    dev_guild_id: int = Field(
        default=0,
        description="Guild to sync commands to for development (0 = sync globally)",
        ge=0,
    )

    # Database Configuration
    postgres_dsn: PostgresDsn = Field(
        ...,
        description="PostgreSQL connection string",
    )
    postgres_min_pool_size: int = Field(
        default=2,
        description="Minimum PostgreSQL connection pool size",
        ge=1,
        le=50,
    )
    postgres_max_pool_size: int = Field(
        default=10,
        description="Maximum PostgreSQL connection pool size",
        ge=2,
        le=100,
    )
    auto_apply_schema: bool = Field(
        default=True,
        description="Create missing tables on startup",
    )

    # Redis Configuration
    redis_url: RedisDsn = Field(
        ...,
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(
        default=20,
        description="Maximum Redis connection pool size",
        ge=1,
        le=500,
    )

    # Bot Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    presence_rotation_minutes: int = Field(
        default=5,
        description="Minutes between presence activity rotations",
        ge=1,
        le=1440,
    )

    # Moderation Limits
    max_reason_length: int = Field(
        default=REASON_LENGTH_LIMIT,
        description="Maximum length of a moderation reason",
        ge=16,
        le=REASON_LENGTH_LIMIT,
    )
    max_purge_count: int = Field(
        default=PURGE_COUNT_LIMIT,
        description="Maximum number of messages a purge may delete",
        ge=1,
        le=PURGE_COUNT_LIMIT,
    )
    max_mute_days: int = Field(
        default=28,
        description="Maximum mute duration in days",
        ge=1,
        le=28,
    )
    modlogs_page_size: int = Field(
        default=10,
        description="Number of cases returned by a modlogs listing",
        ge=1,
        le=25,
    )

    @field_validator("postgres_max_pool_size")
    @classmethod
    def validate_pool_size(cls, v: int, info: ValidationInfo) -> int:
        """Validate that max pool size is greater than min pool size.

        Args:
            v: Maximum pool size value.
            info: Field validation info containing other field values.

        Returns:
            Validated maximum pool size.

        Raises:
            ValueError: If max pool size is not greater than min pool size.
        """
        min_size = info.data.get("postgres_min_pool_size")
        if min_size is not None and v <= min_size:
            raise ValueError(
                f"postgres_max_pool_size ({v}) must be greater than "
                f"postgres_min_pool_size ({min_size})"
            )
        return v

    @property
    def max_mute_seconds(self) -> int:
        """Longest allowed mute in seconds.

        Returns:
            max_mute_days expressed in seconds.
        """
        return self.max_mute_days * 24 * 60 * 60


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        The global Settings instance.

    Note:
        Settings are loaded once and cached. To reload, use reload_settings().
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment.

    Returns:
        Newly loaded Settings instance.
    """
    global _settings
    _settings = Settings()
    return _settings
