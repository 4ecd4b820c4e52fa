"""
PURPOSE: Configuration settings for the signal relay.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. All settings are validated and typed. The bot token
is mandatory: constructing Settings without it raises, so the process refuses
to start.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for the signal relay.

    Manages the Telegram bot credentials, the admin allow-list, the HTTP
    listener address, the relay configuration file location and the webhook
    forwarding knobs. Settings are loaded from environment variables and
    .env file.
    """

    # Telegram Bot
    TELEGRAM_BOT_TOKEN: str = Field(
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN"),
    )
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_SEND_TIMEOUT: float = 10.0
    TELEGRAM_POLL_TIMEOUT: int = 25
    TELEGRAM_POLLING_ENABLED: bool = True

    # Comma-separated Telegram user ids allowed to run admin commands.
    # Empty means nobody is authorized.
    ADMIN_CHAT_IDS: str = ""

    # HTTP Listener
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Relay configuration document (enabled flag + channel list)
    CONFIG_PATH: str = "config.json"

    # Webhook Forwarding
    RAW_DEBUG_ENABLED: bool = True
    RAW_PREVIEW_LIMIT: int = 800

    # System Settings
    LOG_LEVEL: str = "INFO"

    @field_validator("TELEGRAM_BOT_TOKEN")
    @classmethod
    def _require_token(cls, value: str) -> str:
        """Reject blank tokens so startup fails instead of polling with no credentials."""
        value = value.strip()
        if not value:
            raise ValueError("TELEGRAM_BOT_TOKEN must be defined")
        return value

    @field_validator("RAW_PREVIEW_LIMIT")
    @classmethod
    def _positive_preview(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("RAW_PREVIEW_LIMIT must be positive")
        return value

    @property
    def admin_ids(self) -> frozenset[str]:
        """
        PURPOSE: Return the admin allow-list as an immutable set of identities.

        Entries are trimmed and blanks dropped, so "1, 2,," yields {"1", "2"}.

        Returns:
            frozenset[str]: Authorized sender identities.
        """
        return frozenset(
            part.strip() for part in self.ADMIN_CHAT_IDS.split(",") if part.strip()
        )

    class Config:
        """Pydantic model configuration."""

        env_file: str = ".env"
        env_file_encoding: str = "utf-8"
        case_sensitive: bool = True
        extra: str = "ignore"


@lru_cache
def get_settings() -> Settings:
    """
    PURPOSE: Return the process-wide Settings instance, loading it on first use.

    CALLED BY: main.create_app(), __main__

    Raises:
        pydantic.ValidationError: If TELEGRAM_BOT_TOKEN is missing or blank.
    """
    return Settings()
