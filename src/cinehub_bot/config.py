"""Configuration management using Pydantic Settings."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def parse_int_list(value: Any) -> list[int]:
    """Parse a comma separated list of integer ids.

    Non-numeric items are skipped. JSON-style brackets are tolerated so both
    ``-1001,-1002`` and ``[-1001, -1002]`` are accepted.
    """
    if value is None:
        return []
    if isinstance(value, int):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [int(item) for item in value]

    result: list[int] = []
    for chunk in str(value).strip().strip("[]").split(","):
        try:
            result.append(int(chunk))
        except ValueError:
            continue
    return result


def parse_force_links(value: Any) -> dict[int, str]:
    """Parse ``"<channel_id>|<url>,<channel_id>|<url>"`` into a mapping.

    Items without a ``|``, with a non-numeric id or an empty url are skipped.
    """
    if value is None:
        return {}
    if isinstance(value, dict):
        return {int(key): str(url) for key, url in value.items()}

    links: dict[int, str] = {}
    for item in str(value).split(","):
        chunk = item.strip()
        if not chunk or "|" not in chunk:
            continue
        key, url = chunk.split("|", 1)
        key = key.strip()
        url = url.strip()
        if not url:
            continue
        try:
            links[int(key)] = url
        except ValueError:
            continue
    return links


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Security: the bot token is stored as SecretStr to prevent accidental logging.
    Use .get_secret_value() to access the actual value when needed.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
        populate_by_name=True,
    )

    # Telegram
    bot_token: SecretStr = Field(
        ...,
        description="Telegram Bot API token from @BotFather",
    )

    def __repr__(self) -> str:
        """Safe representation that hides secrets."""
        return (
            f"Settings(bot_token=SecretStr('***'), "
            f"admin_ids={self.admin_ids}, "
            f"forced_channels={self.forced_channels}, "
            f"app_version='{self.app_version}')"
        )

    # Access control
    admin_ids: Annotated[list[int], NoDecode] = Field(
        default_factory=list,
        description="Default admin user IDs (overridable at runtime by admins)",
    )
    forced_channels: Annotated[list[int], NoDecode] = Field(
        default_factory=list,
        validation_alias="force_channels",
        description="Default channels a user must join before using the catalog",
    )
    forced_channel_urls: Annotated[dict[int, str], NoDecode] = Field(
        default_factory=dict,
        validation_alias="force_channel_urls",
        description="Invite links for forced channels, as 'id|url,id|url'",
    )

    # Content
    content_channel_ids: Annotated[list[int], NoDecode] = Field(
        default_factory=list,
        description="Channels holding the media messages, tried in order",
    )
    database_path: str = Field(
        default="cinehub.db",
        description="Path to the SQLite database file",
    )
    page_size: int = Field(
        default=10,
        description="Items per page in content lists",
    )
    parts_page_size: int = Field(
        default=24,
        description="Part buttons per page in the parts keyboard",
    )

    # Long polling
    poll_timeout: int = Field(
        default=25,
        description="Long-poll timeout in seconds for getUpdates",
    )
    poll_limit: int = Field(
        default=100,
        description="Maximum number of updates fetched per batch",
    )
    poll_retry_delay: float = Field(
        default=0.5,
        description="Delay in seconds before retrying a failed fetch",
    )

    # Rate Limiting
    rate_limit_interval: float = Field(
        default=0.5,
        description="Minimum seconds between two accepted events of one user",
    )

    # Subscription cache
    subscription_ok_ttl: float = Field(
        default=20.0,
        description="Seconds a positive subscription verdict stays cached",
    )
    subscription_fail_ttl: float = Field(
        default=2.0,
        description="Seconds a negative subscription verdict stays cached",
    )
    subscription_cache_max_entries: int = Field(
        default=10_000,
        description="Cache size that triggers the expiry sweep",
    )

    # Telegram Retry Settings
    telegram_max_retries: int = Field(
        default=2,
        description="Maximum retry attempts for Telegram API calls",
    )
    telegram_retry_base_delay: float = Field(
        default=0.5,
        description="Base delay in seconds for exponential backoff",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Shutdown
    shutdown_timeout: int = Field(
        default=30,
        description="Timeout in seconds for graceful shutdown",
    )

    # Application
    app_name: str = Field(
        default="CineHub Bot",
        description="Application name",
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version",
    )

    @field_validator("admin_ids", "forced_channels", "content_channel_ids", mode="before")
    @classmethod
    def _split_ids(cls, value: Any) -> list[int]:
        return parse_int_list(value)

    @field_validator("forced_channel_urls", mode="before")
    @classmethod
    def _split_links(cls, value: Any) -> dict[int, str]:
        return parse_force_links(value)


def get_settings() -> Settings:
    """Get settings instance.

    Settings are loaded from environment variables and .env file.
    """
    return Settings()  # type: ignore[call-arg]
