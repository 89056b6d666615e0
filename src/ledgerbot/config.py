"""Configuration management for ledgerbot."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerbot.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_DEDUP_HORIZON,
    DEFAULT_POLL_TIMEOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Bot API
    bot_token: SecretStr = Field(description="Bot API token")
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, description="Bot API base URL")
    allowed_chat_ids: Annotated[
        list[int],
        Field(default_factory=list, description="Chat IDs allowed to use the bot"),
    ]

    # Update stream
    poll_timeout: int = Field(
        default=DEFAULT_POLL_TIMEOUT, ge=1, le=50, description="Long-poll timeout in seconds"
    )
    retry_backoff_base: float = Field(
        default=1.0, gt=0, description="First retry delay after a failed fetch"
    )
    retry_backoff_max: float = Field(
        default=60.0, gt=0, description="Upper bound for the retry delay"
    )
    dedup_horizon: int = Field(
        default=DEFAULT_DEDUP_HORIZON,
        ge=0,
        description="How many update ids behind the offset dedup keys are kept",
    )

    # Rate limiting
    rate_limit_messages: int = Field(default=20, ge=1, description="Messages per window")
    rate_limit_window: float = Field(default=60.0, gt=0, description="Window in seconds")

    # Storage
    database_url: str | None = Field(
        default=None, description="PostgreSQL DSN; SQLite is used when unset"
    )
    database_path: str = Field(default="data.db", description="SQLite database file")

    # Application
    lock_file: str = Field(default="data.bot.lock", description="Single-instance PID file")
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def uses_postgres(self) -> bool:
        """Check if DATABASE_URL points at PostgreSQL."""
        return bool(self.database_url) and self.database_url.startswith(
            ("postgres://", "postgresql://")
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
