from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from introbot.core.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_ENV: Literal["development", "production"] = "production"

    # Discord
    DISCORD_TOKEN: str | None = None
    # Fallback for when no channel was stored with /setup_intro_channel
    PROFILE_CHANNEL_ID: int | None = None
    # Seconds before the ephemeral "intro posted" notice is removed
    SUCCESS_NOTICE_TTL_SECONDS: float = 15.0

    REDIS_URL: str = "redis://redis:6379/0"
    # Maximum number of connections Redis client will open per process
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_PROFILE_KEY: str = "introbot:profile:"
    REDIS_CONFIG_KEY: str = "introbot:config:profile_channel"

    # AI
    DEFAULT_GEMINI_MODEL: str = "gemma-3-27b-it"
    GEMINI_API_KEY: str | None = None
    SUMMARY_TIMEOUT_SECONDS: float = 20.0


settings = Settings()

APP_VERSION = __version__
