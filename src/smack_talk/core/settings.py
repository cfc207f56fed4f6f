"""Application settings and configuration.

This module defines all configuration options for the Smack Talk session core.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TRUSTED_MEDIA_DOMAINS = [
    "cdn.klipy.com",
    "media.klipy.com",
    "assets.klipy.com",
    "klipy.com",
    "giphy.com",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Smack Talk Central", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Chat room wiring
    chat_channel: str = Field(default="/default/game-chat", alias="CHAT_CHANNEL")
    room_id: str = Field(default="default-game-chat", alias="ROOM_ID")
    history_limit: int = Field(default=50, alias="HISTORY_LIMIT")
    message_max_length: int = Field(default=500, alias="MESSAGE_MAX_LENGTH")
    guest_display_name: str = Field(default="Guest", alias="GUEST_DISPLAY_NAME")

    # Rolling reaction window
    reaction_horizon_seconds: float = Field(default=30.0, alias="REACTION_HORIZON_SECONDS")
    reaction_tick_seconds: float = Field(default=1.0, alias="REACTION_TICK_SECONDS")

    # Deduplication ledger capacity (LRU)
    dedup_ledger_size: int = Field(default=5000, alias="DEDUP_LEDGER_SIZE")

    # Media attachments are accepted only from these hosts (and subdomains)
    trusted_media_domains: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRUSTED_MEDIA_DOMAINS),
        alias="TRUSTED_MEDIA_DOMAINS",
    )

    # Remote collaborators
    history_api_url: str | None = Field(default=None, alias="HISTORY_API_URL")
    stats_api_url: str | None = Field(default=None, alias="STATS_API_URL")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Media search (Klipy)
    klipy_api_key: str | None = Field(default=None, alias="KLIPY_API_KEY")
    klipy_base_url: str = Field(default="https://api.klipy.com/api/v1", alias="KLIPY_BASE_URL")
    klipy_results_per_page: int = Field(default=25, alias="KLIPY_RESULTS_PER_PAGE")

    # Local persistence for history and stats
    database_url: str = Field(default="sqlite:///./smack_talk.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    message_ttl_seconds: int = Field(default=86_400, alias="MESSAGE_TTL_SECONDS")

    # Display surfaces
    leaderboard_limit: int = Field(default=10, alias="LEADERBOARD_LIMIT")
    notification_limit: int = Field(default=50, alias="NOTIFICATION_LIMIT")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
