"""
Application configuration using Pydantic Settings.
Loads environment variables from .env file.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Application
    # -------------------------------------------------------------------------
    app_env: str = Field(default="development", alias="APP_ENV")
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # -------------------------------------------------------------------------
    # PostgreSQL (checkpoint store)
    # -------------------------------------------------------------------------
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="hubsync", alias="POSTGRES_DB")
    postgres_user: str = Field(default="postgres", alias="POSTGRES_USER")
    postgres_password: str = Field(default="postgres", alias="POSTGRES_PASSWORD")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    @property
    def async_database_url(self) -> str:
        """Build async database URL for SQLAlchemy."""
        if self.database_url:
            # Ensure we use the async driver
            url = self.database_url
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+psycopg://", 1)
            return url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # -------------------------------------------------------------------------
    # HubSpot OAuth + API
    # -------------------------------------------------------------------------
    hubspot_client_id: str | None = Field(
        default=None,
        alias="HUBSPOT_CID",
        description="HubSpot OAuth2 Client ID",
    )
    hubspot_client_secret: str | None = Field(
        default=None,
        alias="HUBSPOT_CS",
        description="HubSpot OAuth2 Client Secret",
    )
    hubspot_api_base_url: str = Field(
        default="https://api.hubapi.com",
        alias="HUBSPOT_API_BASE_URL",
    )
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    # -------------------------------------------------------------------------
    # Sync Engine
    # These are provider/deployment specific. Do not change without a reason.
    # -------------------------------------------------------------------------
    search_page_size: int = Field(default=100, alias="SEARCH_PAGE_SIZE")
    offset_ceiling: int = Field(
        default=9900,
        alias="OFFSET_CEILING",
        description="Highest search offset HubSpot accepts before date-based resumption",
    )
    flush_threshold: int = Field(
        default=2000,
        alias="FLUSH_THRESHOLD",
        description="Staged events handed to the sink per automatic flush",
    )
    retry_attempts: int = Field(default=2, alias="RETRY_ATTEMPTS")
    retry_base_delay_seconds: float = Field(default=5.0, alias="RETRY_BASE_DELAY_SECONDS")
    action_date_offset_ms: int = Field(default=2000, alias="ACTION_DATE_OFFSET_MS")

    checkpoint_persistence_enabled: bool = Field(
        default=False,
        alias="CHECKPOINT_PERSISTENCE_ENABLED",
        description="Write domain checkpoints back to the store (disabled by default)",
    )
    continue_on_account_error: bool = Field(
        default=False,
        alias="CONTINUE_ON_ACCOUNT_ERROR",
        description="Record a failing account and move on instead of aborting the run",
    )

    # -------------------------------------------------------------------------
    # Event Sink
    # -------------------------------------------------------------------------
    goal_url: str | None = Field(
        default=None,
        alias="GOAL_URL",
        description="Endpoint receiving batches of outbound events; logs only if unset",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Note: Settings are cached! If you change .env, restart the process.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Call this if you need to reload settings."""
    get_settings.cache_clear()
