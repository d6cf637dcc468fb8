"""Application settings and configuration.

This module defines all configuration options for the moderation core.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Moderation Core", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./moderation.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Content flag thresholds (confidence in [0, 1])
    flag_threshold: float = Field(default=0.7, ge=0.0, le=1.0, alias="FLAG_THRESHOLD")
    high_confidence_threshold: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        alias="HIGH_CONFIDENCE_THRESHOLD",
    )
    high_confidence_limit: int = Field(default=50, ge=1, alias="HIGH_CONFIDENCE_LIMIT")

    # Queue housekeeping
    queue_cleanup_days: int = Field(default=30, ge=0, alias="QUEUE_CLEANUP_DAYS")
    unassigned_default_limit: int = Field(default=10, ge=1, alias="UNASSIGNED_DEFAULT_LIMIT")

    # Pagination
    default_page_size: int = Field(default=20, ge=1, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, ge=1, le=100, alias="MAX_PAGE_SIZE")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url
