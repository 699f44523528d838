from typing import Final

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_PORT
from .domain.constants import DEFAULT_PER_PAGE, MAX_PER_PAGE


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration
    database_url: str = Field(
        default="sqlite:///./rentals.db", description="Database connection URL"
    )

    # Application configuration
    app_name: str = Field(default="Lease Rentals", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    # Listing configuration
    admin_per_page: int = Field(
        default=DEFAULT_PER_PAGE,
        ge=1,
        le=MAX_PER_PAGE,
        description="Rows per page on the admin list screens",
    )

    # Logging configuration
    log_level: str | None = Field(
        default=None, description="Log level; DEBUG in debug mode, INFO otherwise"
    )
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )
    log_file: str = Field(default="logs/rentals.log", description="Log file path")

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global settings instance
settings: Final = Settings()
