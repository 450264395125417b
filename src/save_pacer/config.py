"""Configuration settings for save-pacer."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PacingConfig(BaseModel):
    """Configuration for the rate-limited save queue.

    Controls how many items are released per interval, the interval
    length, and the sub-batch size used for each backend request.
    """

    max_rate: int = Field(
        default=30,
        ge=1,
        description="Items released from the queue per pacing interval",
    )
    interval_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds between pacing ticks",
    )

    # Large save requests can exceed backend payload limits
    max_batch_size: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum items per backend save request",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./saved_records.db",
        description="Async database connection string for the database backend",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Pacing
    # --------------------------------------------------------------------------
    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Save queue pacing configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
