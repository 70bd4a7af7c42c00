"""Centralized configuration for collection-search using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine defaults loaded from ``COLLECTION_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="COLLECTION_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    sample_size: int = Field(
        default=100,
        ge=1,
        description="Number of leading records sampled to discover indexable field paths",
    )
    slow_search_ms: float = Field(
        default=10.0,
        ge=0.0,
        description="Searches slower than this are logged at warning level and counted",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Telemetry
    service_name: str = Field(default="collection-search", description="OpenTelemetry service.name resource")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""
    return Settings()
