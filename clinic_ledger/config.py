"""Configuration management for the clinic ledger."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/clinic.db",
        description="SQLAlchemy async URL of the clinic database",
    )
    pool_timeout: float = Field(
        default=5.0,
        description="Seconds a save waits for the single pooled connection before failing as busy",
    )

    # Ledger
    budget_tolerance: float = Field(
        default=0.01,
        description="Allowed drift between submitted and recomputed session budget",
    )
    recent_contact_days: int = Field(
        default=7,
        description="A debtor contacted within this many days counts as recently contacted",
    )

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_key: str = Field(
        default="",
        description="API key for authenticating requests",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
