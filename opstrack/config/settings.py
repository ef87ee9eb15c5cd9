"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Persistent store configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["sqlite", "memory"] = "sqlite"
    data_dir: Path = Path("data")
    db_name: str = "opstrack.db"

    # SQLite settings
    busy_timeout: int = 30000  # ms

    # Write the built-in sample collections when the store is empty
    seed_sample_data: bool = True

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class LedgerSettings(BaseSettings):
    """Stock ledger and business event policy."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    sale_number_prefix: str = "SO-"
    production_number_prefix: str = "PO-"

    # Negative on-hand stock is recorded, not rejected, unless disabled here
    allow_negative_stock: bool = True

    # Post movements when an update moves a sale/production into a
    # consuming status (off: postings only happen at creation time)
    post_on_status_transition: bool = False

    @field_validator("sale_number_prefix", "production_number_prefix")
    @classmethod
    def prefix_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("number prefix must not be blank")
        return v


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "OpsTrack"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
