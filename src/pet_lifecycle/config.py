"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup; a malformed value fails fast with a clear error message.

Usage:
    from pet_lifecycle.config import get_settings
    settings = get_settings()
    print(settings.database_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the pet lifecycle service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database ---
    database_url: str = (
        "postgresql+asyncpg://petlifecycle:petlifecycle_dev"
        "@localhost:5432/pet_lifecycle"
    )
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Settlement provider ---
    # Real fund custody is out of scope; the simulated provider hands out
    # placeholder references and transaction hashes.
    settlement_simulate: bool = True
    settlement_timeout_seconds: float = Field(default=10.0, gt=0)

    # --- Trust score policy ---
    trust_score_default: int = Field(default=50, ge=0, le=100)
    trust_custody_return_bonus: int = Field(default=5, ge=0)
    trust_custody_violation_penalty: int = Field(default=15, ge=0)
    trust_adoption_completed_bonus: int = Field(default=5, ge=0)

    # --- Custody rules ---
    custody_min_days: int = 1
    custody_max_days: int = 90

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
