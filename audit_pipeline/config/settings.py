# audit_pipeline/config/settings.py

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "audit-pipeline"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Event source ---
    event_source_base_url: str = "http://localhost:8080/api/v1"
    event_source_token: Optional[str] = None
    event_source_timeout_seconds: float = Field(30.0, gt=0)
    page_size: int = Field(500, ge=1)
    max_pages: int = Field(50, ge=1)
    default_range_days: int = Field(7, ge=1)

    # --- Cache ---
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_minutes: int = Field(30, ge=0)
    background_refresh_delay_seconds: float = Field(0.5, ge=0)
    # False keeps "last response wins" for out-of-order refreshes
    discard_superseded_responses: bool = True

    # --- Analytics ---
    session_gap_minutes: int = Field(10, ge=0)

    # --- Observability ---
    enable_metrics: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()


# Singleton for direct import (e.g. in infrastructure clients)
settings = get_settings()
