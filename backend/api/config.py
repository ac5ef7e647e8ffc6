"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QRATE_",
        case_sensitive=False,
    )

    # Application
    app_name: str = "QRate"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Personal Taste Score
    rank_decay_constant: float = 0.05

    # Contextual weighting
    present_decay_rate: float = Field(default=0.90, gt=0, le=1)
    absent_decay_rate: float = Field(default=0.40, gt=0, le=1)
    gentle_decay_for_all: bool = False
    small_event_threshold: int = 20
    geofence_default_radius_m: float = 100.0
    location_stale_minutes: float = 15.0

    # Vibe Gate
    vibe_gate_enabled: bool = False
    default_guest_count: int = 25

    # DJ session
    repeat_window_minutes: int = 180
    artist_fatigue_count: int = 3

    # Aggregation and caches
    aggregation_debounce_seconds: float = 0.0
    harmonic_cache_size: int = 500


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
