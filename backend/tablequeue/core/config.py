"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. Queue tunables, client polling
parameters and the menu source all live here so the service, the background
advancer and the polling client agree on the same numbers.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    host: str = "0.0.0.0"
    port: int = 4000

    # API
    api_prefix: str = "/api"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Rate limiting
    rate_limit_enabled: bool = True

    # ==========================================================================
    # Queue engine
    # ==========================================================================
    # Number of synthetic parties placed in a freshly created queue
    queue_seed_min: int = 3
    queue_seed_max: int = 7
    # Background advancer: one chance per interval to serve the front party
    advance_interval_seconds: float = 3.0
    advance_probability: float = 0.2
    advancer_enabled: bool = True
    wait_minutes_per_party: float = 1.5
    max_party_size: int = 8

    # ==========================================================================
    # Menu collaborator
    # ==========================================================================
    menu_source_url: str = "https://snuco.snu.ac.kr/ko/foodmenu"
    menu_fetch_timeout: float = 15.0
    menu_cache_seconds: int = 3600  # 1 hour

    # ==========================================================================
    # Polling client
    # ==========================================================================
    client_api_base: str = "http://localhost:4000/api"
    client_timeout_seconds: float = 2.0
    client_poll_interval_seconds: float = 3.0

    @field_validator("queue_seed_min", "queue_seed_max")
    @classmethod
    def validate_seed_bounds(cls, v: int) -> int:
        if v < 0:
            raise ValueError("queue seed bounds must be >= 0")
        return v

    @field_validator("advance_probability")
    @classmethod
    def validate_probability(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("advance_probability must be within [0, 1]")
        return v

    @field_validator("advance_interval_seconds", "client_poll_interval_seconds", "client_timeout_seconds")
    @classmethod
    def validate_positive_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("intervals and timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_seed_range(self) -> "Settings":
        if self.queue_seed_min > self.queue_seed_max:
            raise ValueError(
                f"queue_seed_min ({self.queue_seed_min}) cannot exceed "
                f"queue_seed_max ({self.queue_seed_max})"
            )
        if self.max_party_size < 1:
            raise ValueError("max_party_size must be >= 1")
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list, filtering localhost in production."""
        if self.cors_origins == "*":
            return ["*"]

        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

        if not self.debug:
            localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
            origins = [o for o in origins if not any(p in o for p in localhost_patterns)]

        return origins


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
