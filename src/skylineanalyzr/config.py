"""Configuration system for SkylineAnalyzr.

Uses pydantic-settings to load configuration from environment variables
and .env files with defaults tuned for Manhattan conversion analysis.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models.property import CostAssumptions


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with SKYLINE_ (e.g., SKYLINE_FRED_API_KEY).
    """

    model_config = SettingsConfigDict(
        env_prefix="SKYLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API keys (loaded from environment)
    nyc_app_token: str | None = Field(
        default=None,
        description="Socrata app token for NYC Open Data (raises the throttle ceiling)",
    )
    fred_api_key: str | None = Field(
        default=None,
        description="FRED API key",
    )

    # HTTP behaviour
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Additional attempts after the first failed fetch",
    )
    retry_base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Base backoff delay; doubled on every attempt",
    )

    # Rate limits
    nyc_rate_limit: int = Field(default=1000, ge=1, description="NYC Open Data calls per window")
    nyc_rate_window_ms: int = Field(default=3_600_000, ge=1, description="NYC Open Data window (1 hour)")
    fred_rate_limit: int = Field(default=120, ge=1, description="FRED calls per window")
    fred_rate_window_ms: int = Field(default=60_000, ge=1, description="FRED window (1 minute)")

    # Cache TTLs
    nyc_cache_ttl_ms: int = Field(default=15 * 60 * 1000, ge=0)
    fred_cache_ttl_ms: int = Field(default=30 * 60 * 1000, ge=0)
    snapshot_cache_ttl_ms: int = Field(default=60 * 60 * 1000, ge=0)
    index_cache_ttl_ms: int = Field(default=24 * 60 * 60 * 1000, ge=0)

    # Storage
    cache_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Where source responses are cached",
    )
    cache_dir: Path = Field(
        default=Path(".cache"),
        description="Directory for the SQLite response cache",
    )
    dataset_path: Path | None = Field(
        default=None,
        description="JSON file of property records; synthetic records when unset",
    )
    synthetic_count: int = Field(default=60, ge=0, description="Synthetic records when no dataset file")
    synthetic_seed: int = Field(default=42)

    # Scoring
    default_profile: Literal["conversion", "investment", "market"] = Field(default="conversion")
    per_sf_conversion_cost: float = Field(default=250, ge=0)
    average_unit_sf: float = Field(default=800, gt=0)
    monthly_rent_per_unit: float = Field(default=4500, ge=0)
    assumed_annual_appreciation_pct: float = Field(default=3.0)
    default_gross_sf: int = Field(default=10000, gt=0)

    log_level: str = Field(default="INFO")

    def cost_assumptions(self) -> CostAssumptions:
        return CostAssumptions(
            per_sf_conversion_cost=self.per_sf_conversion_cost,
            average_unit_sf=self.average_unit_sf,
            monthly_rent_per_unit=self.monthly_rent_per_unit,
            assumed_annual_appreciation_pct=self.assumed_annual_appreciation_pct,
            default_gross_sf=self.default_gross_sf,
        )


# Singleton instance for easy import
config = Settings()
