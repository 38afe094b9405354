"""Tests for Settings."""

from skylineanalyzr.config import Settings
from skylineanalyzr.models.property import CostAssumptions


class TestSettings:
    """Test defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Source limits and TTLs default to the documented values."""
        for var in ("SKYLINE_FRED_API_KEY", "SKYLINE_NYC_RATE_LIMIT", "SKYLINE_FRED_CACHE_TTL_MS"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings(_env_file=None)

        assert settings.nyc_rate_limit == 1000
        assert settings.nyc_rate_window_ms == 3_600_000
        assert settings.fred_rate_limit == 120
        assert settings.fred_rate_window_ms == 60_000
        assert settings.nyc_cache_ttl_ms == 900_000
        assert settings.fred_cache_ttl_ms == 1_800_000
        assert settings.fred_api_key is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SKYLINE_FRED_API_KEY", "from-env")
        monkeypatch.setenv("SKYLINE_MAX_RETRIES", "5")

        settings = Settings(_env_file=None)
        assert settings.fred_api_key == "from-env"
        assert settings.max_retries == 5

    def test_cost_assumptions(self, settings):
        costs = settings.cost_assumptions()

        assert isinstance(costs, CostAssumptions)
        assert costs == CostAssumptions()
