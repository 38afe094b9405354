"""Tests for market-level metrics."""

import pytest

from skylineanalyzr.analysis.market import (
    analyze_property_types,
    analyze_submarkets,
    calculate_market_metrics,
    conversion_potential,
    market_risk_factors,
    strategic_recommendations,
    submarket_score,
    top_submarkets,
)
from skylineanalyzr.models.property import PropertyRecord


@pytest.fixture
def market_records() -> list[PropertyRecord]:
    """Two available Tribeca offices and one completed SoHo conversion."""
    return [
        PropertyRecord(
            id="t1", submarket="Tribeca", property_category="Office Buildings",
            asking_price=20_000_000, price_per_sf=500, cap_rate=7.0, status="Available",
        ),
        PropertyRecord(
            id="t2", submarket="Tribeca", property_category="Office Buildings",
            asking_price=30_000_000, price_per_sf=500, cap_rate=7.0, status="Under Contract",
        ),
        PropertyRecord(
            id="s1", submarket="SoHo", property_category="Office-to-Residential Conversion",
            asking_price=40_000_000, price_per_sf=1200, cap_rate=3.0, status="Completed",
        ),
    ]


class TestMarketMetrics:
    """Test portfolio-wide metrics."""

    def test_metrics(self, market_records):
        metrics = calculate_market_metrics(market_records)

        assert metrics.total_properties == 3
        assert metrics.total_value == 90_000_000
        assert metrics.avg_cap_rate == pytest.approx(17 / 3)
        assert metrics.avg_price_per_sf == pytest.approx(2200 / 3)
        assert metrics.conversion_rate == pytest.approx(1 / 3)
        assert metrics.market_velocity == pytest.approx(2 / 3)
        assert metrics.risk_score == 50
        assert metrics.opportunity_score == 90

    def test_empty(self):
        """No records gives neutral defaults."""
        metrics = calculate_market_metrics([])
        assert metrics.total_properties == 0
        assert metrics.risk_score == 50
        assert metrics.opportunity_score == 50

    def test_saturated_market(self):
        """All-completed, low-yield markets are risky."""
        records = [PropertyRecord(cap_rate=3.0, status="Completed") for _ in range(5)]
        metrics = calculate_market_metrics(records)

        assert metrics.risk_score == 85
        assert metrics.opportunity_score == 50

    def test_camel_case_dump(self, market_records):
        dumped = calculate_market_metrics(market_records).model_dump(by_alias=True)
        assert "avgPricePerSF" in dumped
        assert "conversionRate" in dumped


class TestSubmarkets:
    """Test per-submarket breakdown."""

    def test_analyze_submarkets(self, market_records):
        submarkets = analyze_submarkets(market_records)

        assert list(submarkets) == ["Tribeca", "SoHo"]
        assert submarkets["Tribeca"].count == 2
        assert submarkets["Tribeca"].avg_value == 25_000_000
        assert submarkets["Tribeca"].performance_score == 80
        assert submarkets["SoHo"].performance_score == 35

    def test_top_submarkets(self, market_records):
        assert top_submarkets(analyze_submarkets(market_records)) == ["Tribeca", "SoHo"]

    def test_submarket_score_bounds(self):
        assert submarket_score(7.0, 500, 11) == 95
        assert submarket_score(2.0, 1500, 1) == 25

    def test_unknown_submarket_grouped(self):
        submarkets = analyze_submarkets([PropertyRecord(asking_price=1_000_000)])
        assert list(submarkets) == ["Unknown"]


class TestPropertyTypes:
    """Test per-category breakdown."""

    def test_analyze_property_types(self, market_records):
        types = analyze_property_types(market_records)

        assert types["Office Buildings"].count == 2
        assert types["Office Buildings"].conversion_potential == 85
        assert types["Office-to-Residential Conversion"].conversion_potential == 85

    @pytest.mark.parametrize(
        "category,expected",
        [("Mixed-Use Buildings", 70), ("Industrial", 60), ("Retail Condos", 40)],
    )
    def test_conversion_potential(self, category, expected):
        assert conversion_potential(category) == expected


class TestMarketCommentary:
    """Test recommendations and market risks."""

    def test_recommendations(self, market_records):
        metrics = calculate_market_metrics(market_records)
        recs = strategic_recommendations(metrics, analyze_submarkets(market_records))

        assert recs == [
            "Strong market conditions - consider aggressive acquisition strategy",
            "Low conversion rate suggests untapped conversion opportunities",
            "High market velocity - act quickly on opportunities",
            "Focus on top-performing submarkets: Tribeca, SoHo",
        ]

    def test_concentration_risk(self, market_records):
        metrics = calculate_market_metrics(market_records)
        assert market_risk_factors(metrics, market_records) == [
            "High geographic concentration increases portfolio risk"
        ]

    def test_saturation_risks(self):
        records = [PropertyRecord(submarket=f"S{i}", cap_rate=3.0, status="Completed") for i in range(5)]
        risks = market_risk_factors(calculate_market_metrics(records), records)

        assert "High market risk - conduct thorough due diligence" in risks
        assert "Low cap rates may indicate overvalued market" in risks
        assert "High conversion rate may indicate market saturation" in risks
        assert "Low market velocity suggests liquidity concerns" in risks
        assert "High geographic concentration increases portfolio risk" not in risks
