"""Tests for generated recommendations, risks and opportunities."""

from skylineanalyzr.analysis.insights import (
    generate_recommendations,
    identify_opportunities,
    identify_risk_factors,
    investment_thesis,
)
from skylineanalyzr.analysis.scoring import INVESTMENT, score_property
from skylineanalyzr.models.property import PropertyRecord, ScoreBreakdown


class TestRecommendations:
    """Test conversion recommendations."""

    def test_strong_candidate(self, tribeca_office, context_2025):
        breakdown = score_property(tribeca_office, context_2025)
        recs = generate_recommendations(breakdown, tribeca_office)

        assert recs[0] == "Excellent conversion candidate - proceed with due diligence"
        assert "Prime location advantage - expect premium pricing" in recs
        assert "Building structure favorable for conversion" in recs
        assert "Attractive acquisition pricing" in recs
        assert "Eligible for conversion tax incentive - factor abatement into underwriting" in recs
        assert not any("feasibility" in r for r in recs)

    def test_weak_candidate(self):
        """Low scores trigger cautionary recommendations."""
        breakdown = ScoreBreakdown(
            profile="conversion", location=65, building=60, financial=50, market=70, risk=60, overall=60
        )
        recs = generate_recommendations(breakdown, PropertyRecord())

        assert recs[0] == "High risk - requires careful evaluation"
        assert "Building may require significant structural work" in recs
        assert "Consider negotiating purchase price" in recs
        assert "Higher risk factors - conduct thorough feasibility study" in recs

    def test_middle_band(self, midtown_tower, context_2025):
        breakdown = score_property(midtown_tower, context_2025)
        assert generate_recommendations(breakdown, midtown_tower)[0] == "Good potential with some considerations"

    def test_skips_unscored_dimensions(self):
        """Rules on dimensions the profile does not score are skipped."""
        breakdown = ScoreBreakdown(profile="market", location=70, overall=70)
        recs = generate_recommendations(breakdown, PropertyRecord())
        assert recs == ["Good potential with some considerations"]


class TestRiskFactors:
    """Test risk factor detection."""

    def test_old_building(self, tribeca_office, context_2025):
        """A 105-year-old building needs capital work."""
        breakdown = score_property(tribeca_office, context_2025)
        risks = identify_risk_factors(breakdown, tribeca_office, context_2025)
        assert risks == ["Building age may require significant capital improvements"]

    def test_large_ticket_low_liquidity(self, midtown_tower, context_2025):
        breakdown = score_property(midtown_tower, context_2025, INVESTMENT)
        risks = identify_risk_factors(breakdown, midtown_tower, context_2025)

        assert "Large transaction size may limit buyer pool" in risks
        assert "Limited liquidity may impact exit strategy timing" in risks
        assert "Financial metrics below market standards" in risks

    def test_limited_interest_submarket(self, context_2025):
        record = PropertyRecord(submarket="Inwood")
        breakdown = score_property(record, context_2025)
        assert "Submarket may have limited institutional investor interest" in identify_risk_factors(
            breakdown, record, context_2025
        )


class TestOpportunities:
    """Test opportunity detection."""

    def test_tribeca_office(self, tribeca_office, context_2025):
        breakdown = score_property(tribeca_office, context_2025)
        opportunities = identify_opportunities(breakdown, tribeca_office)

        assert opportunities == [
            "Office-to-residential conversion potential",
            "Value-add opportunity in prime location",
        ]

    def test_large_emerging_commercial(self, context_2025):
        record = PropertyRecord(
            submarket="Hell's Kitchen",
            property_category="Office Buildings",
            zoning_code="C6-4",
            gross_sf=80_000,
            status="Available",
        )
        breakdown = score_property(record, context_2025, INVESTMENT)
        opportunities = identify_opportunities(breakdown, record)

        assert "Strong growth trajectory in submarket" in opportunities
        assert "Mixed-use development potential" in opportunities
        assert "Scale advantages for institutional ownership" in opportunities
        assert "Early entry into emerging submarket" in opportunities

    def test_completed_conversion(self, context_2025):
        """A completed conversion is no longer a conversion opportunity."""
        record = PropertyRecord(property_category="Office Buildings", status="Completed")
        breakdown = score_property(record, context_2025)
        assert "Office-to-residential conversion potential" not in identify_opportunities(breakdown, record)


class TestInvestmentThesis:
    """Test thesis assembly."""

    def test_strong_thesis(self, tribeca_office, context_2025):
        breakdown = score_property(tribeca_office, context_2025)
        assert investment_thesis(breakdown, tribeca_office) == (
            "Strong investment opportunity with multiple value drivers. "
            "Prime Tribeca location provides strong foundation. "
            "Attractive financial metrics support investment case."
        )

    def test_speculative_thesis(self):
        breakdown = ScoreBreakdown(profile="conversion", overall=40)
        assert investment_thesis(breakdown, PropertyRecord()) == (
            "Speculative opportunity requiring careful analysis."
        )
