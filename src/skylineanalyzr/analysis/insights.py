"""Threshold-driven recommendation, risk and opportunity text.

Every generator is deterministic. Rules that depend on a dimension the
breakdown's profile does not score are skipped.
"""

from ..models.market import MarketContext
from ..models.property import PropertyRecord, PropertyStatus, ScoreBreakdown
from .scoring import EMERGING_SUBMARKETS

# Submarkets with thin institutional demand
LIMITED_INTEREST_SUBMARKETS = frozenset({"Upper West Side", "Inwood", "Washington Heights"})


def _at_least(value: int | None, threshold: int) -> bool:
    return value is not None and value >= threshold


def _below(value: int | None, threshold: int) -> bool:
    return value is not None and value < threshold


def _is_unconverted_office(record: PropertyRecord) -> bool:
    category = record.property_category
    return category is not None and category.is_office and record.status != PropertyStatus.COMPLETED


def generate_recommendations(breakdown: ScoreBreakdown, record: PropertyRecord) -> list[str]:
    """Conversion guidance for a scored property."""
    recommendations = []

    if breakdown.overall >= 80:
        recommendations.append("Excellent conversion candidate - proceed with due diligence")
    elif breakdown.overall >= 65:
        recommendations.append("Good potential with some considerations")
    else:
        recommendations.append("High risk - requires careful evaluation")

    if _at_least(breakdown.location, 85):
        recommendations.append("Prime location advantage - expect premium pricing")

    if _at_least(breakdown.building, 80):
        recommendations.append("Building structure favorable for conversion")
    elif _below(breakdown.building, 65):
        recommendations.append("Building may require significant structural work")

    if _at_least(breakdown.financial, 80):
        recommendations.append("Attractive acquisition pricing")
    elif _below(breakdown.financial, 60):
        recommendations.append("Consider negotiating purchase price")

    if _below(breakdown.risk, 70):
        recommendations.append("Higher risk factors - conduct thorough feasibility study")

    if record.eligible_for_tax_program:
        recommendations.append("Eligible for conversion tax incentive - factor abatement into underwriting")

    return recommendations


def identify_risk_factors(
    breakdown: ScoreBreakdown,
    record: PropertyRecord,
    context: MarketContext | None = None,
) -> list[str]:
    context = context or MarketContext()
    risks = []

    if _below(breakdown.risk, 60):
        risks.append("Higher than average investment risk profile")

    if _below(breakdown.financial, 60):
        risks.append("Financial metrics below market standards")

    age = record.age(context.current_year)
    if age is not None and age > 100:
        risks.append("Building age may require significant capital improvements")

    if (record.asking_price or 0) > 50_000_000:
        risks.append("Large transaction size may limit buyer pool")

    if _below(breakdown.liquidity, 50):
        risks.append("Limited liquidity may impact exit strategy timing")

    if record.submarket in LIMITED_INTEREST_SUBMARKETS:
        risks.append("Submarket may have limited institutional investor interest")

    return risks


def identify_opportunities(breakdown: ScoreBreakdown, record: PropertyRecord) -> list[str]:
    opportunities = []

    if _is_unconverted_office(record):
        opportunities.append("Office-to-residential conversion potential")

    if _at_least(breakdown.growth, 75):
        opportunities.append("Strong growth trajectory in submarket")

    zoning = (record.zoning_code or "").upper()
    if "C" in zoning or "M" in zoning:
        opportunities.append("Mixed-use development potential")

    if _at_least(breakdown.location, 85) and _at_least(breakdown.financial, 75):
        opportunities.append("Value-add opportunity in prime location")

    if (record.gross_sf or 0) > 50_000:
        opportunities.append("Scale advantages for institutional ownership")

    if record.submarket in EMERGING_SUBMARKETS:
        opportunities.append("Early entry into emerging submarket")

    return opportunities


def investment_thesis(breakdown: ScoreBreakdown, record: PropertyRecord) -> str:
    """One-paragraph thesis assembled from score thresholds."""
    theses = []

    if breakdown.overall >= 80:
        theses.append("Strong investment opportunity with multiple value drivers")
    elif breakdown.overall >= 65:
        theses.append("Solid investment with good fundamentals")
    else:
        theses.append("Speculative opportunity requiring careful analysis")

    if _at_least(breakdown.location, 85):
        theses.append(f"Prime {record.submarket or 'Manhattan'} location provides strong foundation")

    if _at_least(breakdown.financial, 80):
        theses.append("Attractive financial metrics support investment case")

    if _at_least(breakdown.growth, 75):
        theses.append("Significant upside potential from market trends")

    return ". ".join(theses) + "."
