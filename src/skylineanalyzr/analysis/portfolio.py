"""Constraint-driven portfolio construction.

Candidates are scored against an investor's constraints, sorted best first
and picked greedily until the budget is spent. The resulting portfolio is
graded on yield, risk and diversification.

Example:
    constraints = PortfolioConstraints(max_investment=50_000_000, investment_style="conservative")
    portfolio = optimize_portfolio(records, constraints)
    for holding in portfolio.properties:
        print(holding.property.address, holding.score, holding.risk)
"""

import logging
from collections import Counter
from datetime import date
from statistics import mean
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from ..models.property import PropertyRecord, PropertyStatus

logger = logging.getLogger(__name__)

PREMIUM_SUBMARKETS = frozenset({"Tribeca", "SoHo", "Greenwich Village", "Midtown South"})
RISK_SUBMARKETS = frozenset({"Upper West Side", "Inwood", "Washington Heights"})

# Price per SF assumed when a record carries none
DEFAULT_PRICE_PER_SF = 500
DEFAULT_BUILDING_AGE = 50

# Stop once the portfolio holds min_properties and 90% of the budget is spent
BUDGET_FILL_RATIO = 0.9

UNKNOWN = "Unknown"


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class DiversificationRequirements(_CamelModel):
    """Concentration limits as fractions of the portfolio's holdings."""

    max_submarket_concentration: Optional[float] = Field(default=None, gt=0, le=1)
    max_property_type_concentration: Optional[float] = Field(default=None, gt=0, le=1)
    min_properties: int = Field(default=5, ge=1)


class PortfolioConstraints(_CamelModel):
    max_investment: Optional[float] = Field(default=None, gt=0, description="Budget in USD")
    min_roi: Optional[float] = Field(default=None, ge=0, alias="minROI", description="Minimum cap rate %")
    max_risk: Optional[int] = Field(default=None, ge=0, le=100)
    diversification_requirements: DiversificationRequirements = Field(
        default_factory=DiversificationRequirements
    )
    time_horizon: Literal["short", "medium", "long"] = "medium"
    investment_style: Literal["conservative", "balanced", "aggressive"] = "balanced"


class PortfolioHolding(_CamelModel):
    property: PropertyRecord
    score: int = Field(..., ge=0, le=100)
    risk: int = Field(..., ge=0, le=100)
    estimated_cost: float


class PortfolioMetrics(_CamelModel):
    avg_cap_rate: float
    total_units: int
    submarket_distribution: dict[str, int]
    property_type_distribution: dict[str, int]


class OptimizedPortfolio(_CamelModel):
    properties: list[PortfolioHolding]
    total_investment: float
    expected_roi: float = Field(..., alias="expectedROI")
    risk_score: float
    diversification_score: int = Field(..., ge=0, le=100)
    portfolio_metrics: PortfolioMetrics
    optimization_score: float
    recommendations: list[str] = Field(default_factory=list)
    risk_analysis: list[str] = Field(default_factory=list)


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def _submarket(record: PropertyRecord) -> str:
    return record.submarket or UNKNOWN


def _property_type(record: PropertyRecord) -> str:
    return record.property_category.value if record.property_category else UNKNOWN


def estimated_cost(record: PropertyRecord) -> float:
    """GSF times price per SF, at $500/SF when the price is unknown."""
    return (record.gross_sf or 0) * (record.effective_price_per_sf or DEFAULT_PRICE_PER_SF)


class PortfolioOptimizer:
    """Select a portfolio from candidate records under investor constraints.

    Example:
        optimizer = PortfolioOptimizer(as_of=date(2025, 6, 1))
        portfolio = optimizer.optimize(records, PortfolioConstraints(min_roi=5))
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()

    @property
    def current_year(self) -> int:
        return self.as_of.year

    # =========================================================================
    # Per-property scoring
    # =========================================================================

    def property_risk(self, record: PropertyRecord) -> int:
        """Risk 0-100 from age, size, project status, submarket and pricing.

        Unknown GSF gets no size adjustment.
        """
        risk = 50

        age = record.age(self.current_year)
        if age is None:
            age = DEFAULT_BUILDING_AGE
        if age > 100:
            risk += 15
        elif age < 20:
            risk += 10

        if record.gross_sf is not None:
            if record.gross_sf > 100_000:
                risk += 10
            elif record.gross_sf < 5_000:
                risk += 5

        if record.status == PropertyStatus.PROJECTED:
            risk += 20
        elif record.status == PropertyStatus.UNDERWAY:
            risk += 10

        if record.submarket in RISK_SUBMARKETS:
            risk += 15

        if (record.effective_price_per_sf or 0) > 1200:
            risk += 10
        if record.cap_rate and record.cap_rate < 3:
            risk += 15

        return _clamp(risk)

    def property_score(self, record: PropertyRecord, constraints: PortfolioConstraints) -> int:
        """Score 0-100 for how well a record fits the constraints."""
        score = 50

        cap_rate = record.cap_rate or 0
        if constraints.min_roi is not None:
            score += 20 if cap_rate >= constraints.min_roi else -10
        elif cap_rate > 6:
            score += 20
        elif cap_rate > 4:
            score += 10
        elif cap_rate < 3:
            score -= 10

        if constraints.max_risk is not None:
            score += 15 if self.property_risk(record) <= constraints.max_risk else -15

        if constraints.investment_style == "conservative":
            if record.status == PropertyStatus.COMPLETED:
                score += 10
            age = record.age(self.current_year)
            if age is not None and age < 50:
                score += 5
        elif constraints.investment_style == "aggressive":
            if record.status in (PropertyStatus.PROJECTED, PropertyStatus.UNDERWAY):
                score += 15
            if record.property_category and record.property_category.is_office:
                score += 10

        if record.submarket in PREMIUM_SUBMARKETS:
            score += 10

        return _clamp(score)

    # =========================================================================
    # Portfolio-level
    # =========================================================================

    @staticmethod
    def diversification_score(records: Sequence[PropertyRecord]) -> int:
        """Spread across submarkets, property types and project statuses."""
        if not records:
            return 0

        score = 0
        submarkets = Counter(_submarket(r) for r in records)
        if len(submarkets) >= 5:
            score += 30
        elif len(submarkets) >= 3:
            score += 20
        else:
            score += 10

        concentration = max(submarkets.values()) / len(records)
        if concentration < 0.3:
            score += 20
        elif concentration < 0.5:
            score += 10

        types = Counter(_property_type(r) for r in records)
        if len(types) >= 3:
            score += 30
        elif len(types) >= 2:
            score += 20
        else:
            score += 10

        if len({r.status for r in records}) >= 2:
            score += 20

        return min(100, score)

    @staticmethod
    def _exceeds_limit(
        counts: Counter, key: str, holdings: int, limit: Optional[float], min_properties: int
    ) -> bool:
        # Shares are measured against at least min_properties holdings so the
        # first picks are not rejected as 100% concentrated
        if limit is None:
            return False
        return (counts[key] + 1) / max(holdings + 1, min_properties) > limit

    def optimize(
        self, records: Sequence[PropertyRecord], constraints: Optional[PortfolioConstraints] = None
    ) -> OptimizedPortfolio:
        """Greedily build the best-scoring portfolio that fits the constraints."""
        constraints = constraints or PortfolioConstraints()
        diversification = constraints.diversification_requirements
        max_investment = constraints.max_investment or float("inf")

        candidates = sorted(
            (
                PortfolioHolding(
                    property=r,
                    score=self.property_score(r, constraints),
                    risk=self.property_risk(r),
                    estimated_cost=estimated_cost(r),
                )
                for r in records
            ),
            key=lambda h: h.score,
            reverse=True,
        )

        selected: list[PortfolioHolding] = []
        total_investment = 0.0
        by_submarket: Counter = Counter()
        by_type: Counter = Counter()

        for holding in candidates:
            if total_investment + holding.estimated_cost > max_investment:
                continue
            submarket = _submarket(holding.property)
            property_type = _property_type(holding.property)
            if self._exceeds_limit(
                by_submarket, submarket, len(selected),
                diversification.max_submarket_concentration, diversification.min_properties,
            ) or self._exceeds_limit(
                by_type, property_type, len(selected),
                diversification.max_property_type_concentration, diversification.min_properties,
            ):
                continue

            selected.append(holding)
            total_investment += holding.estimated_cost
            by_submarket[submarket] += 1
            by_type[property_type] += 1

            if (
                len(selected) >= diversification.min_properties
                and total_investment >= max_investment * BUDGET_FILL_RATIO
            ):
                break

        chosen = [h.property for h in selected]
        avg_cap_rate = mean(r.cap_rate or 0 for r in chosen) if chosen else 0.0
        avg_risk = mean(h.risk for h in selected) if selected else 0.0
        diversification_score = self.diversification_score(chosen)

        optimization_score = 0.0
        if selected:
            optimization_score = (avg_cap_rate * 10 + diversification_score + (100 - avg_risk)) / 3

        recommendations = []
        risk_analysis = []
        if avg_cap_rate < 4:
            recommendations.append("Consider properties with higher cap rates to improve portfolio yield")
        if diversification_score < 50:
            recommendations.append("Increase diversification across submarkets and property types")
        if len(selected) < diversification.min_properties:
            recommendations.append("Add more properties to improve diversification")
        if avg_risk > 60:
            risk_analysis.append("Portfolio has elevated risk profile, consider more stable assets")

        logger.info(
            f"Selected {len(selected)} of {len(candidates)} candidates "
            f"(${total_investment:,.0f}, {constraints.investment_style})"
        )

        return OptimizedPortfolio(
            properties=selected,
            total_investment=total_investment,
            expected_roi=round(avg_cap_rate, 2),
            risk_score=round(avg_risk, 1),
            diversification_score=diversification_score,
            portfolio_metrics=PortfolioMetrics(
                avg_cap_rate=round(avg_cap_rate, 2),
                total_units=sum(r.units or 0 for r in chosen),
                submarket_distribution=dict(by_submarket),
                property_type_distribution=dict(by_type),
            ),
            optimization_score=round(optimization_score, 1),
            recommendations=recommendations,
            risk_analysis=risk_analysis,
        )


def optimize_portfolio(
    records: Sequence[PropertyRecord],
    constraints: Optional[PortfolioConstraints] = None,
    as_of: Optional[date] = None,
) -> OptimizedPortfolio:
    return PortfolioOptimizer(as_of).optimize(records, constraints)
