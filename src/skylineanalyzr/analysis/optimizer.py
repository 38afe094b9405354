"""Asking-price optimization against comparables and market trends.

Given a property, a set of comparable records and a recent-first series of
market activity values, recommend a listing price, estimate time to sell
and grade the opportunity.
"""

import logging
from datetime import date, timedelta
from statistics import mean
from typing import Optional, Sequence

from ..models.property import (
    Borough,
    Competition,
    Milestone,
    PriceOptimization,
    PropertyFeatures,
    PropertyRecord,
    PropertyStatus,
)

logger = logging.getLogger(__name__)

# Manhattan submarkets that carry a 5% location premium
PREMIUM_SUBMARKETS = frozenset({
    "Midtown East",
    "Midtown West",
    "Upper East Side",
    "Upper West Side",
    "Tribeca",
    "SoHo",
    "Greenwich Village",
    "Chelsea",
})

RECENT_COMPARABLE_DAYS = 30
DEFAULT_YEAR_BUILT = 1980
MAX_PRICE_MULTIPLIER = 1.15

DAYS_TO_SELL = {
    "very_hot": 15,
    "hot": 25,
    "balanced": 45,
    "slow": 75,
    "very_slow": 120,
}
DEFAULT_DAYS_TO_SELL = 45

GRADE_THRESHOLDS = [
    (85, "A+"),
    (80, "A"),
    (75, "B+"),
    (70, "B"),
    (65, "C+"),
    (60, "C"),
]


class PriceOptimizer:
    """Recommend listing prices from comparables.

    Example:
        optimizer = PriceOptimizer(as_of=date(2025, 6, 1))
        result = optimizer.optimize(record, comparables, trends)
        print(result.recommended_price, result.investment_grade)
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()

    # =========================================================================
    # Price
    # =========================================================================

    def relevant_comparables(self, comparables: Sequence[PropertyRecord]) -> list[PropertyRecord]:
        """Comparables updated in the last 30 days when there are more than 3 of them."""
        cutoff = self.as_of - timedelta(days=RECENT_COMPARABLE_DAYS)
        recent = [
            c for c in comparables
            if c.last_updated is not None and c.last_updated.date() > cutoff
        ]
        return recent if len(recent) > 3 else list(comparables)

    def trend_adjustment(self, trends: Sequence[float]) -> float:
        """Recent week vs prior week change, capped at +/-10%."""
        if len(trends) < 14:
            return 0.0
        recent_avg = mean(trends[:7])
        prior_avg = mean(trends[7:14])
        if prior_avg == 0:
            return 0.0
        change = (recent_avg - prior_avg) / prior_avg
        return max(-0.1, min(0.1, change))

    def quality_adjustment(self, record: PropertyRecord, comparables: Sequence[PropertyRecord]) -> float:
        adjustment = 0.0

        avg_gsf = mean(c.gross_sf or 0 for c in comparables)
        gsf = record.gross_sf or 0
        if gsf > avg_gsf * 1.2:
            adjustment += 0.08
        elif gsf > avg_gsf * 1.1:
            adjustment += 0.05
        elif gsf < avg_gsf * 0.8:
            adjustment -= 0.08
        elif gsf < avg_gsf * 0.9:
            adjustment -= 0.05

        # Newer is better
        avg_year = mean(c.year_built or DEFAULT_YEAR_BUILT for c in comparables)
        year = record.year_built or DEFAULT_YEAR_BUILT
        if year > avg_year + 10:
            adjustment += 0.05
        elif year < avg_year - 10:
            adjustment -= 0.05

        return adjustment

    def location_adjustment(self, record: PropertyRecord) -> float:
        if record.borough == Borough.MANHATTAN and record.submarket in PREMIUM_SUBMARKETS:
            return 0.05
        return 0.0

    def optimal_price(
        self,
        record: PropertyRecord,
        comparables: Sequence[PropertyRecord],
        trends: Sequence[float],
    ) -> float:
        """Mean comparable price adjusted for trend, quality and location.

        Falls back to the current price with no comparables or no price.
        """
        current = record.asking_price or 0
        if not comparables or current == 0:
            return current

        relevant = self.relevant_comparables(comparables)
        base = mean(c.asking_price or 0 for c in relevant)
        factor = (
            1
            + self.trend_adjustment(trends)
            + self.quality_adjustment(record, relevant)
            + self.location_adjustment(record)
        )
        return float(round(base * factor))

    def confidence(self, comparable_count: int, trend_points: int) -> float:
        confidence = 0.5
        confidence += min(0.3, comparable_count * 0.03)
        confidence += min(0.2, trend_points * 0.005)
        return round(min(0.95, max(0.1, confidence)), 4)

    # =========================================================================
    # Market factors
    # =========================================================================

    def market_condition(self, trends: Sequence[float]) -> str:
        if len(trends) < 7:
            return "insufficient_data"
        activity = mean(trends[:7])
        if activity > 80:
            return "very_hot"
        if activity > 60:
            return "hot"
        if activity > 40:
            return "balanced"
        if activity > 20:
            return "slow"
        return "very_slow"

    def competition(self, comparables: Sequence[PropertyRecord]) -> Competition:
        active = [c for c in comparables if c.status == PropertyStatus.AVAILABLE]
        prices = [c.asking_price for c in active if c.asking_price]
        if len(active) > 8:
            level = "high"
        elif len(active) > 4:
            level = "medium"
        else:
            level = "low"
        return Competition(
            level=level,
            count=len(active),
            price_min=min(prices) if prices else 0,
            price_max=max(prices) if prices else 0,
        )

    def seasonality(self) -> str:
        month = self.as_of.month
        if 4 <= month <= 7:
            return "peak_season"
        if 9 <= month <= 11:
            return "good_season"
        if month in (3, 8):
            return "transition_season"
        return "slow_season"

    def property_features(
        self,
        record: PropertyRecord,
        comparables: Sequence[PropertyRecord],
    ) -> PropertyFeatures:
        if not comparables:
            return PropertyFeatures()
        avg_units = mean(c.units or 0 for c in comparables)
        avg_gsf = mean(c.gross_sf or 0 for c in comparables)
        return PropertyFeatures(
            unit_advantage=(record.units or 0) > avg_units,
            size_advantage=(record.gross_sf or 0) > avg_gsf,
            location_premium=record.borough == Borough.MANHATTAN,
        )

    def market_trend(self, trends: Sequence[float]) -> str:
        if len(trends) < 8:
            return "neutral"
        recent_avg = mean(trends[:7])
        older_avg = mean(trends[7:14])
        if older_avg == 0:
            return "neutral"
        change = (recent_avg - older_avg) / older_avg
        if change > 0.05:
            return "bullish"
        if change < -0.05:
            return "bearish"
        return "neutral"

    # =========================================================================
    # Timeline and grading
    # =========================================================================

    def milestones(self, days_to_sell: int) -> list[Milestone]:
        return [
            Milestone(day=7, action="Monitor initial interest", expected="First showings and inquiries"),
            Milestone(day=14, action="Evaluate market response", expected="Serious buyer interest"),
            Milestone(day=int(days_to_sell * 0.5), action="Mid-market assessment", expected="Multiple showings"),
            Milestone(day=int(days_to_sell * 0.75), action="Consider price adjustment", expected="Negotiate offers"),
            Milestone(day=days_to_sell, action="Target completion", expected="Accepted offer"),
        ]

    def risk_score(self, confidence: float, market_condition: str, competition_level: str) -> int:
        """Pricing risk; higher is riskier."""
        risk = 50 - (confidence - 0.5) * 40

        risk += {"very_hot": -15, "hot": -10, "slow": 10, "very_slow": 20}.get(market_condition, 0)

        if competition_level == "high":
            risk += 15
        elif competition_level == "low":
            risk -= 10

        return max(0, min(100, round(risk)))

    def investment_grade(
        self,
        projected_roi: float,
        confidence: float,
        market_condition: str,
        risk_score: int,
    ) -> str:
        score = 0.0

        if projected_roi > 15:
            score += 30
        elif projected_roi > 10:
            score += 25
        elif projected_roi > 5:
            score += 20
        elif projected_roi > 0:
            score += 15

        score += confidence * 30
        score += {"very_hot": 25, "hot": 20, "balanced": 15, "slow": 10}.get(market_condition, 5)
        score += (100 - risk_score) * 0.15

        for threshold, grade in GRADE_THRESHOLDS:
            if score >= threshold:
                return grade
        return "D"

    def optimize(
        self,
        record: PropertyRecord,
        comparables: Sequence[PropertyRecord],
        trends: Sequence[float],
    ) -> PriceOptimization:
        """Build the full price optimization for one record."""
        comparables = [c for c in comparables if c.id is None or c.id != record.id]
        current = record.asking_price or 0
        recommended = self.optimal_price(record, comparables, trends)
        confidence = self.confidence(len(comparables), len(trends))

        condition = self.market_condition(trends)
        competition = self.competition(comparables)
        days_to_sell = DAYS_TO_SELL.get(condition, DEFAULT_DAYS_TO_SELL)

        projected_roi = (recommended - current) / current * 100 if current > 0 else 0.0
        projected_roi = round(projected_roi, 2)

        risk = self.risk_score(confidence, condition, competition.level)

        logger.debug(f"Optimized {record.id or record.address}: {current} -> {recommended}")

        return PriceOptimization(
            property_id=record.id,
            current_price=current,
            recommended_price=recommended,
            confidence=confidence,
            market_condition=condition,
            competition=competition,
            seasonality=self.seasonality(),
            property_features=self.property_features(record, comparables),
            estimated_days_to_sell=days_to_sell,
            milestones=self.milestones(days_to_sell),
            projected_roi=projected_roi,
            break_even_price=current,
            max_recommended_price=round(current * MAX_PRICE_MULTIPLIER),
            risk_score=risk,
            market_trend=self.market_trend(trends),
            investment_grade=self.investment_grade(projected_roi, confidence, condition, risk),
        )


def optimize_pricing(
    record: PropertyRecord,
    comparables: Sequence[PropertyRecord],
    trends: Sequence[float],
    as_of: Optional[date] = None,
) -> PriceOptimization:
    return PriceOptimizer(as_of).optimize(record, comparables, trends)
