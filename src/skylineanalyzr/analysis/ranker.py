"""Property ranking and filtering for conversion analysis.

This module provides tools for filtering, ranking and summarizing batches
of properties under a scoring profile.
"""

import logging
from collections import Counter
from statistics import mean, median
from typing import Any, Optional

from ..models.market import MarketContext
from ..models.property import (
    PropertyRecord,
    ScoreBreakdown,
    ScoredProperty,
    normalize_borough,
    normalize_category,
    normalize_status,
)
from .calculator import ConversionCalculator
from .insights import (
    generate_recommendations,
    identify_opportunities,
    identify_risk_factors,
    investment_thesis,
)
from .scoring import CONVERSION, INVESTMENT, ScoringProfile, get_profile, score_with_records

logger = logging.getLogger(__name__)

# Lower bounds of the score distribution buckets
DISTRIBUTION_BUCKETS = [
    ("excellent", 80),
    ("good", 65),
    ("fair", 50),
    ("poor", 0),
]


def score_bucket(overall: int) -> str:
    for name, floor in DISTRIBUTION_BUCKETS:
        if overall >= floor:
            return name
    return "poor"


class PropertyRanker:
    """Rank and filter properties under a scoring profile.

    Example:
        ranker = PropertyRanker(profile="investment")

        candidates = ranker.filter_by_criteria(records, submarket="Tribeca", max_price=50_000_000)
        for record, score in ranker.top(candidates, n=5):
            print(f"#{score.rank} {record.address}: {score.overall}/100")
    """

    def __init__(
        self,
        profile: ScoringProfile | str = CONVERSION,
        context: Optional[MarketContext] = None,
        calculator: Optional[ConversionCalculator] = None,
    ):
        """Initialize ranker.

        Args:
            profile: Scoring profile instance or name
            context: Market context shared by every score in a batch
            calculator: Projection calculator. Creates new instance if not provided.
        """
        self.profile = get_profile(profile)
        self.context = context or MarketContext()
        self.calc = calculator or ConversionCalculator()

    # =========================================================================
    # Filtering
    # =========================================================================

    def filter_by_criteria(
        self,
        records: list[PropertyRecord],
        borough: Optional[str] = None,
        submarket: Optional[str] = None,
        property_type: Optional[str] = None,
        status: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_gsf: Optional[int] = None,
        max_gsf: Optional[int] = None,
        min_cap_rate: Optional[float] = None,
        max_cap_rate: Optional[float] = None,
        search: Optional[str] = None,
    ) -> list[PropertyRecord]:
        """Filter records by attribute criteria.

        ``"all"`` for any categorical filter means no filter. Range filters
        exclude records that lack the attribute. ``search`` matches address
        or submarket case-insensitively.

        Returns:
            Matching records in input order
        """
        want_borough = normalize_borough(borough) if borough and borough != "all" else None
        want_type = normalize_category(property_type) if property_type and property_type != "all" else None
        want_status = normalize_status(status) if status and status != "all" else None
        want_submarket = submarket.lower() if submarket and submarket != "all" else None
        needle = search.lower() if search else None

        def in_range(value, low, high) -> bool:
            if low is None and high is None:
                return True
            if value is None:
                return False
            if low is not None and value < low:
                return False
            if high is not None and value > high:
                return False
            return True

        results = []
        for r in records:
            if want_borough and r.borough != want_borough:
                continue
            if want_submarket and (r.submarket or "").lower() != want_submarket:
                continue
            if want_type and r.property_category != want_type:
                continue
            if want_status and r.status != want_status:
                continue
            if not in_range(r.asking_price, min_price, max_price):
                continue
            if not in_range(r.gross_sf, min_gsf, max_gsf):
                continue
            if not in_range(r.cap_rate, min_cap_rate, max_cap_rate):
                continue
            if needle and needle not in r.address.lower() and needle not in (r.submarket or "").lower():
                continue
            results.append(r)
        return results

    # =========================================================================
    # Ranking
    # =========================================================================

    def rank(self, records: list[PropertyRecord]) -> list[tuple[PropertyRecord, ScoreBreakdown]]:
        """Score and rank records, best first, ties in input order."""
        return score_with_records(records, self.context, self.profile)

    def top(self, records: list[PropertyRecord], n: int = 10) -> list[tuple[PropertyRecord, ScoreBreakdown]]:
        return self.rank(records)[:n]

    def analyze(self, records: list[PropertyRecord]) -> list[ScoredProperty]:
        """Rank records and attach projections and generated commentary."""
        results = []
        for record, score in self.rank(records):
            investment = None
            if self.profile.name == INVESTMENT.name:
                investment = self.calc.project_investment_returns(
                    record, score, self.context.current_year
                )
            results.append(
                ScoredProperty(
                    property=record,
                    score=score,
                    financial_projections=self.calc.project_financials(record),
                    investment_projections=investment,
                    recommendations=generate_recommendations(score, record),
                    risk_factors=identify_risk_factors(score, record, self.context),
                    opportunities=identify_opportunities(score, record),
                    investment_thesis=investment_thesis(score, record),
                )
            )
        return results

    # =========================================================================
    # Summaries
    # =========================================================================

    def summarize(self, ranked: list[tuple[PropertyRecord, ScoreBreakdown]]) -> dict[str, Any]:
        """Summary statistics for an already-ranked batch.

        Returns:
            Dict with totalAnalyzed, averageScore, scoreDistribution and
            topSubmarkets (most frequent among the top ten)
        """
        if not ranked:
            return {
                "totalAnalyzed": 0,
                "averageScore": 0,
                "scoreDistribution": {name: 0 for name, _ in DISTRIBUTION_BUCKETS},
                "topSubmarkets": [],
            }

        scores = [s.overall for _, s in ranked]
        distribution = {name: 0 for name, _ in DISTRIBUTION_BUCKETS}
        for overall in scores:
            distribution[score_bucket(overall)] += 1

        leaders = Counter(r.submarket for r, _ in ranked[:10] if r.submarket)

        return {
            "totalAnalyzed": len(ranked),
            "averageScore": round(mean(scores), 1),
            "scoreDistribution": distribution,
            "topSubmarkets": [name for name, _ in leaders.most_common(5)],
        }

    def generate_report(self, records: list[PropertyRecord], top_n: int = 10) -> str:
        """Generate text summary report of conversion opportunities.

        Args:
            records: Properties to analyze
            top_n: Number of top properties to highlight

        Returns:
            Formatted text report
        """
        if not records:
            return "No properties to analyze."

        ranked = self.rank(records)
        summary = self.summarize(ranked)
        scores = [s.overall for _, s in ranked]
        prices = [r.asking_price for r, _ in ranked if r.asking_price]

        type_counts = Counter(
            r.property_category.value if r.property_category else "Unknown" for r, _ in ranked
        )

        lines = [
            "=" * 60,
            f"{self.profile.name.upper()} ANALYSIS REPORT",
            "=" * 60,
            "",
            f"Properties Analyzed: {len(ranked)}",
            "",
            "Property Type Breakdown:",
        ]

        for ptype, count in sorted(type_counts.items()):
            lines.append(f"  {ptype}: {count}")

        lines.extend(["", "Summary Statistics:"])
        if prices:
            lines.append(f"  Price Range: ${min(prices):,.0f} - ${max(prices):,.0f}")
        lines.extend([
            f"  Average Score: {summary['averageScore']:.1f}/100",
            f"  Median Score: {median(scores):.1f}/100",
            "  Distribution: " + ", ".join(f"{k} {v}" for k, v in summary["scoreDistribution"].items()),
        ])

        top = ranked[:top_n]
        lines.extend([
            "",
            "-" * 60,
            f"TOP {len(top)} OPPORTUNITIES",
            "-" * 60,
            "",
        ])

        for record, score in top:
            price_str = f"${record.asking_price:,.0f}" if record.asking_price else "N/A"
            ppsf = record.effective_price_per_sf
            ppsf_str = f"${ppsf:,.0f}/SF" if ppsf else "N/A"
            dims = " | ".join(f"{k.title()}: {v}" for k, v in score.sub_scores().items())
            lines.extend([
                f"{score.rank}. {(record.address or record.id or 'Unknown')[:40]}",
                f"   {record.submarket or 'Unknown'} | {price_str} | {ppsf_str}",
                f"   Score: {score.overall}/100 | {dims}",
                "",
            ])

        lines.append("=" * 60)

        return "\n".join(lines)
